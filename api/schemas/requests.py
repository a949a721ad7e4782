"""Request schemas for API endpoints."""
from pydantic import BaseModel, Field, field_validator


class SingleCheckRequest(BaseModel):
    """Request schema for a single credential check."""
    username: str = Field(..., description="Email or username to check")
    password: str = Field(..., description="Password to check")

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        """Strip surrounding whitespace from the username."""
        return v.strip()
