# Routes module
from .check import router as check_router
from .status import router as status_router

__all__ = ["check_router", "status_router"]
