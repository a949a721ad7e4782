"""Service status route."""
import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_classifier
from api.schemas.responses import ApiStatusResponse, UpstreamStatus
from consumer.classifier import CredentialClassifier
from shared.config import settings
from shared.utils import format_datetime, get_utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/status", response_model=ApiStatusResponse)
async def get_api_status(classifier: CredentialClassifier = Depends(get_classifier)):
    """Report liveness of the API and reachability of the upstream classifier."""
    check_connection = getattr(classifier, "check_connection", None)

    if check_connection is None:
        upstream = UpstreamStatus(status="ok", message="No upstream connection to check")
    else:
        try:
            connected = await check_connection()
        except Exception as e:
            logger.error(f"Error checking upstream connection: {e}")
            connected = False
        upstream = UpstreamStatus(
            status="ok" if connected else "error",
            message="connected" if connected else "disconnected"
        )

    logger.info(f"API status: ok, upstream: {upstream.message}")

    return ApiStatusResponse(
        status="ok",
        timestamp=format_datetime(get_utc_now()),
        google_api_status=upstream,
        version=settings.api_version
    )
