# /health endpoint
# mflix_api/api/endpoints/health.py

import logging

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from mflix_api.api.deps import get_db
from mflix_api.models.response import ErrorResponse, SuccessResponse
from mflix_api.utils.responses import create_error_response, create_success_response, envelope_response

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthStatus(BaseModel):
    status: str = "ok"
    database: str = "connected"


@router.get(
    "",
    response_model=SuccessResponse[HealthStatus],
    status_code=status.HTTP_200_OK,
    summary="Perform a Health Check",
    response_description="Returns the health status of the API and its database connection.",
    responses={503: {"model": ErrorResponse, "description": "Database unreachable"}},
)
async def health_check(db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Pings MongoDB through the shared connection.
    """
    try:
        await db.command("ping")
    except PyMongoError as e:
        logger.error(f"Health check ping failed: {e}")
        return envelope_response(
            create_error_response("Database unavailable", "DATABASE_UNAVAILABLE", str(e)),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return envelope_response(
        create_success_response(HealthStatus().model_dump(), "Service is healthy")
    )
