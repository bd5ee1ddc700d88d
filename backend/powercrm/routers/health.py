"""Liveness endpoint with a database round-trip."""

from __future__ import annotations

import datetime as dt
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from powercrm.db.session import get_db
from powercrm.schemas.common import ApiResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=ApiResponse[dict])
def health(db: Session = Depends(get_db)) -> ApiResponse:
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database = "unavailable"
    return ApiResponse(
        success=database == "ok",
        message="سرور فعال است",
        data={"status": "ok", "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(), "database": database},
    )
