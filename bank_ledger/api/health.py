"""
Health check endpoint.

Used by load balancers and monitoring systems to verify the
service is up and can reach its ledger database.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bank_ledger.config import get_settings
from bank_ledger.models.base import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Report service status and database connectivity.

    A failed probe query marks the instance degraded rather than
    failing the request, so the caller always gets a body.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "bank-ledger",
        "database": db_status,
        "overdraft_enabled": get_settings().OVERDRAFT_ENABLED,
    }
