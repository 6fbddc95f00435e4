"""Dependency injection for FastAPI endpoints."""

from fastapi import Depends
from sqlalchemy.orm import Session

from api.config import settings
from api.database import get_db
from api.repositories import SqlAlchemyUnitOfWork
from src.compliance.service import ComplianceService


def get_compliance_service(db: Session = Depends(get_db)) -> ComplianceService:
    """Provide a ComplianceService bound to the request's session."""
    return ComplianceService(
        SqlAlchemyUnitOfWork(db),
        ledger_scope_by_year=settings.ledger_scope_by_year,
    )
