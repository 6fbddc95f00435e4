"""
Banking API router.

Banks positive compliance balances to the ledger and draws them down.
Write endpoints are rate limited.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_compliance_service
from api.rate_limit import limiter, get_rate_limit_string
from api.schemas import (
    ApplyRequest,
    BankEntryListResponse,
    BankEntryResponse,
    BankRequest,
)
from src.compliance.service import ComplianceService

router = APIRouter(prefix="/api/banking", tags=["Banking"])


@router.get("/records", response_model=BankEntryListResponse)
async def list_bank_records(
    route_id: Optional[str] = Query(None, max_length=50),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """List ledger entries, oldest first."""
    entries = service.list_bank_entries(route_id=route_id, year=year)
    return BankEntryListResponse(
        entries=[BankEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.post("/bank", response_model=BankEntryResponse)
@limiter.limit(get_rate_limit_string())
async def bank_surplus(
    request: Request,
    body: BankRequest,
    service: ComplianceService = Depends(get_compliance_service),
):
    """Bank the route's raw surplus. Rejected when the raw balance is not positive."""
    entry = service.bank_surplus(body.route_id, body.year)
    return BankEntryResponse.model_validate(entry)


@router.post("/apply", response_model=BankEntryResponse)
@limiter.limit(get_rate_limit_string())
async def apply_banked(
    request: Request,
    body: ApplyRequest,
    service: ComplianceService = Depends(get_compliance_service),
):
    """Apply previously banked surplus to a route."""
    entry = service.apply_banked(body.route_id, body.year, body.amount)
    return BankEntryResponse.model_validate(entry)
