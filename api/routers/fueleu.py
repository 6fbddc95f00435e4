"""
FuelEU Maritime (EU 2023/1805) compliance balance API router.

Computes per-route compliance balances against the yearly GHG intensity
target and exposes the target schedule.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_compliance_service
from api.schemas import (
    ComplianceBalanceResponse,
    ComplianceLimitYear,
    ComplianceLimitsResponse,
)
from src.compliance.fueleu import LCV, REFERENCE_GHG, get_limits
from src.compliance.service import ComplianceService

router = APIRouter(prefix="/api/compliance", tags=["FuelEU Compliance"])


# ---- reference data endpoints -----------------------------------------------

@router.get("/limits", response_model=ComplianceLimitsResponse)
async def get_compliance_limits():
    """Return GHG intensity targets for all step years."""
    return ComplianceLimitsResponse(
        limits=[ComplianceLimitYear(**lim) for lim in get_limits()],
        reference_ghg=REFERENCE_GHG,
        lcv_mj_per_t=LCV,
    )


# ---- calculation endpoints --------------------------------------------------

@router.get("/cb", response_model=ComplianceBalanceResponse)
async def get_compliance_balance(
    route_id: str = Query(..., min_length=1, max_length=50),
    year: int = Query(..., ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """Compute raw, banked and adjusted compliance balance of a route."""
    result = service.compute_balance(route_id, year)
    return ComplianceBalanceResponse.model_validate(result)
