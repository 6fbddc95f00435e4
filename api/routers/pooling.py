"""
Pooling API router.

Pools several routes' adjusted balances for one year and stores the
outcome.
"""

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_compliance_service
from api.rate_limit import limiter, get_rate_limit_string
from api.schemas import PoolRequest, PoolResponse
from src.compliance.service import ComplianceService

router = APIRouter(prefix="/api/pools", tags=["Pooling"])


@router.post("", response_model=PoolResponse)
@limiter.limit(get_rate_limit_string())
async def create_pool(
    request: Request,
    body: PoolRequest,
    service: ComplianceService = Depends(get_compliance_service),
):
    """Create a pool from at least two routes of the same year."""
    outcome = service.create_pool(body.route_ids, body.year)
    return PoolResponse.model_validate(outcome)


@router.get("/{pool_id}", response_model=PoolResponse)
async def get_pool(
    pool_id: int,
    service: ComplianceService = Depends(get_compliance_service),
):
    """Get a stored pool."""
    return PoolResponse.model_validate(service.get_pool(pool_id))
