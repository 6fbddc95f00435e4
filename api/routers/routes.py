"""
Routes API router.

Lists route records, manages the per-year baseline route and compares
routes against it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_compliance_service
from api.rate_limit import limiter, get_rate_limit_string
from api.schemas import (
    ComparisonResponse,
    RouteComparison,
    RouteListResponse,
    RouteResponse,
)
from src.compliance.service import ComplianceService

router = APIRouter(prefix="/api/routes", tags=["Routes"])


@router.get("", response_model=RouteListResponse)
async def list_routes(
    vessel_type: Optional[str] = Query(None, description="Filter by vessel type"),
    fuel_type: Optional[str] = Query(None, description="Filter by fuel type"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """List routes with optional filters."""
    routes = service.list_routes(vessel_type=vessel_type, fuel_type=fuel_type, year=year)
    return RouteListResponse(
        routes=[RouteResponse.model_validate(r) for r in routes],
        total=len(routes),
    )


@router.get("/comparison", response_model=ComparisonResponse)
async def compare_routes(
    year: int = Query(..., ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """Compare every route of a year against that year's baseline."""
    result = service.compare_to_baseline(year)
    return ComparisonResponse(
        year=result["year"],
        target=result["target"],
        baseline=RouteResponse.model_validate(result["baseline"]),
        comparisons=[RouteComparison(**c) for c in result["comparisons"]],
    )


@router.post("/{route_id}/baseline", response_model=RouteResponse)
@limiter.limit(get_rate_limit_string())
async def set_baseline(
    request: Request,
    route_id: str,
    year: int = Query(..., ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """Make a route the baseline of its year (clears any other baseline)."""
    route = service.set_baseline(route_id, year)
    return RouteResponse.model_validate(route)


@router.get("/baseline", response_model=RouteResponse)
async def get_baseline(
    year: int = Query(..., ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """Get the baseline route of a year."""
    return RouteResponse.model_validate(service.get_baseline(year))


@router.get("/{route_id}", response_model=RouteResponse)
async def get_route(
    route_id: str,
    year: int = Query(..., ge=2000, le=2100),
    service: ComplianceService = Depends(get_compliance_service),
):
    """Get one route record for a year."""
    return RouteResponse.model_validate(service.get_route(route_id, year))
