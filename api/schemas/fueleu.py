"""FuelEU Maritime compliance API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Exact Decimal internally, plain JSON number on the wire
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

class RouteResponse(BaseModel):
    """Route record."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    route_id: str
    vessel_type: str
    fuel_type: str
    year: int
    ghg_intensity: Amount
    fuel_consumption: Amount
    distance: Amount
    total_emissions: Amount
    is_baseline: bool


class RouteListResponse(BaseModel):
    routes: List[RouteResponse]
    total: int


class RouteComparison(BaseModel):
    """One route compared against the year's baseline."""
    route_id: str
    vessel_type: str
    fuel_type: str
    ghg_intensity: Amount
    baseline_intensity: Amount
    percent_diff: Amount
    compliant: bool


class ComparisonResponse(BaseModel):
    year: int
    target: Amount
    baseline: RouteResponse
    comparisons: List[RouteComparison]


# ---------------------------------------------------------------------------
# Compliance balance
# ---------------------------------------------------------------------------

class ComplianceBalanceResponse(BaseModel):
    """Compliance balance of one route."""
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    year: int
    ghg_target: Amount
    ghg_intensity: Amount
    energy_mj: Amount
    cb: Amount
    banked: Amount
    adjusted_cb: Amount
    status: str


class ComplianceLimitYear(BaseModel):
    """GHG target for a step year."""
    year: int
    reduction_pct: Amount
    ghg_target: Amount


class ComplianceLimitsResponse(BaseModel):
    limits: List[ComplianceLimitYear]
    reference_ghg: Amount
    lcv_mj_per_t: Amount


# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------

class BankRequest(BaseModel):
    """Request to bank a route's surplus."""
    route_id: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=2000, le=2100, description="Reporting year")


class ApplyRequest(BaseModel):
    """Request to draw down banked surplus."""
    route_id: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., ge=2000, le=2100, description="Reporting year")
    amount: Decimal = Field(..., gt=0, description="gCO2eq to apply")


class BankEntryResponse(BaseModel):
    """Ledger row."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    route_id: str
    year: int
    kind: str
    amount: Amount
    created_at: datetime


class BankEntryListResponse(BaseModel):
    entries: List[BankEntryResponse]
    total: int


# ---------------------------------------------------------------------------
# Pooling
# ---------------------------------------------------------------------------

class PoolRequest(BaseModel):
    """Request to pool several routes of one year."""
    year: int = Field(..., ge=2000, le=2100, description="Reporting year")
    route_ids: List[str] = Field(..., max_length=50, description="Route identifiers")


class PoolAllocationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    before: Amount
    after: Amount


class PoolResponse(BaseModel):
    """Pool verdict and per-member allocation."""
    model_config = ConfigDict(from_attributes=True)

    pool_id: Optional[int] = None
    year: Optional[int] = None
    total_adjusted_cb: Amount
    valid: bool
    allocations: List[PoolAllocationModel]
