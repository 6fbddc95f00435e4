"""
FuelEU compliance API Pydantic schemas.

Re-exports all schema classes:
    from api.schemas import RouteResponse, PoolRequest, ...
"""

from .fueleu import (  # noqa: F401
    Amount,
    RouteResponse,
    RouteListResponse,
    RouteComparison,
    ComparisonResponse,
    ComplianceBalanceResponse,
    ComplianceLimitYear,
    ComplianceLimitsResponse,
    BankRequest,
    ApplyRequest,
    BankEntryResponse,
    BankEntryListResponse,
    PoolRequest,
    PoolAllocationModel,
    PoolResponse,
)
