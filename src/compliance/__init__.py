"""Compliance module for FuelEU Maritime (balance, banking, pooling)."""

from .exceptions import (
    BaselineNotSet,
    ComplianceError,
    InsufficientBankedError,
    InsufficientMembers,
    InvalidAmountError,
    NegativeBalanceError,
    PoolNotFound,
    RouteNotFound,
)
from .fueleu import ComplianceResult, PoolAllocation, PoolOutcome, allocate_pool, compute_balance, ghg_target
from .service import ComplianceService

__all__ = [
    "BaselineNotSet",
    "ComplianceError",
    "ComplianceResult",
    "ComplianceService",
    "InsufficientBankedError",
    "InsufficientMembers",
    "InvalidAmountError",
    "NegativeBalanceError",
    "PoolAllocation",
    "PoolNotFound",
    "PoolOutcome",
    "RouteNotFound",
    "allocate_pool",
    "compute_balance",
    "ghg_target",
]
