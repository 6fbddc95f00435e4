"""
FuelEU Maritime (EU 2023/1805) compliance balance arithmetic.

Implements the per-route compliance core:
- GHG intensity target by reporting year (stepwise reduction schedule)
- Compliance balance (surplus/deficit vs annual target)
- Ledger netting of banked/applied entries
- Pool aggregation and display-oriented reallocation

All quantities are ``decimal.Decimal``. Balances at route scale run into
hundreds of millions of gCO2eq, so float shortcuts are not acceptable.

Reference: EU Regulation 2023/1805 (FuelEU Maritime)
Baseline: 91.16 gCO2eq/MJ (2020 EU MRV reference)
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Regulatory Constants
# =============================================================================

# Lower Calorific Value (MJ per tonne), one value for every fuel type
LCV = Decimal("41000")

# GHG intensity reference (gCO2eq/MJ, 2020 baseline)
REFERENCE_GHG = Decimal("91.16")

# Reduction vs reference (%). A step holds until the next step year.
REDUCTION_TARGETS = {
    2025: Decimal("2"),
    2030: Decimal("6"),
    2035: Decimal("14.5"),
    2040: Decimal("31"),
    2045: Decimal("62"),
    2050: Decimal("80"),
}

BANKED = "banked"
APPLIED = "applied"
ENTRY_KINDS = (BANKED, APPLIED)

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Convert a numeric value to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


# =============================================================================
# Targets
# =============================================================================

def reduction_pct(year: int) -> Decimal:
    """
    Get the applicable reduction percentage for a reporting year.

    Years before the first scheduled step are assessed against the first
    step; years after the last step keep the last one.
    """
    steps = sorted(REDUCTION_TARGETS)
    pct = REDUCTION_TARGETS[steps[0]]
    for step_year in steps:
        if year >= step_year:
            pct = REDUCTION_TARGETS[step_year]
        else:
            break
    return pct


def ghg_target(year: int) -> Decimal:
    """GHG intensity limit (gCO2eq/MJ) for a reporting year."""
    return REFERENCE_GHG * (1 - reduction_pct(year) / 100)


def get_limits() -> List[dict]:
    """Return the GHG intensity limit for every scheduled step year."""
    return [
        {
            "year": year,
            "reduction_pct": pct,
            "ghg_target": ghg_target(year),
        }
        for year, pct in sorted(REDUCTION_TARGETS.items())
    ]


# =============================================================================
# Result Dataclasses
# =============================================================================

@dataclass(frozen=True)
class ComplianceResult:
    """Computed compliance view of one route. Never persisted."""
    route_id: str
    year: int
    ghg_target: Decimal
    ghg_intensity: Decimal
    energy_mj: Decimal
    cb: Decimal  # raw balance, positive=surplus
    banked: Decimal  # sum(banked) - sum(applied)
    adjusted_cb: Decimal

    @property
    def status(self) -> str:
        if self.adjusted_cb > 0:
            return "surplus"
        if self.adjusted_cb < 0:
            return "deficit"
        return "neutral"


@dataclass(frozen=True)
class PoolAllocation:
    """One member's balance before and after pooling."""
    route_id: str
    before: Decimal
    after: Decimal


@dataclass
class PoolOutcome:
    """Pool-level verdict and per-member reallocation."""
    total_adjusted_cb: Decimal
    valid: bool
    allocations: List[PoolAllocation] = field(default_factory=list)
    pool_id: Optional[int] = None
    year: Optional[int] = None


# =============================================================================
# Calculator
# =============================================================================

def energy_in_scope(fuel_consumption_t) -> Decimal:
    """Energy in scope (MJ) = fuel consumption (t) * LCV."""
    return to_decimal(fuel_consumption_t) * LCV


def net_banked(entries: Iterable, route_id: Optional[str] = None) -> Decimal:
    """
    Net ledger position: sum of banked minus sum of applied amounts.

    Args:
        entries: Ledger rows exposing ``kind`` and ``amount``
        route_id: When given, rows for any other route are skipped

    Returns:
        Net banked amount in gCO2eq
    """
    banked = ZERO
    applied = ZERO
    for entry in entries:
        if route_id is not None and getattr(entry, "route_id", route_id) != route_id:
            continue
        amount = to_decimal(entry.amount)
        if entry.kind == BANKED:
            banked += amount
        elif entry.kind == APPLIED:
            applied += amount
        else:
            logger.warning("Ignoring ledger entry with unknown kind: %s", entry.kind)
    return banked - applied


def compute_balance(route, entries: Iterable) -> ComplianceResult:
    """
    Compute the compliance balance of a route against its year's target.

    CB = (target - intensity) * fuel consumption * LCV

    Args:
        route: Route record exposing ``route_id``, ``year``,
               ``ghg_intensity`` and ``fuel_consumption``
        entries: Ledger rows for the route

    Returns:
        ComplianceResult with raw, banked and adjusted balances
    """
    target = ghg_target(route.year)
    intensity = to_decimal(route.ghg_intensity)
    energy = energy_in_scope(route.fuel_consumption)

    cb = (target - intensity) * energy
    banked = net_banked(entries, route_id=route.route_id)

    return ComplianceResult(
        route_id=route.route_id,
        year=route.year,
        ghg_target=target,
        ghg_intensity=intensity,
        energy_mj=energy,
        cb=cb,
        banked=banked,
        adjusted_cb=cb + banked,
    )


# =============================================================================
# Pooling
# =============================================================================

def allocate_pool(members: Iterable[ComplianceResult]) -> PoolOutcome:
    """
    Aggregate members' adjusted balances into a pool verdict.

    The pool is valid when the adjusted balances sum to >= 0. Members are
    listed largest surplus first. In a valid pool every deficit member is
    shown as absorbed (after = 0); everything else keeps its balance. The
    surplus is not drawn down, so totals before and after differ.

    Callers must reject pools with fewer than two members.
    """
    members = list(members)
    total = sum((m.adjusted_cb for m in members), ZERO)
    valid = total >= 0

    allocations = []
    for m in sorted(members, key=lambda m: m.adjusted_cb, reverse=True):
        after = ZERO if (valid and m.adjusted_cb < 0) else m.adjusted_cb
        allocations.append(PoolAllocation(
            route_id=m.route_id,
            before=m.adjusted_cb,
            after=after,
        ))

    return PoolOutcome(
        total_adjusted_cb=total,
        valid=valid,
        allocations=allocations,
    )


# =============================================================================
# Baseline Comparison
# =============================================================================

def percent_difference(ghg_intensity, baseline_intensity) -> Decimal:
    """Percentage difference of a route's intensity vs the baseline's."""
    baseline = to_decimal(baseline_intensity)
    if baseline == 0:
        raise ValueError("Baseline GHG intensity must be non-zero")
    return (to_decimal(ghg_intensity) / baseline - 1) * 100


def is_compliant(ghg_intensity, year: int) -> bool:
    """True when the intensity does not exceed the year's target."""
    return to_decimal(ghg_intensity) <= ghg_target(year)
