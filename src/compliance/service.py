"""
Compliance use cases.

Binds the pure FuelEU arithmetic to the persistence collaborators:
balance lookup, banking, draw-down, pooling and baseline management.

The service works against a unit of work exposing ``routes``, ``ledger``
and ``pools`` repositories plus ``commit()``; used as a context manager it
rolls back on any exception. Mutations lock the route row before
recomputing its balance so concurrent writers for the same route
serialize.
"""

import logging
from typing import List, Optional, Sequence

from src.compliance.exceptions import (
    BaselineNotSet,
    InsufficientBankedError,
    InsufficientMembers,
    InvalidAmountError,
    NegativeBalanceError,
    PoolNotFound,
    RouteNotFound,
)
from src.compliance.fueleu import (
    APPLIED,
    BANKED,
    ComplianceResult,
    PoolAllocation,
    PoolOutcome,
    allocate_pool,
    compute_balance,
    ghg_target,
    is_compliant,
    percent_difference,
    to_decimal,
)
from src.metrics import metrics, timed

logger = logging.getLogger(__name__)


class ComplianceService:
    """FuelEU compliance operations over a unit of work."""

    def __init__(self, uow, ledger_scope_by_year: bool = False):
        self.uow = uow
        self.ledger_scope_by_year = ledger_scope_by_year

    # ---- balance ------------------------------------------------------------

    @timed("compute_balance")
    def compute_balance(self, route_id: str, year: int) -> ComplianceResult:
        """Compute the compliance balance of a route for a year."""
        route = self._get_route(route_id, year)
        return self._balance(route, year)

    # ---- banking ------------------------------------------------------------

    @timed("bank_surplus")
    def bank_surplus(self, route_id: str, year: int):
        """
        Bank a route's raw surplus to the ledger.

        Only a positive raw balance may be banked, and the amount banked is
        the raw balance, never the adjusted one. Each call is a separate
        ledger transaction: repeated calls bank repeatedly.

        Raises:
            RouteNotFound: No route matches
            NegativeBalanceError: Raw balance is zero or negative

        Returns:
            The persisted BankEntry
        """
        with self.uow:
            route = self._lock_route(route_id, year)
            result = self._balance(route, year)

            if result.cb <= 0:
                logger.warning(
                    "Bank rejected for route %s/%s: CB=%s", route_id, year, result.cb
                )
                metrics.increment("bank_rejected")
                raise NegativeBalanceError(route_id, result.cb)

            entry = self.uow.ledger.add(
                route_id=route_id, year=year, kind=BANKED, amount=result.cb,
            )
            self.uow.commit()

        metrics.increment("ledger_banked")
        logger.info("Banked %s gCO2eq for route %s/%s", result.cb, route_id, year)
        return entry

    def apply_banked(self, route_id: str, year: int, amount):
        """
        Draw down previously banked surplus against a route.

        Raises:
            RouteNotFound: No route matches
            InvalidAmountError: Amount is not positive
            InsufficientBankedError: Amount exceeds net banked

        Returns:
            The persisted BankEntry (kind=applied)
        """
        amount = to_decimal(amount)
        if amount <= 0:
            raise InvalidAmountError(f"Amount to apply must be positive, got {amount}")

        with self.uow:
            route = self._lock_route(route_id, year)
            result = self._balance(route, year)

            if amount > result.banked:
                logger.warning(
                    "Apply rejected for route %s/%s: requested %s, banked %s",
                    route_id, year, amount, result.banked,
                )
                metrics.increment("apply_rejected")
                raise InsufficientBankedError(route_id, amount, result.banked)

            entry = self.uow.ledger.add(
                route_id=route_id, year=year, kind=APPLIED, amount=amount,
            )
            self.uow.commit()

        metrics.increment("ledger_applied")
        logger.info("Applied %s gCO2eq to route %s/%s", amount, route_id, year)
        return entry

    def list_bank_entries(
        self, route_id: Optional[str] = None, year: Optional[int] = None,
    ) -> List:
        """List ledger rows, oldest first."""
        return self.uow.ledger.list(route_id=route_id, year=year)

    # ---- pooling ------------------------------------------------------------

    @timed("create_pool")
    def create_pool(self, route_ids: Sequence[str], year: int) -> PoolOutcome:
        """
        Pool the adjusted balances of several routes for one year.

        Duplicate identifiers are collapsed. The outcome is persisted as a
        Pool with one PoolMember per allocation.

        Raises:
            InsufficientMembers: Fewer than two distinct routes
            RouteNotFound: Any identifier has no route for the year
        """
        unique_ids = list(dict.fromkeys(route_ids))
        if len(unique_ids) < 2:
            raise InsufficientMembers(len(unique_ids))

        with self.uow:
            members = [
                self._balance(self._get_route(rid, year), year)
                for rid in unique_ids
            ]
            outcome = allocate_pool(members)

            pool = self.uow.pools.add(
                year=year,
                total_adjusted_cb=outcome.total_adjusted_cb,
                is_valid=outcome.valid,
                allocations=outcome.allocations,
            )
            self.uow.commit()
            outcome.pool_id = pool.id
            outcome.year = year

        metrics.increment("pools_created")
        if not outcome.valid:
            metrics.increment("pools_invalid")
        logger.info(
            "Created pool %s for %s (%d members, total=%s, valid=%s)",
            outcome.pool_id, year, len(members), outcome.total_adjusted_cb, outcome.valid,
        )
        return outcome

    def get_pool(self, pool_id: int) -> PoolOutcome:
        """Load a stored pool."""
        pool = self.uow.pools.get(pool_id)
        if pool is None:
            raise PoolNotFound(pool_id)

        return PoolOutcome(
            total_adjusted_cb=to_decimal(pool.total_adjusted_cb),
            valid=pool.is_valid,
            allocations=[
                PoolAllocation(
                    route_id=m.route_id,
                    before=to_decimal(m.cb_before),
                    after=to_decimal(m.cb_after),
                )
                for m in pool.members
            ],
            pool_id=pool.id,
            year=pool.year,
        )

    # ---- routes & baseline --------------------------------------------------

    def list_routes(self, vessel_type=None, fuel_type=None, year=None) -> List:
        return self.uow.routes.list(vessel_type=vessel_type, fuel_type=fuel_type, year=year)

    def get_route(self, route_id: str, year: int):
        return self._get_route(route_id, year)

    def get_baseline(self, year: int):
        baseline = self.uow.routes.get_baseline(year)
        if baseline is None:
            raise BaselineNotSet(year)
        return baseline

    def set_baseline(self, route_id: str, year: int):
        """Make a route the single baseline of its year."""
        with self.uow:
            route = self._get_route(route_id, year, for_update=True)
            self.uow.routes.set_baseline(route)
            self.uow.commit()

        logger.info("Baseline for %s set to route %s", year, route_id)
        return route

    def compare_to_baseline(self, year: int) -> dict:
        """
        Compare every route of a year against the year's baseline.

        Returns:
            Dict with the baseline route, the target and one row per
            non-baseline route (percent difference, compliant flag)
        """
        baseline = self.get_baseline(year)
        target = ghg_target(year)

        comparisons = []
        for route in self.uow.routes.list(year=year):
            if route.id == baseline.id:
                continue
            comparisons.append({
                "route_id": route.route_id,
                "vessel_type": route.vessel_type,
                "fuel_type": route.fuel_type,
                "ghg_intensity": to_decimal(route.ghg_intensity),
                "baseline_intensity": to_decimal(baseline.ghg_intensity),
                "percent_diff": percent_difference(route.ghg_intensity, baseline.ghg_intensity),
                "compliant": is_compliant(route.ghg_intensity, year),
            })

        return {
            "year": year,
            "target": target,
            "baseline": baseline,
            "comparisons": comparisons,
        }

    # ---- private helpers ----------------------------------------------------

    def _get_route(self, route_id: str, year: int, for_update: bool = False):
        route = self.uow.routes.get(route_id, year, for_update=for_update)
        if route is None:
            raise RouteNotFound(route_id, year)
        return route

    def _lock_route(self, route_id: str, year: int):
        # An unscoped ledger is shared by all years of the route
        if not self.ledger_scope_by_year:
            self.uow.routes.lock_all_years(route_id)
        return self._get_route(route_id, year, for_update=True)

    def _balance(self, route, year: int) -> ComplianceResult:
        entries = self.uow.ledger.for_route(
            route.route_id, year=year if self.ledger_scope_by_year else None,
        )
        return compute_balance(route, entries)

