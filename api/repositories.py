"""Data access layer for routes, the banking ledger and pools."""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from api.models import BankEntry, Pool, PoolMember, Route

logger = logging.getLogger(__name__)


class RouteRepository:
    """Repository for routes and the per-year baseline flag."""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        vessel_type: Optional[str] = None,
        fuel_type: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[Route]:
        """List routes ordered by identifier, optionally filtered."""
        query = self.db.query(Route)
        if vessel_type:
            query = query.filter(Route.vessel_type == vessel_type)
        if fuel_type:
            query = query.filter(Route.fuel_type == fuel_type)
        if year is not None:
            query = query.filter(Route.year == year)
        return query.order_by(Route.route_id, Route.year).all()

    def get(self, route_id: str, year: int, for_update: bool = False) -> Optional[Route]:
        """Fetch one route; ``for_update`` takes a row lock until commit."""
        query = self.db.query(Route).filter(Route.route_id == route_id, Route.year == year)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def lock_all_years(self, route_id: str) -> List[Route]:
        """Row-lock every year of a route, in year order."""
        return (
            self.db.query(Route)
            .filter(Route.route_id == route_id)
            .order_by(Route.year)
            .with_for_update()
            .all()
        )

    def get_baseline(self, year: int) -> Optional[Route]:
        return (
            self.db.query(Route)
            .filter(Route.year == year, Route.is_baseline.is_(True))
            .first()
        )

    def set_baseline(self, route: Route) -> None:
        """Clear every baseline of the route's year, then flag the route."""
        self.db.execute(
            update(Route)
            .where(Route.year == route.year, Route.is_baseline.is_(True))
            .values(is_baseline=False)
        )
        self.db.execute(
            update(Route).where(Route.id == route.id).values(is_baseline=True)
        )
        self.db.expire(route)

    def count(self) -> int:
        return self.db.query(Route).count()

    def add(self, **fields) -> Route:
        route = Route(**fields)
        self.db.add(route)
        self.db.flush()
        return route


class LedgerRepository:
    """Repository for append-only bank entries."""

    def __init__(self, db: Session):
        self.db = db

    def for_route(self, route_id: str, year: Optional[int] = None) -> List[BankEntry]:
        """Ledger rows of one route identifier, all years unless ``year`` is given."""
        query = self.db.query(BankEntry).filter(BankEntry.route_id == route_id)
        if year is not None:
            query = query.filter(BankEntry.year == year)
        return query.order_by(BankEntry.created_at, BankEntry.id).all()

    def list(self, route_id: Optional[str] = None, year: Optional[int] = None) -> List[BankEntry]:
        query = self.db.query(BankEntry)
        if route_id:
            query = query.filter(BankEntry.route_id == route_id)
        if year is not None:
            query = query.filter(BankEntry.year == year)
        return query.order_by(BankEntry.created_at, BankEntry.id).all()

    def add(self, route_id: str, year: int, kind: str, amount) -> BankEntry:
        """Append a ledger row (flushed, not committed)."""
        entry = BankEntry(route_id=route_id, year=year, kind=kind, amount=amount)
        self.db.add(entry)
        self.db.flush()  # Get ID without committing
        return entry


class PoolRepository:
    """Repository for stored pooling outcomes."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, year: int, total_adjusted_cb, is_valid: bool, allocations) -> Pool:
        pool = Pool(year=year, total_adjusted_cb=total_adjusted_cb, is_valid=is_valid)
        for position, allocation in enumerate(allocations):
            pool.members.append(PoolMember(
                position=position,
                route_id=allocation.route_id,
                cb_before=allocation.before,
                cb_after=allocation.after,
            ))
        self.db.add(pool)
        self.db.flush()
        return pool

    def get(self, pool_id: int) -> Optional[Pool]:
        return self.db.query(Pool).filter(Pool.id == pool_id).first()


class SqlAlchemyUnitOfWork:
    """
    Groups the repositories over one session.

    Used as a context manager, any exception rolls the session back.
    """

    def __init__(self, db: Session):
        self.db = db
        self.routes = RouteRepository(db)
        self.ledger = LedgerRepository(db)
        self.pools = PoolRepository(db)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
