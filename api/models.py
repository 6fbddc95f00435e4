"""
SQLAlchemy models for the FuelEU compliance database.

Route and BankEntry are the durable entities. Pool and PoolMember record
pooling outcomes as they were computed at creation time.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Numeric,
    ForeignKey,
    ForeignKeyConstraint,
    CheckConstraint,
    UniqueConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from api.database import Base


class Route(Base):
    """Vessel voyage record for a reporting year."""

    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(50), nullable=False, index=True)
    vessel_type = Column(String(50), nullable=False)
    fuel_type = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False, index=True)
    ghg_intensity = Column(Numeric(10, 4), nullable=False)  # gCO2eq/MJ
    fuel_consumption = Column(Numeric(12, 2), nullable=False)  # tonnes
    distance = Column(Numeric(12, 2), nullable=False)  # km
    total_emissions = Column(Numeric(12, 2), nullable=False)  # tonnes, informational
    is_baseline = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("route_id", "year", name="uq_routes_route_year"),
        # At most one baseline per year
        Index(
            "uq_routes_baseline_per_year",
            "year",
            unique=True,
            postgresql_where=text("is_baseline"),
            sqlite_where=text("is_baseline = 1"),
        ),
    )

    def __repr__(self):
        return f"<Route(route_id='{self.route_id}', year={self.year}, baseline={self.is_baseline})>"


class BankEntry(Base):
    """Immutable ledger transaction against a route's balance."""

    __tablename__ = "bank_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    kind = Column(String(20), nullable=False)
    amount = Column(Numeric(24, 8), nullable=False)  # gCO2eq, always positive magnitude
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        ForeignKeyConstraint(
            ["route_id", "year"], ["routes.route_id", "routes.year"],
            name="fk_bank_entries_route",
        ),
        CheckConstraint("kind IN ('banked', 'applied')", name="ck_bank_entries_kind"),
        CheckConstraint("amount >= 0", name="ck_bank_entries_amount"),
        Index("ix_bank_entries_route", "route_id", "year"),
    )

    def __repr__(self):
        return f"<BankEntry(route_id='{self.route_id}', kind={self.kind}, amount={self.amount})>"


class Pool(Base):
    """Pooling outcome for a shared reporting year."""

    __tablename__ = "pools"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, index=True)
    total_adjusted_cb = Column(Numeric(24, 8), nullable=False)
    is_valid = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    members = relationship(
        "PoolMember",
        back_populates="pool",
        order_by="PoolMember.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Pool(id={self.id}, year={self.year}, valid={self.is_valid})>"


class PoolMember(Base):
    """One route's balance before and after pooling."""

    __tablename__ = "pool_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pool_id = Column(Integer, ForeignKey("pools.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    route_id = Column(String(50), nullable=False)
    cb_before = Column(Numeric(24, 8), nullable=False)
    cb_after = Column(Numeric(24, 8), nullable=False)

    # Relationships
    pool = relationship("Pool", back_populates="members")

    __table_args__ = (
        UniqueConstraint("pool_id", "position", name="uq_pool_members_position"),
    )

    def __repr__(self):
        return f"<PoolMember(pool_id={self.pool_id}, route_id='{self.route_id}')>"
