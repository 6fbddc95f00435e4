"""
Reference route data.

Five voyages across 2024 and 2025 used for demonstrations and local runs.
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from api.repositories import RouteRepository

logger = logging.getLogger(__name__)

# route_id, vessel_type, fuel_type, year, ghg_intensity, fuel_consumption (t), distance (km), total_emissions (t)
REFERENCE_ROUTES = [
    ("R001", "Container", "HFO", 2024, "91.0", "5000", "12000", "4500"),
    ("R002", "BulkCarrier", "LNG", 2024, "88.0", "4800", "11500", "4200"),
    ("R003", "Tanker", "MGO", 2024, "93.5", "5100", "12500", "4700"),
    ("R004", "RoRo", "HFO", 2025, "89.2", "4900", "11800", "4300"),
    ("R005", "Container", "LNG", 2025, "90.5", "4950", "11900", "4400"),
]


def seed_routes(db: Session) -> int:
    """
    Insert the reference routes when the routes table is empty.

    Returns:
        Number of routes inserted (0 if the table already had data)
    """
    repo = RouteRepository(db)
    if repo.count() > 0:
        logger.info("Routes table not empty, skipping seed")
        return 0

    for route_id, vessel_type, fuel_type, year, ghg, fuel, distance, emissions in REFERENCE_ROUTES:
        repo.add(
            route_id=route_id,
            vessel_type=vessel_type,
            fuel_type=fuel_type,
            year=year,
            ghg_intensity=Decimal(ghg),
            fuel_consumption=Decimal(fuel),
            distance=Decimal(distance),
            total_emissions=Decimal(emissions),
            is_baseline=False,
        )
    db.commit()

    logger.info(f"Seeded {len(REFERENCE_ROUTES)} reference routes")
    return len(REFERENCE_ROUTES)
