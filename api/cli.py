#!/usr/bin/env python3
"""
FuelEU Compliance CLI Tool.

Command-line interface for administrative tasks:
- Database operations (create tables, load reference routes)
- Compliance balance lookups and banking
- Health checks

Usage:
    python -m api.cli init-db
    python -m api.cli seed
    python -m api.cli list-routes --year 2024
    python -m api.cli compute-cb --route-id R002 --year 2024
    python -m api.cli bank --route-id R002 --year 2024
    python -m api.cli check-health
"""
import argparse
import sys
from typing import Optional

from src.compliance.exceptions import ComplianceError


def _service(db):
    from api.config import settings
    from api.repositories import SqlAlchemyUnitOfWork
    from src.compliance.service import ComplianceService

    return ComplianceService(
        SqlAlchemyUnitOfWork(db),
        ledger_scope_by_year=settings.ledger_scope_by_year,
    )


def init_db() -> None:
    """Initialize the database."""
    from api.database import init_db as do_init

    print("Initializing database...")
    do_init()
    print("Database initialized successfully.")


def seed() -> None:
    """Load the reference routes into an empty routes table."""
    from api.database import get_db_context
    from api.seed import seed_routes

    with get_db_context() as db:
        inserted = seed_routes(db)

    if inserted:
        print(f"\nInserted {inserted} reference routes.")
    else:
        print("\nRoutes table already populated, nothing to do.")


def list_routes(year: Optional[int] = None) -> None:
    """List routes."""
    from api.database import get_db_context

    with get_db_context() as db:
        routes = _service(db).list_routes(year=year)

        if not routes:
            print("\nNo routes found.")
            return

        print("\n" + "=" * 80)
        print("ROUTES")
        print("=" * 80)
        print(f"{'Route':<8} {'Year':<6} {'Vessel':<14} {'Fuel':<6} {'GHG':>10} {'Fuel (t)':>12} {'Baseline':>10}")
        print("-" * 80)

        for route in routes:
            print(
                f"{route.route_id:<8} "
                f"{route.year:<6} "
                f"{route.vessel_type[:13]:<14} "
                f"{route.fuel_type:<6} "
                f"{route.ghg_intensity:>10} "
                f"{route.fuel_consumption:>12} "
                f"{'Yes' if route.is_baseline else '':>10}"
            )

        print("=" * 80)
        print(f"Total: {len(routes)} route(s)\n")


def compute_cb(route_id: str, year: int) -> None:
    """Print the compliance balance of one route."""
    from api.database import get_db_context

    with get_db_context() as db:
        result = _service(db).compute_balance(route_id, year)

    print(f"\nRoute:        {result.route_id} ({result.year})")
    print(f"Target:       {result.ghg_target} gCO2eq/MJ")
    print(f"Actual:       {result.ghg_intensity} gCO2eq/MJ")
    print(f"Energy:       {result.energy_mj} MJ")
    print(f"CB:           {result.cb} gCO2eq")
    print(f"Banked:       {result.banked} gCO2eq")
    print(f"Adjusted CB:  {result.adjusted_cb} gCO2eq ({result.status})\n")


def bank(route_id: str, year: int) -> None:
    """Bank a route's surplus."""
    from api.database import get_db_context

    with get_db_context() as db:
        entry = _service(db).bank_surplus(route_id, year)
        print(f"\nBanked {entry.amount} gCO2eq for route {route_id} ({year}), entry #{entry.id}.")


def check_health(url: str) -> None:
    """Check API health."""
    import requests

    try:
        response = requests.get(url, timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"\nAPI Status: {data.get('status', 'unknown')}")
            print(f"Version: {data.get('version', 'unknown')}")
            print(f"Timestamp: {data.get('timestamp', 'unknown')}")
            for name, component in data.get("components", {}).items():
                print(f"  {name}: {component.get('status')} ({component.get('message')})")
        else:
            print(f"\nAPI returned status code: {response.status_code}")
            sys.exit(1)
    except requests.exceptions.ConnectionError:
        print("\nError: Could not connect to API. Is the server running?")
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="FuelEU Compliance CLI Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Create tables and load the reference routes:
    python -m api.cli init-db
    python -m api.cli seed

  Show the compliance balance of a route:
    python -m api.cli compute-cb --route-id R002 --year 2024

  Bank its surplus:
    python -m api.cli bank --route-id R002 --year 2024

  Check API health:
    python -m api.cli check-health
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Initialize the database")
    subparsers.add_parser("seed", help="Load the reference routes")

    list_parser = subparsers.add_parser("list-routes", help="List routes")
    list_parser.add_argument("--year", type=int, help="Only routes of this year")

    cb_parser = subparsers.add_parser("compute-cb", help="Compute a route's compliance balance")
    cb_parser.add_argument("--route-id", required=True)
    cb_parser.add_argument("--year", type=int, required=True)

    bank_parser = subparsers.add_parser("bank", help="Bank a route's surplus")
    bank_parser.add_argument("--route-id", required=True)
    bank_parser.add_argument("--year", type=int, required=True)

    health_parser = subparsers.add_parser("check-health", help="Check API health")
    health_parser.add_argument(
        "--url",
        default="http://localhost:8000/api/health",
        help="Health endpoint (default: http://localhost:8000/api/health)"
    )

    args = parser.parse_args(argv)

    try:
        if args.command == "init-db":
            init_db()
        elif args.command == "seed":
            seed()
        elif args.command == "list-routes":
            list_routes(args.year)
        elif args.command == "compute-cb":
            compute_cb(args.route_id, args.year)
        elif args.command == "bank":
            bank(args.route_id, args.year)
        elif args.command == "check-health":
            check_health(args.url)
        else:
            parser.print_help()
            sys.exit(1)
    except ComplianceError as e:
        print(f"\nError ({e.kind}): {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
