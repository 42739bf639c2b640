"""Storefront management CLI.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py reconcile --max-age 30   # Resolve unresolved card payments
"""

import argparse
import sys
from datetime import timedelta


def setup_database():
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_database():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def reconcile(max_age_minutes):
    from storefront.domain import storefront
    from storefront.payments.reconciliation import reconcile_unresolved_payments

    storefront.init()
    with storefront.domain_context():
        report = reconcile_unresolved_payments(max_age=timedelta(minutes=max_age_minutes))

    print(f"Confirmed: {len(report.confirmed)}")
    print(f"Cancelled: {len(report.cancelled)}")
    print(f"Still unresolved: {len(report.still_unresolved)}")


def main():
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    reconcile_parser = subparsers.add_parser("reconcile", help="Resolve card payments with an unknown outcome")
    reconcile_parser.add_argument(
        "--max-age",
        type=int,
        default=30,
        help="Minutes after which a payment the gateway never saw is cancelled (default: 30)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "reconcile":
        reconcile(args.max_age)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
