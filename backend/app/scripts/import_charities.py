"""Module: import_charities.

Usage (inside the backend container):
    python -m app.scripts.import_charities categories db/categories.csv
    python -m app.scripts.import_charities addresses db/data.csv --limit 1000
    python -m app.scripts.import_charities category-mappings db/data.csv --limit 1000
    python -m app.scripts.import_charities emails db/emails.csv --limit 500
"""

import argparse

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.session import SessionLocal
from app.services import charity_import
from app.services.geocoding import get_geocoder


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a row count of zero or more, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulk-load charity register data.")
    parser.add_argument(
        "kind",
        choices=["categories", "addresses", "category-mappings", "emails"],
        help="Which loader to run",
    )
    parser.add_argument("path", help="CSV file to read")
    parser.add_argument("--limit", type=non_negative_int, default=None, help="Maximum number of rows to read")
    parser.add_argument("--no-geocode", action="store_true", help="Skip geocoding for this run")
    return parser


def run(kind: str, path: str, limit: int | None, geocode: bool = True) -> charity_import.ImportResult:
    geocoder = get_geocoder() if geocode else None
    session = SessionLocal()
    try:
        if kind == "categories":
            return charity_import.import_category_catalogue(session, path, limit)
        if kind == "addresses":
            return charity_import.import_addresses(session, path, limit, geocoder)
        if kind == "category-mappings":
            return charity_import.import_category_mappings(session, path, limit)
        return charity_import.import_emails(session, path, limit, geocoder)
    finally:
        session.close()


if __name__ == "__main__":
    configure_logging(settings.log_level)
    args = build_parser().parse_args()
    result = run(args.kind, args.path, args.limit, geocode=not args.no_geocode)
    status = f"aborted: {result.error}" if result.aborted else "done"
    print(f"{args.kind}: {status}. rows read={result.attempted}, written={result.succeeded}")
