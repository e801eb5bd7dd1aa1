"""Module: charity_import.

Bulk loaders for the charity commission register export:

  - categories:         classification catalogue (code + name)
  - addresses:          one organisation per register row
  - category mappings:  links organisations to their classification codes
  - emails:             fills in missing organisation emails

Every loader reads at most ``limit`` rows in file order and commits row by
row. A malformed row stops the batch; rows committed before it are kept.
"""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import asdict, dataclass
from contextlib import closing
from itertools import islice
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import MalformedImportRow
from app.db.models.category import Category
from app.db.models.organisation import Organisation
from app.services.geocoding import Geocoder
from app.services.organisations import find_by_name, organisations_query, save_organisation

logger = logging.getLogger(__name__)

# Register export column names the importer depends on.
CSV_HEADERS: dict[str, str] = {
    "name": "Title",
    "description": "Activities",
    "address": "Contact Address",
    "website": "website",
    "telephone": "Contact Telephone",
    "date_removed": "date removed",
    "cc_id": "Charity Classification",
}

DEFAULT_DESCRIPTION = "No information recorded"

# Email list layout: organisation name first, email in the eighth column.
EMAIL_NAME_COLUMN = 0
EMAIL_ADDRESS_COLUMN = 7

POSTCODE_RE = re.compile(r"[\s,]*\b([A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2})\s*$", re.IGNORECASE)
CATEGORY_CODE_SPLIT_RE = re.compile(r"[;,]")
_WORD_RE = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")


@dataclass
class CharityRecord:
    name: str
    description: str
    address: str
    postcode: str
    website: str
    telephone: str
    donation_info: str = ""

    def to_organisation(self) -> Organisation:
        return Organisation(**asdict(self))


@dataclass
class ImportResult:
    attempted: int = 0
    succeeded: int = 0
    error: str | None = None

    @property
    def aborted(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class EmailBackfillOutcome:
    updated: int
    message: str


# -------------------------
# Text normalization
# -------------------------
def humanize_all_first_capitals(value: str | None) -> str:
    """``HARROW BAPTIST CHURCH, COLLEGE ROAD`` -> ``Harrow Baptist Church, College Road``."""
    if not value:
        return ""
    collapsed = " ".join(value.split())
    return _WORD_RE.sub(lambda m: m.group(0).capitalize(), collapsed)


def humanize(value: str | None) -> str:
    """Sentence case: ``NO INFORMATION RECORDED`` -> ``No information recorded``."""
    if not value:
        return ""
    collapsed = " ".join(value.split()).lower()
    return collapsed[:1].upper() + collapsed[1:]


def normalize_postcode(value: str) -> str:
    compact = re.sub(r"\s+", "", value).upper()
    return f"{compact[:-3]} {compact[-3:]}"


def split_postcode(address: str | None) -> tuple[str, str]:
    """Split a trailing UK postcode off a free-text address."""
    if not address:
        return "", ""
    cleaned = address.strip()
    match = POSTCODE_RE.search(cleaned)
    if match is None:
        return cleaned, ""
    return cleaned[: match.start()].rstrip(" ,"), normalize_postcode(match.group(1))


def parse_category_codes(raw: str | None) -> list[int]:
    codes: list[int] = []
    for token in CATEGORY_CODE_SPLIT_RE.split(raw or ""):
        token = token.strip()
        if not token:
            continue
        try:
            codes.append(int(token))
        except ValueError:
            logger.warning("Ignoring non-numeric category code %r", token)
    return codes


# -------------------------
# Row handling
# -------------------------
def check_columns_in(row: Mapping[str, str | None]) -> None:
    for column in CSV_HEADERS.values():
        if column not in row:
            raise MalformedImportRow(column)


def _field(row: Mapping[str, str | None], key: str) -> str:
    return (row.get(CSV_HEADERS[key]) or "").strip()


def parse_charity_row(row: Mapping[str, str | None]) -> CharityRecord | None:
    """Normalize one register row; removed charities yield None."""
    check_columns_in(row)
    if _field(row, "date_removed"):
        return None

    address, postcode = split_postcode(_field(row, "address"))
    description = _field(row, "description")
    return CharityRecord(
        name=humanize_all_first_capitals(_field(row, "name")),
        description=humanize(description) if description else DEFAULT_DESCRIPTION,
        address=humanize_all_first_capitals(address),
        postcode=postcode,
        website=_field(row, "website"),
        telephone=_field(row, "telephone"),
    )


def create_organisation_from_row(
    db: Session,
    row: Mapping[str, str | None],
    geocoder: Geocoder | None = None,
) -> Organisation | None:
    record = parse_charity_row(row)
    if record is None:
        return None
    if not record.name:
        logger.warning("Skipping register row without a title")
        return None
    if find_by_name(db, record.name) is not None:
        logger.debug("Organisation %r already exists, skipping", record.name)
        return None
    return save_organisation(db, record.to_organisation(), geocoder)


def link_categories(db: Session, org: Organisation, codes: Sequence[int]) -> int:
    """Attach categories by commission code; unknown codes and existing links are skipped."""
    linked_ids = {category.category_id for category in org.categories}
    linked = 0
    for code in codes:
        category = db.execute(
            select(Category).where(Category.charity_commission_id == code)
        ).scalar_one_or_none()
        if category is None or category.category_id in linked_ids:
            continue
        org.categories.append(category)
        linked_ids.add(category.category_id)
        linked += 1
    return linked


def import_categories_from_row(db: Session, row: Mapping[str, str | None]) -> Organisation | None:
    check_columns_in(row)
    org = find_by_name(db, humanize_all_first_capitals(_field(row, "name")))
    if org is None:
        return None
    if link_categories(db, org, parse_category_codes(_field(row, "cc_id"))):
        db.commit()
    return org


def add_email(db: Session, row: Sequence[str | None], geocoder: Geocoder | None = None) -> EmailBackfillOutcome:
    """Fill in the email of organisations whose name contains the row's name text."""
    name = (row[EMAIL_NAME_COLUMN] if len(row) > EMAIL_NAME_COLUMN else "") or ""
    email = (row[EMAIL_ADDRESS_COLUMN] if len(row) > EMAIL_ADDRESS_COLUMN else "") or ""
    name, email = name.strip(), email.strip()

    orgs: list[Organisation] = []
    if name:
        orgs = db.execute(
            organisations_query().where(func.upper(Organisation.name).contains(name.upper(), autoescape=True))
        ).scalars().all()
    if not orgs:
        return EmailBackfillOutcome(updated=0, message=f"{name} was not found\n")

    updated = 0
    for org in orgs:
        if org.email or not email:
            continue
        org.email = email
        save_organisation(db, org, geocoder)
        updated += 1
    return EmailBackfillOutcome(updated=updated, message=f"{name}: {updated} email(s) added\n")


# -------------------------
# Batch entry points
# -------------------------
def read_import_rows(
    path: str | Path,
    limit: int | None,
    *,
    with_headers: bool = True,
    encoding: str | None = None,
) -> Iterator[Mapping[str, str | None] | list[str]]:
    with Path(path).open("r", encoding=encoding or settings.import_encoding, newline="") as f:
        if with_headers:
            reader = csv.DictReader(f)
        else:
            reader = csv.reader(f)
            next(reader, None)  # header line
        yield from islice(reader, limit)


def run_import(
    db: Session,
    path: str | Path,
    limit: int | None,
    handle_row: Callable[[Mapping[str, str | None] | list[str]], int],
    *,
    with_headers: bool = True,
) -> ImportResult:
    """Feed rows to ``handle_row`` (returns the number of writes) until the limit or an error."""
    result = ImportResult()
    if limit is not None and limit < 0:
        result.error = f"Row limit must be zero or more, got {limit}"
        logger.error("Import from %s refused: %s", path, result.error)
        return result

    try:
        with closing(read_import_rows(path, limit, with_headers=with_headers)) as rows:
            for row in rows:
                result.attempted += 1
                result.succeeded += handle_row(row)
    except (MalformedImportRow, csv.Error, UnicodeDecodeError) as exc:
        db.rollback()
        result.error = str(exc)
        logger.error("Import from %s aborted at row %d: %s", path, result.attempted, exc)
        return result

    logger.info("Imported %s: %d row(s) read, %d written", path, result.attempted, result.succeeded)
    return result


def import_addresses(
    db: Session,
    path: str | Path,
    limit: int | None,
    geocoder: Geocoder | None = None,
) -> ImportResult:
    return run_import(
        db, path, limit,
        lambda row: int(create_organisation_from_row(db, row, geocoder) is not None),
    )


def import_category_mappings(db: Session, path: str | Path, limit: int | None) -> ImportResult:
    return run_import(
        db, path, limit,
        lambda row: int(import_categories_from_row(db, row) is not None),
    )


def import_emails(
    db: Session,
    path: str | Path,
    limit: int | None,
    geocoder: Geocoder | None = None,
) -> ImportResult:
    def handle(row) -> int:
        outcome = add_email(db, row, geocoder)
        if not outcome.updated:
            logger.info(outcome.message.strip())
        return outcome.updated

    return run_import(db, path, limit, handle, with_headers=False)


def import_category_catalogue(db: Session, path: str | Path, limit: int | None = None) -> ImportResult:
    """Load ``charity_commission_id,name`` rows, creating categories not yet known."""

    def handle(row) -> int:
        for column in ("charity_commission_id", "name"):
            if column not in row:
                raise MalformedImportRow(column)
        raw_code = (row["charity_commission_id"] or "").strip()
        if not raw_code.isdigit():
            logger.warning("Skipping category %r with non-numeric code %r", row["name"], raw_code)
            return 0
        code = int(raw_code)
        exists = db.execute(
            select(Category.category_id).where(Category.charity_commission_id == code)
        ).scalar_one_or_none()
        if exists:
            return 0
        db.add(Category(charity_commission_id=code, name=(row["name"] or "").strip()))
        db.commit()
        return 1

    return run_import(db, path, limit, handle)

