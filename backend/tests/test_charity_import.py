"""Creating organisations from register rows and register files."""

import csv

import pytest
from sqlalchemy import func, select

from app.core.exceptions import MalformedImportRow
from app.db.models.organisation import Organisation
from app.services import charity_import
from app.services.organisations import delete_organisation, find_by_name
from conftest import HARROW_BAPTIST_ROW, REGISTER_HEADERS, register_row

INDIAN_ELDERS_ROW = HARROW_BAPTIST_ROW.replace("HARROW BAPTIST CHURCH,1129832", "INDIAN ELDERS ASSOCIATION,1129832", 1)
BEREAVEMENT_ROW = HARROW_BAPTIST_ROW.replace("HARROW BAPTIST CHURCH,1129832", "HARROW BEREAVEMENT COUNSELLING,1129833", 1)
AGE_UK_ROW = HARROW_BAPTIST_ROW.replace("HARROW BAPTIST CHURCH,1129832", "AGE UK HARROW,1129834", 1)
REMOVED_ROW = AGE_UK_ROW.replace("2009-05-27,,", "2009-05-27,2009-05-28,", 1)


def _count(db) -> int:
    return db.execute(select(func.count()).select_from(Organisation)).scalar_one()


def _register_file(write_csv, *rows, name="data.csv"):
    return write_csv(name, [",".join(REGISTER_HEADERS), *rows])


def test_creates_organisation_from_row(db):
    org = charity_import.create_organisation_from_row(db, register_row(HARROW_BAPTIST_ROW))

    assert org is not None
    stored = find_by_name(db, "Harrow Baptist Church")
    assert stored.organisation_id == org.organisation_id
    assert stored.postcode == "HA1 1BA"
    assert stored.website == "http://www.harrow-baptist.org.uk"
    assert stored.donation_info == ""


def test_does_not_override_existing_organisation(db, make_organisation):
    make_organisation(name="Indian Elders Association", description="Care for the elderly")

    org = charity_import.create_organisation_from_row(db, register_row(INDIAN_ELDERS_ROW))

    assert org is None
    assert _count(db) == 1
    assert find_by_name(db, "Indian Elders Association").description == "Care for the elderly"


def test_duplicate_check_ignores_case(db, make_organisation):
    make_organisation(name="harrow baptist church")
    assert charity_import.create_organisation_from_row(db, register_row(HARROW_BAPTIST_ROW)) is None


def test_soft_deleted_organisation_does_not_block_import(db, make_organisation):
    delete_organisation(db, make_organisation(name="Harrow Baptist Church"))

    assert charity_import.create_organisation_from_row(db, register_row(HARROW_BAPTIST_ROW)) is not None
    assert _count(db) == 2


def test_removed_charity_is_not_created(db):
    assert charity_import.create_organisation_from_row(db, register_row(REMOVED_ROW)) is None
    assert _count(db) == 0


def test_geocodes_new_organisations(db, geocoder):
    org = charity_import.create_organisation_from_row(db, register_row(HARROW_BAPTIST_ROW), geocoder)

    assert geocoder.queries == ["Harrow Baptist Church, College Road, Harrow, HA1 1BA"]
    assert (org.latitude, org.longitude) == geocoder.result


def test_import_addresses_respects_limit(db, write_csv):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, BEREAVEMENT_ROW, AGE_UK_ROW)

    result = charity_import.import_addresses(db, path, 2)

    assert (result.attempted, result.succeeded, result.error) == (2, 2, None)
    assert _count(db) == 2
    assert find_by_name(db, "Age Uk Harrow") is None


def test_import_addresses_skips_duplicates_and_removed_rows(db, write_csv):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, HARROW_BAPTIST_ROW, REMOVED_ROW)

    result = charity_import.import_addresses(db, path, 10)

    assert result.attempted == 3
    assert result.succeeded == 1
    assert _count(db) == 1


def test_import_addresses_fails_gracefully(db, write_csv, monkeypatch):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, BEREAVEMENT_ROW)

    def explode(*args, **kwargs):
        raise MalformedImportRow("Title")

    monkeypatch.setattr(charity_import, "create_organisation_from_row", explode)
    result = charity_import.import_addresses(db, path, 1006)

    assert result.aborted
    assert result.attempted == 1
    assert result.succeeded == 0
    assert _count(db) == 0


def test_import_addresses_aborts_when_columns_missing(db, write_csv):
    headers = ",".join(h for h in REGISTER_HEADERS if h != "Title")
    path = write_csv("data.csv", [headers, HARROW_BAPTIST_ROW])

    result = charity_import.import_addresses(db, path, 5)

    assert result.error == "No expected column with name Title in CSV file"
    assert _count(db) == 0


def test_import_keeps_rows_committed_before_a_failure(db, write_csv, monkeypatch):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, BEREAVEMENT_ROW, AGE_UK_ROW)
    original = charity_import.create_organisation_from_row

    def fail_on_second(db, row, geocoder=None):
        if row["Title"].startswith("HARROW BEREAVEMENT"):
            raise MalformedImportRow("Contact Address")
        return original(db, row, geocoder)

    monkeypatch.setattr(charity_import, "create_organisation_from_row", fail_on_second)
    result = charity_import.import_addresses(db, path, 10)

    assert result.attempted == 2
    assert result.succeeded == 1
    assert _count(db) == 1


def test_reads_latin_1_register_files(db, write_csv):
    cafe_row = HARROW_BAPTIST_ROW.replace("HARROW BAPTIST CHURCH,1129832", "CAFÉ CHURCH,1129835", 1)
    path = _register_file(write_csv, cafe_row)

    charity_import.import_addresses(db, path, 1)

    assert find_by_name(db, "Café Church") is not None


def test_import_category_catalogue(db, write_csv, make_category):
    make_category(207, "Elderly/old People")
    path = write_csv(
        "categories.csv",
        ["charity_commission_id,name", "207,Elderly/old People", "305,Provides Buildings", "abc,Broken"],
    )

    result = charity_import.import_category_catalogue(db, path)

    assert result.attempted == 3
    assert result.succeeded == 1


def test_negative_limit_reads_nothing(db, write_csv):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW)

    result = charity_import.import_addresses(db, path, -1)

    assert result.aborted
    assert result.attempted == 0
    assert _count(db) == 0


@pytest.fixture
def small_field_limit():
    previous = csv.field_size_limit(200)
    yield
    csv.field_size_limit(previous)


def test_unparseable_row_stops_batch_and_keeps_earlier_rows(db, write_csv, small_field_limit):
    oversized = BEREAVEMENT_ROW.replace("NO INFORMATION RECORDED", "BEREAVEMENT SUPPORT " * 20, 1)
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, oversized, AGE_UK_ROW)

    result = charity_import.import_addresses(db, path, 10)

    assert result.aborted
    assert "field larger than field limit" in result.error
    assert result.attempted == 1
    assert _count(db) == 1
    assert find_by_name(db, "Age Uk Harrow") is None


def test_csv_error_from_row_handler_rolls_back_that_row(db, write_csv, monkeypatch):
    path = _register_file(write_csv, HARROW_BAPTIST_ROW, BEREAVEMENT_ROW)

    def broken(db, row, geocoder=None):
        db.add(Organisation(name="Half Written"))
        raise csv.Error("line contains NUL")

    monkeypatch.setattr(charity_import, "create_organisation_from_row", broken)
    result = charity_import.import_addresses(db, path, 10)

    assert result.aborted
    assert result.error == "line contains NUL"
    assert result.attempted == 1
    assert _count(db) == 0


def test_reader_is_closed_when_batch_aborts(db, monkeypatch):
    closed = []

    def rows(path, limit, *, with_headers=True, encoding=None):
        try:
            yield {"Name": "Harrow Mencap"}
            yield {"Name": "Age UK Harrow"}
        finally:
            closed.append(path)

    monkeypatch.setattr(charity_import, "read_import_rows", rows)
    result = charity_import.import_addresses(db, "register.csv", 10)

    assert result.error == "No expected column with name Title in CSV file"
    assert closed == ["register.csv"]
