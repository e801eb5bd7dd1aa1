"""Seeding and command-line import scripts."""

import pytest
from sqlalchemy import func, select

from app.db.models.category import Category
from app.db.models.organisation import Organisation
from app.scripts import import_charities, seed_data
from conftest import HARROW_BAPTIST_ROW, REGISTER_HEADERS


def test_seed_and_reset(db):
    categories = seed_data.seed_categories(db)
    orgs = seed_data.seed_organisations(db, categories, n=5)
    users = seed_data.seed_users(db, orgs, n=3)

    assert len(categories) == len(seed_data.CATEGORY_SEED)
    assert len({org.name.lower() for org in orgs}) == 5
    assert all(1 <= len(org.categories) <= 3 for org in orgs)
    assert users[0].superadmin and len(users) == 4

    seed_data.reset_db(db)
    assert db.execute(select(func.count()).select_from(Organisation)).scalar_one() == 0
    assert db.execute(select(func.count()).select_from(Category)).scalar_one() == 0


def test_parser_accepts_limit_and_geocode_flag():
    args = import_charities.build_parser().parse_args(["addresses", "db/data.csv", "--limit", "25", "--no-geocode"])
    assert (args.kind, args.path, args.limit, args.no_geocode) == ("addresses", "db/data.csv", 25, True)


def test_run_dispatches_to_loader(db, session_factory, write_csv, monkeypatch):
    monkeypatch.setattr(import_charities, "SessionLocal", session_factory)
    categories = write_csv("categories.csv", ["charity_commission_id,name", "207,Elderly/old People"])
    register = write_csv("data.csv", [",".join(REGISTER_HEADERS), HARROW_BAPTIST_ROW])

    assert import_charities.run("categories", str(categories), None, geocode=False).succeeded == 1
    assert import_charities.run("addresses", str(register), 10, geocode=False).succeeded == 1
    result = import_charities.run("category-mappings", str(register), 10, geocode=False)

    assert (result.attempted, result.succeeded) == (1, 1)
    org = db.execute(select(Organisation)).scalar_one()
    assert [c.charity_commission_id for c in org.categories] == [207]


def test_parser_rejects_negative_limit():
    with pytest.raises(SystemExit):
        import_charities.build_parser().parse_args(["emails", "db/emails.csv", "--limit", "-3"])
