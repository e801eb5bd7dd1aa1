"""
Shared fixtures for backend tests.

Settings are read at import time, so the environment is primed before any
``app`` module is imported. Each test gets its own in-memory SQLite database.
"""

import csv
import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GEOCODING_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base, utcnow
import app.db.models  # noqa: F401
from app.db.models.category import Category
from app.db.models.organisation import Organisation
from app.db.models.user import User

REGISTER_HEADERS = (
    "Title,Charity Number,Activities,Contact Name,Contact Address,website,Contact Telephone,"
    "date registered,date removed,accounts date,spending,income,company number,OpenlyLocalURL,"
    "twitter account name,facebook account name,youtube account name,feed url,Charity Classification,"
    "signed up for 1010,last checked,created at,updated at,Removed?"
).split(",")

HARROW_BAPTIST_ROW = (
    'HARROW BAPTIST CHURCH,1129832,NO INFORMATION RECORDED,MR JOHN ROSS NEWBY,'
    '"HARROW BAPTIST CHURCH, COLLEGE ROAD, HARROW, HA1 1BA",http://www.harrow-baptist.org.uk,020 8863 7837,'
    '2009-05-27,,,,,,http://OpenlyLocal.com/charities/57879-HARROW-BAPTIST-CHURCH,,,,,"207,305,108,302,306",'
    'false,2010-09-20T21:38:52+01:00,2010-08-22T22:19:07+01:00,2012-04-15T11:22:12+01:00,*****'
)


def register_row(line: str, headers=REGISTER_HEADERS) -> dict:
    """Build a DictReader-style row from one register CSV line."""
    fields = next(csv.reader([line]))
    return dict(zip(headers, fields))


class RecordingGeocoder:
    """Geocoder double that records every query it receives."""

    def __init__(self, result=(51.5836, -0.3464)):
        self.result = result
        self.queries = []

    def geocode(self, query):
        self.queries.append(query)
        return self.result


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def geocoder():
    return RecordingGeocoder()


@pytest.fixture
def make_organisation(db):
    """Factory fixture: persist an organisation with directory defaults."""
    def _make(name="Harrow Bereavement Counselling", days_since_update=0, **fields):
        values = {
            "description": "Bereavement Counselling",
            "address": "64 pinner road",
            "postcode": "HA1 3TE",
            "donation_info": "www.harrow-bereavment.co.uk/donate",
            "email": None,
            "updated_at": utcnow() - timedelta(days=days_since_update),
        }
        values.update(fields)
        org = Organisation(name=name, **values)
        db.add(org)
        db.commit()
        return org
    return _make


@pytest.fixture
def make_category(db):
    def _make(charity_commission_id, name=None):
        category = Category(charity_commission_id=charity_commission_id, name=name or f"Category {charity_commission_id}")
        db.add(category)
        db.commit()
        return category
    return _make


@pytest.fixture
def make_user(db):
    def _make(email="user@example.org", **fields):
        user = User(email=email, **fields)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def write_csv(tmp_path):
    """Factory fixture: write lines to a CSV file under tmp_path."""
    def _write(name, lines, encoding="ISO-8859-1"):
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding=encoding)
        return path
    return _write


@pytest.fixture
def client(session_factory, geocoder):
    from fastapi.testclient import TestClient

    from app.api.v1.routes.deps import get_db, get_geocoder
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
