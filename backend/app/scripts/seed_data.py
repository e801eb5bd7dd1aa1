"""Module: seed_data."""

import random
from datetime import timedelta

from faker import Faker
from sqlalchemy import delete

from app.db.base import utcnow
from app.db.init_db import init_db
from app.db.session import SessionLocal

from app.db.models.user import User
from app.db.models.organisation import Organisation
from app.db.models.category import Category
from app.db.models.category_organisation import CategoryOrganisation

fake = Faker("en_GB")

# Subset of the charity commission classification codes.
CATEGORY_SEED = [
    (101, "General Charitable Purposes"),
    (102, "Education/training"),
    (103, "The Advancement Of Health Or Saving Of Lives"),
    (104, "Disability"),
    (105, "The Prevention Or Relief Of Poverty"),
    (107, "Accommodation/housing"),
    (108, "Religious Activities"),
    (206, "Other Defined Groups"),
    (207, "Elderly/old People"),
    (302, "Provides Advocacy/advice/information"),
    (305, "Provides Buildings/facilities/open Space"),
    (306, "Provides Services"),
]

ORG_SUFFIXES = ["Trust", "Foundation", "Association", "Community Centre", "Counselling", "Support Group"]


# Shared helpers used by multiple seed builders.
def _organisation_name() -> str:
    return f"{fake.city()} {fake.word().title()} {random.choice(ORG_SUFFIXES)}"


def reset_db(session) -> None:
    # Children first so foreign keys never block the wipe.
    session.execute(delete(CategoryOrganisation))
    session.execute(delete(User))
    session.execute(delete(Organisation))
    session.execute(delete(Category))
    session.commit()


def seed_categories(session) -> list[Category]:
    categories = [Category(charity_commission_id=code, name=name) for code, name in CATEGORY_SEED]
    session.add_all(categories)
    session.commit()
    return categories


def seed_organisations(session, categories: list[Category], n: int = 50) -> list[Organisation]:
    orgs = []
    used_names: set[str] = set()
    while len(orgs) < n:
        name = _organisation_name()
        if name.lower() in used_names:
            continue
        used_names.add(name.lower())
        lat, lon = fake.local_latlng(country_code="GB", coords_only=True)
        org = Organisation(
            name=name,
            description=fake.paragraph(nb_sentences=3),
            address=fake.street_address().replace("\n", ", "),
            postcode=fake.postcode(),
            latitude=float(lat),
            longitude=float(lon),
            website=f"http://www.{fake.domain_name()}",
            donation_info="",
            telephone=fake.phone_number(),
            email=fake.company_email() if random.random() < 0.6 else None,
            updated_at=utcnow() - timedelta(days=random.randint(0, 600)),
        )
        org.categories = random.sample(categories, k=random.randint(1, 3))
        orgs.append(org)
    session.add_all(orgs)
    session.commit()
    return orgs


def seed_users(session, orgs: list[Organisation], n: int = 20) -> list[User]:
    users = [User(email="superadmin@example.org", full_name="Site Superadmin", superadmin=True)]
    for org in random.sample(orgs, k=min(n, len(orgs))):
        users.append(
            User(
                email=fake.unique.email(),
                full_name=fake.name(),
                organisation_id=org.organisation_id,
            )
        )
    session.add_all(users)
    session.commit()
    return users


if __name__ == "__main__":
    # Full reseed pipeline used by docker exec -it charity_backend python -m app.scripts.seed_data
    init_db()
    session = SessionLocal()
    try:
        print("Resetting tables...")
        reset_db(session)

        print("Seeding categories...")
        categories = seed_categories(session)

        print("Seeding organisations (50)...")
        orgs = seed_organisations(session, categories, 50)

        print("Seeding users (20 + superadmin)...")
        users = seed_users(session, orgs, 20)

        print(f"Done. categories={len(categories)}, organisations={len(orgs)}, users={len(users)}")
        print(f"Superadmin user id (send as X-User-Id): {users[0].user_id}")
    finally:
        session.close()
