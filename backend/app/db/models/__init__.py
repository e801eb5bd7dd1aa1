# backend/app/db/models/__init__.py

from app.db.models.user import User
from app.db.models.organisation import Organisation
from app.db.models.category import Category
from app.db.models.category_organisation import CategoryOrganisation
