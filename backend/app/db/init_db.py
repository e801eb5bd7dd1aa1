from sqlalchemy.engine import Engine

from app.db.session import engine as default_engine
from app.db.base import Base

# IMPORTANT: import models so they register with Base.metadata
import app.db.models  # noqa: F401


def init_db(engine: Engine | None = None) -> None:
    Base.metadata.create_all(bind=engine or default_engine)
