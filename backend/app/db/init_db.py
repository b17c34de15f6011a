# backend/app/db/init_db.py

from sqlalchemy.engine import Engine

from app.db.base_class import Base

# Import models so they are registered with Base.metadata
from app.models import graph_edge, graph_node  # noqa: F401


def init_db(engine: Engine) -> None:
    """
    Create graph tables if they don't exist.
    In production, replace this with Alembic migrations.
    """
    Base.metadata.create_all(bind=engine)
