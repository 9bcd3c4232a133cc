"""SQLAlchemy base metadata and model registration utilities."""

from importlib import import_module

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


def import_orm_models() -> None:
    """Import ORM models so metadata is fully populated."""

    modules = (
        "jam3a.db.models.user",
        "jam3a.db.models.category",
        "jam3a.db.models.product",
        "jam3a.db.models.deal",
        "jam3a.db.models.deal_participant",
    )
    for module_name in modules:
        import_module(module_name)
