"""SQLAlchemy declarative base and model imports for Alembic."""
from studybuddy.db.session import Base

# Import all models so Alembic can see them
from studybuddy.models.deck import Card, Deck  # noqa: F401
from studybuddy.models.user import User  # noqa: F401

__all__ = ["Base", "User", "Deck", "Card"]
