"""Account model: identity, password hash and study preferences."""
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import deferred, relationship

from studybuddy.db.session import Base
from studybuddy.models.base import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    # always stored trimmed and lower-cased
    email = Column(String(255), unique=True, nullable=False, index=True)
    # not loaded unless a query undefers it (authentication reads only)
    hashed_password = deferred(Column(String(255), nullable=False))

    # preferences are passed through unchanged
    subjects = Column(JSON, nullable=False, default=list)
    daily_goal = Column(Integer, nullable=False, default=30)  # minutes
    reminder_time = Column(String(5), nullable=False, default="09:00")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    decks = relationship("Deck", back_populates="user", lazy="raise")
