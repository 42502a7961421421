"""Deck and Card models. Cards are ordered by position within their deck."""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from studybuddy.db.session import Base
from studybuddy.models.base import utcnow


class Deck(Base):
    __tablename__ = "decks"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_decks_progress_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    subject = Column(String(100), nullable=False, index=True)

    progress = Column(Integer, nullable=False, default=0)  # percent 0-100
    last_studied = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="decks", lazy="raise")
    cards = relationship(
        "Card",
        back_populates="deck",
        order_by="Card.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    deck_id = Column(Integer, ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # 0-based
    front = Column(Text, nullable=False)
    back = Column(Text, nullable=False)

    deck = relationship("Deck", back_populates="cards")
