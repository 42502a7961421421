"""Deck/progress store. Every query is filtered by deck id AND owner id."""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.core.errors import NotFound, Unavailable
from studybuddy.core.resilience import retry_once
from studybuddy.db.session import DatabaseManager
from studybuddy.models.base import utcnow
from studybuddy.models.deck import Card, Deck
from studybuddy.services.validation import (
    clean_deck,
    raise_for,
    round_half_up,
    validate_deck,
    validate_progress,
)

logger = logging.getLogger(__name__)


def _cards(cards: list[dict[str, str]]) -> list[Card]:
    return [Card(position=i, front=c["front"], back=c["back"]) for i, c in enumerate(cards)]


class DeckStore:
    """Owner-scoped deck persistence.

    A deck owned by someone else is reported exactly like a missing deck.
    Concurrent writers to one deck are last-write-wins.
    """

    def __init__(self, session: AsyncSession, db: DatabaseManager) -> None:
        self._session = session
        self._db = db

    async def _owned(self, deck_id: int, owner_id: int) -> Deck:
        stmt = select(Deck).where(Deck.id == deck_id, Deck.user_id == owner_id)
        result = await retry_once(
            lambda: self._db.guard(self._session.execute(stmt), "deck read"),
            self._db.retry_backoff,
            "deck read",
        )
        deck = result.scalar_one_or_none()
        if deck is None:
            raise NotFound("Deck not found")
        return deck

    async def create(self, owner_id: int, data: dict[str, Any]) -> Deck:
        cleaned = clean_deck(data)
        raise_for(validate_deck(cleaned))
        deck = Deck(
            user_id=owner_id,
            title=cleaned["title"],
            subject=cleaned["subject"],
            description=cleaned["description"],
            progress=0,
            last_studied=None,
            cards=_cards(cleaned["cards"]),
        )
        self._session.add(deck)
        await self._db.guard(self._session.commit(), "deck create")
        logger.info("Deck %s created for account %s (%d cards)", deck.id, owner_id, len(deck.cards))
        return deck

    async def get(self, deck_id: int, owner_id: int) -> Deck:
        return await self._owned(deck_id, owner_id)

    async def list_by_owner(self, owner_id: int) -> list[Deck]:
        stmt = (
            select(Deck)
            .where(Deck.user_id == owner_id)
            .order_by(Deck.updated_at.desc(), Deck.id.desc())
        )
        result = await retry_once(
            lambda: self._db.guard(self._session.execute(stmt), "deck list"),
            self._db.retry_backoff,
            "deck list",
        )
        return list(result.scalars().all())

    async def update(self, deck_id: int, owner_id: int, data: dict[str, Any]) -> Deck:
        """Replace title, subject, description and the whole card list."""
        cleaned = clean_deck(data)
        raise_for(validate_deck(cleaned))
        deck = await self._owned(deck_id, owner_id)
        deck.title = cleaned["title"]
        deck.subject = cleaned["subject"]
        deck.description = cleaned["description"]
        deck.cards = _cards(cleaned["cards"])
        deck.updated_at = utcnow()
        await self._db.guard(self._session.commit(), "deck update")
        return deck

    async def update_progress(self, deck_id: int, owner_id: int, progress: float) -> Deck:
        """Store progress (rounded to a whole percent) and stamp last_studied.

        Idempotent for a given value, so a timed-out attempt is retried once.
        """
        raise_for(validate_progress(progress))
        value = round_half_up(progress)
        return await retry_once(
            lambda: self._set_progress(deck_id, owner_id, value),
            self._db.retry_backoff,
            "progress update",
        )

    async def _set_progress(self, deck_id: int, owner_id: int, value: int) -> Deck:
        deck = await self._owned(deck_id, owner_id)
        now = utcnow()
        deck.progress = value
        deck.last_studied = now
        deck.updated_at = now
        try:
            await self._db.guard(self._session.commit(), "progress update")
        except Unavailable:
            await self._session.rollback()
            raise
        return deck

    async def delete(self, deck_id: int, owner_id: int) -> None:
        deck = await self._owned(deck_id, owner_id)
        await self._session.delete(deck)
        await self._db.guard(self._session.commit(), "deck delete")
        logger.info("Deck %s deleted by account %s", deck_id, owner_id)
