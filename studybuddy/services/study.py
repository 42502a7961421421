"""Study session cursor over a deck's cards.

The cursor lives in memory only. Each index change derives a progress
percentage and hands it to a sink (normally the deck store) in the
background; the cursor never waits for, or rolls back on, a failed save.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable

from studybuddy.core.errors import StudyBuddyError
from studybuddy.core.security import Principal
from studybuddy.db.session import DatabaseManager
from studybuddy.services.decks import DeckStore
from studybuddy.services.validation import round_half_up

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int], Awaitable[None]]

COMPLETE = 100


def progress_for(index: int, card_count: int) -> int:
    return round_half_up(index / card_count * 100)


def resume_index(progress: int, card_count: int) -> int:
    """Card index to resume at for a stored percentage."""
    if card_count < 1:
        raise ValueError("card_count must be positive")
    return max(0, min(card_count - 1, round_half_up(progress * card_count / 100)))


class StudySession:
    """Viewing(index, flipped) state machine.

    ``flip`` toggles the face. ``next``/``previous`` move one card and reset
    the face; at the ends they leave the cursor where it is. ``next`` on the
    last card records completion (100) once. Must be driven from a running
    event loop, since saves are scheduled as tasks.
    """

    def __init__(
        self,
        deck_id: int,
        card_count: int,
        sink: ProgressSink,
        *,
        initial_progress: int = 0,
        index: int = 0,
    ) -> None:
        if card_count < 1:
            raise ValueError("A study session needs at least one card")
        if not 0 <= index < card_count:
            raise ValueError("index out of range")
        self.deck_id = deck_id
        self.card_count = card_count
        self.index = index
        self.flipped = False
        # shown to the user; equals the last value handed to the sink
        self.progress = initial_progress
        self.saved_progress: int | None = None
        # latest value that could not be saved, cleared by a later success
        self.unsaved_progress: int | None = None
        self._sink = sink
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def resume(cls, deck_id: int, card_count: int, progress: int, sink: ProgressSink) -> "StudySession":
        """Seek to the card matching the stored percentage and keep displaying it."""
        return cls(
            deck_id,
            card_count,
            sink,
            initial_progress=progress,
            index=resume_index(progress, card_count),
        )

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.index == self.card_count - 1

    @property
    def saving(self) -> bool:
        return bool(self._pending)

    def flip(self) -> bool:
        self.flipped = not self.flipped
        return self.flipped

    def next(self) -> bool:
        """Advance one card. Returns True if the cursor moved."""
        if self.is_last:
            if self.progress < COMPLETE:
                self._push(COMPLETE)
            return False
        self.index += 1
        self.flipped = False
        self._push(progress_for(self.index, self.card_count))
        return True

    def previous(self) -> bool:
        """Step back one card. Returns True if the cursor moved."""
        if self.is_first:
            return False
        self.index -= 1
        self.flipped = False
        self._push(progress_for(self.index, self.card_count))
        return True

    def _push(self, value: int) -> None:
        self.progress = value
        task = asyncio.get_running_loop().create_task(self._save(value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, value: int) -> None:
        # the lock hands out turns in arrival order, so saves land in order
        async with self._lock:
            try:
                await self._sink(value)
            except StudyBuddyError as e:
                self.unsaved_progress = value
                logger.warning("Progress %s for deck %s not saved: %s", value, self.deck_id, e)
                return
            self.saved_progress = value
            self.unsaved_progress = None

    async def flush(self) -> None:
        """Wait for every scheduled save to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


class DeckProgressSink:
    """Persists study progress for one owner's deck, one session per save."""

    def __init__(self, db: DatabaseManager, principal: Principal, deck_id: int) -> None:
        self._db = db
        self._owner_id = principal.id
        self._deck_id = deck_id

    async def __call__(self, progress: int) -> None:
        async with self._db.session() as session:
            await DeckStore(session, self._db).update_progress(self._deck_id, self._owner_id, progress)


async def open_study_session(db: DatabaseManager, principal: Principal, deck_id: int) -> StudySession:
    """Load an owned deck and resume a study session over it."""
    async with db.session() as session:
        deck = await DeckStore(session, db).get(deck_id, principal.id)
        card_count = len(deck.cards)
        progress = deck.progress
    return StudySession.resume(deck_id, card_count, progress, DeckProgressSink(db, principal, deck_id))
