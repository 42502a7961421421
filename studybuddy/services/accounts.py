"""Credential store: account persistence keyed by normalized email."""
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from studybuddy.core.errors import DuplicateIdentity, NotFound
from studybuddy.core.resilience import retry_once
from studybuddy.db.session import DatabaseManager
from studybuddy.models.base import utcnow
from studybuddy.models.user import User
from studybuddy.services.validation import normalize_email

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: dict[str, Any] = {
    "subjects": [],
    "daily_goal": 30,
    "reminder_time": "09:00",
}


class CredentialStore:
    """Reads and writes accounts.

    The password hash is a deferred column: it is only loaded when a caller
    passes ``include_secret=True``. Reads are retried once on a timeout;
    writes are not.
    """

    def __init__(self, session: AsyncSession, db: DatabaseManager) -> None:
        self._session = session
        self._db = db

    async def _read(self, stmt, operation: str):
        return await retry_once(
            lambda: self._db.guard(self._session.execute(stmt), operation),
            self._db.retry_backoff,
            operation,
        )

    async def find_by_email(self, email: str | None, include_secret: bool = False) -> User | None:
        email_norm = normalize_email(email)
        if not email_norm:
            return None
        stmt = select(User).where(User.email == email_norm)
        if include_secret:
            stmt = stmt.options(undefer(User.hashed_password)).execution_options(populate_existing=True)
        result = await self._read(stmt, "account lookup")
        return result.scalar_one_or_none()

    async def get(self, account_id: int, include_secret: bool = False) -> User | None:
        stmt = select(User).where(User.id == account_id)
        if include_secret:
            stmt = stmt.options(undefer(User.hashed_password)).execution_options(populate_existing=True)
        result = await self._read(stmt, "account read")
        return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        email: str,
        secret_hash: str,
        preferences: dict[str, Any] | None = None,
    ) -> User:
        """Insert an account; the email is normalized before the uniqueness check."""
        email_norm = normalize_email(email)
        if await self.find_by_email(email_norm) is not None:
            raise DuplicateIdentity()

        prefs = {**DEFAULT_PREFERENCES, **(preferences or {})}
        user = User(
            name=name.strip(),
            email=email_norm,
            hashed_password=secret_hash,
            subjects=list(prefs["subjects"]),
            daily_goal=prefs["daily_goal"],
            reminder_time=prefs["reminder_time"],
        )
        self._session.add(user)
        try:
            await self._db.guard(self._session.commit(), "account create")
        except IntegrityError as e:
            # lost a race with a concurrent signup for the same email
            await self._session.rollback()
            raise DuplicateIdentity() from e
        logger.info("Account %s created", user.id)
        return user

    async def _require(self, account_id: int) -> User:
        user = await self.get(account_id)
        if user is None:
            raise NotFound("Account not found")
        return user

    async def update_preferences(self, account_id: int, **changes: Any) -> User:
        user = await self._require(account_id)
        for key in ("subjects", "daily_goal", "reminder_time"):
            value = changes.get(key)
            if value is not None:
                setattr(user, key, list(value) if key == "subjects" else value)
        user.updated_at = utcnow()
        await self._db.guard(self._session.commit(), "preferences update")
        return user

    async def update_secret(self, account_id: int, secret_hash: str) -> None:
        user = await self._require(account_id)
        user.hashed_password = secret_hash
        user.updated_at = utcnow()
        await self._db.guard(self._session.commit(), "password update")
        logger.info("Password hash replaced for account %s", account_id)
