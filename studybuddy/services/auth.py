"""Authenticator: credential checks, signup and password changes.

Every credential failure leaves through the same ``Unauthenticated`` error
with the same message, whether the account is missing or the password is
wrong. Unknown accounts still pay for one hash verification so response
times do not reveal which case happened.
"""
import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from studybuddy.core.config import Settings
from studybuddy.core.errors import AuthenticationUnavailable, FieldError, Unauthenticated, Unavailable
from studybuddy.core.resilience import bounded
from studybuddy.core.security import PasswordHasher, Principal
from studybuddy.models.user import User
from studybuddy.services.accounts import CredentialStore
from studybuddy.services.validation import (
    normalize_email,
    raise_for,
    validate_password,
    validate_preferences,
    validate_signup,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, email=user.email, name=user.name)


class Authenticator:
    def __init__(self, store: CredentialStore, hasher: PasswordHasher, settings: Settings) -> None:
        self._store = store
        self._hasher = hasher
        self._hash_timeout = settings.hash_timeout_seconds

    async def _hashing(self, fn: Callable[..., T], *args: Any) -> T:
        # bcrypt is CPU-bound: keep it off the event loop and bounded
        return await bounded(
            asyncio.to_thread(fn, *args),
            self._hash_timeout,
            "password hashing",
            AuthenticationUnavailable,
        )

    async def _lookup(self, email: str) -> User | None:
        try:
            return await self._store.find_by_email(email, include_secret=True)
        except Unavailable as e:
            raise AuthenticationUnavailable() from e

    async def authenticate(self, email: str | None, password: str | None) -> Principal:
        email_norm = normalize_email(email)
        if not email_norm or not password:
            raise Unauthenticated()

        user = await self._lookup(email_norm)
        if user is None:
            await self._hashing(self._hasher.dummy_verify)
            logger.info("Login failed: no matching account")
            raise Unauthenticated()

        ok, new_hash = await self._hashing(self._hasher.verify_and_update, password, user.hashed_password)
        if not ok:
            logger.info("Login failed for account %s", user.id)
            raise Unauthenticated()

        if new_hash:
            # one-time upgrade of hashes made with older parameters
            try:
                await self._store.update_secret(user.id, new_hash)
            except Unavailable as e:
                logger.warning("Could not upgrade password hash for account %s: %s", user.id, e)

        logger.info("Login succeeded for account %s", user.id)
        return principal_for(user)

    async def signup(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        preferences: dict[str, Any] | None = None,
    ) -> Principal:
        errors = validate_signup(name, email, password)
        if preferences:
            errors.extend(validate_preferences(**preferences))
        raise_for(errors)

        secret_hash = await self._hashing(self._hasher.hash, password)
        user = await self._store.create(name or "", email or "", secret_hash, preferences)
        return principal_for(user)

    async def change_password(self, principal: Principal, current_password: str, new_password: str) -> None:
        user = await self._store.get(principal.id, include_secret=True)
        if user is None:
            raise Unauthenticated()
        if not await self._hashing(self._hasher.verify, current_password, user.hashed_password):
            logger.info("Password change rejected for account %s", principal.id)
            raise Unauthenticated()

        errors = validate_password(new_password, field="new_password")
        if not errors and new_password == current_password:
            errors.append(FieldError("new_password", "New password must differ from the current one"))
        raise_for(errors)

        await self._store.update_secret(principal.id, await self._hashing(self._hasher.hash, new_password))
