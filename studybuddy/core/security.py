"""Password hashing and signed session tokens."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from studybuddy.core.config import Settings, get_settings
from studybuddy.core.errors import InvalidSessionToken, SessionExpired

logger = logging.getLogger(__name__)


class PasswordHasher:
    """bcrypt through passlib, with a per-call salt and a configurable work factor.

    Hashes made with fewer rounds than configured are reported as needing an
    upgrade so they can be replaced after the next successful login.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__default_rounds=rounds,
            bcrypt__min_rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("Password cannot be empty")
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check; malformed or empty records give False."""
        if not password or not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError) as e:
            logger.warning("Password verification failed: %s", e)
            return False

    def verify_and_update(self, password: str, password_hash: str) -> tuple[bool, str | None]:
        """Verify, and return a replacement hash when the record is outdated."""
        if not password or not password_hash:
            return False, None
        try:
            return self._context.verify_and_update(password, password_hash)
        except (ValueError, TypeError) as e:
            logger.warning("Password verification failed: %s", e)
            return False, None

    def needs_rehash(self, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return self._context.needs_update(password_hash)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> None:
        """Spend the time of one verification against a placeholder hash."""
        self._context.dummy_verify()


@lru_cache
def get_password_hasher(rounds: int | None = None) -> PasswordHasher:
    return PasswordHasher(rounds if rounds is not None else get_settings().bcrypt_rounds)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity; never carries the secret."""

    id: int
    email: str
    name: str


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class ResolvedSession:
    principal: Principal
    expires_at: datetime


class SessionIssuer:
    """Signs and resolves JWT session tokens (HMAC-SHA256 by default).

    A token is valid iff its signature verifies, it is not past ``exp`` and it
    was signed under the current key epoch. There is no revocation list.
    """

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.secret_key
        self._algorithm = settings.algorithm
        self._lifetime = timedelta(seconds=settings.session_lifetime_seconds)
        self._refresh_window = self._lifetime * settings.session_refresh_fraction
        self._epoch = settings.session_key_epoch

    @property
    def lifetime(self) -> timedelta:
        return self._lifetime

    def issue(self, principal: Principal, now: datetime | None = None) -> IssuedSession:
        now = now or datetime.now(timezone.utc)
        expires_at = now + self._lifetime
        payload = {
            "sub": str(principal.id),
            "email": principal.email,
            "name": principal.name,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "epoch": self._epoch,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedSession(token=token, expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc))

    def resolve_session(self, token: str | None) -> ResolvedSession:
        """Verify signature first, then expiry; raise on any failure."""
        if not token:
            raise InvalidSessionToken("missing session token")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise SessionExpired("session token expired") from e
        except JWTError as e:
            raise InvalidSessionToken("session token rejected") from e

        if claims.get("epoch") != self._epoch:
            raise InvalidSessionToken("session token signed under a retired key epoch")
        try:
            principal = Principal(
                id=int(claims["sub"]),
                email=str(claims["email"]),
                name=str(claims["name"]),
            )
            expires_at = datetime.fromtimestamp(int(claims["exp"]), timezone.utc)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSessionToken("session token claims malformed") from e
        return ResolvedSession(principal=principal, expires_at=expires_at)

    def resolve(self, token: str | None) -> Principal:
        return self.resolve_session(token).principal

    def needs_refresh(self, expires_at: datetime, now: datetime | None = None) -> bool:
        """True inside the refresh window at the end of a token's lifetime."""
        now = now or datetime.now(timezone.utc)
        return expires_at - now <= self._refresh_window
