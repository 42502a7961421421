"""Shared request dependencies: stores, authenticator, session cookie handling."""
from typing import Annotated

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from studybuddy.core.config import Settings, get_settings
from studybuddy.core.errors import InvalidSessionToken, Unauthenticated
from studybuddy.core.security import (
    IssuedSession,
    PasswordHasher,
    Principal,
    SessionIssuer,
    get_password_hasher,
)
from studybuddy.db.session import DatabaseManager, get_database_manager, get_db
from studybuddy.services.accounts import CredentialStore
from studybuddy.services.auth import Authenticator
from studybuddy.services.decks import DeckStore


def get_hasher(settings: Annotated[Settings, Depends(get_settings)]) -> PasswordHasher:
    return get_password_hasher(settings.bcrypt_rounds)


def get_issuer(settings: Annotated[Settings, Depends(get_settings)]) -> SessionIssuer:
    return SessionIssuer(settings)


def get_credential_store(
    db: Annotated[AsyncSession, Depends(get_db)],
    manager: Annotated[DatabaseManager, Depends(get_database_manager)],
) -> CredentialStore:
    return CredentialStore(db, manager)


def get_authenticator(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    hasher: Annotated[PasswordHasher, Depends(get_hasher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Authenticator:
    return Authenticator(store, hasher, settings)


def get_deck_store(
    db: Annotated[AsyncSession, Depends(get_db)],
    manager: Annotated[DatabaseManager, Depends(get_database_manager)],
) -> DeckStore:
    return DeckStore(db, manager)


def set_session_cookie(response: Response, issued: IssuedSession, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.token,
        max_age=settings.session_lifetime_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    # path/flags must match set_session_cookie()
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def get_session_token(request: Request, settings: Settings) -> str | None:
    """Bearer header first, then the session cookie."""
    auth = request.headers.get("Authorization", "")
    scheme, _, credentials = auth.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.session_cookie_name)


def get_current_principal_optional(
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    issuer: Annotated[SessionIssuer, Depends(get_issuer)],
) -> Principal | None:
    """Return the session's principal, or None; re-issues near expiry."""
    token = get_session_token(request, settings)
    if not token:
        return None
    try:
        resolved = issuer.resolve_session(token)
    except Unauthenticated:
        return None

    if issuer.needs_refresh(resolved.expires_at):
        set_session_cookie(response, issuer.issue(resolved.principal), settings)
    return resolved.principal


def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_current_principal_optional)],
) -> Principal:
    if principal is None:
        raise InvalidSessionToken()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
