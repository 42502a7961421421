"""Auth routes: signup, login, logout, session check. JWT session in an HTTP-only cookie."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from studybuddy.core.config import Settings, get_settings
from studybuddy.core.errors import Unauthenticated
from studybuddy.core.security import SessionIssuer
from studybuddy.routers.deps import (
    clear_session_cookie,
    get_authenticator,
    get_credential_store,
    get_issuer,
    get_session_token,
    set_session_cookie,
)
from studybuddy.schemas.auth import (
    AuthCheckSchema,
    LoginOutSchema,
    LoginSchema,
    MessageSchema,
    PrincipalSchema,
    SignupSchema,
)
from studybuddy.services.accounts import CredentialStore
from studybuddy.services.auth import Authenticator

router = APIRouter(tags=["auth"])


@router.post("/signup", response_model=MessageSchema, status_code=201)
async def signup(
    body: SignupSchema,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
):
    """Create an account. The password is hashed before it is stored."""
    await authenticator.signup(body.name, body.email, body.password)
    return MessageSchema(message="Account created successfully")


@router.post("/login", response_model=LoginOutSchema)
async def login(
    body: LoginSchema,
    response: Response,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
    issuer: Annotated[SessionIssuer, Depends(get_issuer)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Check credentials and set the session cookie."""
    principal = await authenticator.authenticate(body.email, body.password)
    issued = issuer.issue(principal)
    set_session_cookie(response, issued, settings)
    return LoginOutSchema(
        user=PrincipalSchema(id=principal.id, email=principal.email, name=principal.name),
        expires_at=issued.expires_at,
    )


@router.post("/logout", response_model=MessageSchema)
async def logout(response: Response, settings: Annotated[Settings, Depends(get_settings)]):
    """Drop the session cookie. Tokens are not tracked server-side."""
    clear_session_cookie(response, settings)
    return MessageSchema(message="Logged out")


@router.get("/auth/check", response_model=AuthCheckSchema)
async def auth_check(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    issuer: Annotated[SessionIssuer, Depends(get_issuer)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Report whether the presented token (Bearer or cookie) is a live session."""
    try:
        principal = issuer.resolve(get_session_token(request, settings))
    except Unauthenticated:
        return AuthCheckSchema(authenticated=False)

    user = await store.get(principal.id)
    if user is None:
        return AuthCheckSchema(authenticated=False)
    return AuthCheckSchema(
        authenticated=True,
        user=PrincipalSchema(id=user.id, email=user.email, name=user.name),
    )
