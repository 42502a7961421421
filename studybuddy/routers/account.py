"""Account routes: profile read, preference updates, password change."""
from typing import Annotated

from fastapi import APIRouter, Depends

from studybuddy.core.errors import NotFound
from studybuddy.models.user import User
from studybuddy.routers.deps import CurrentPrincipal, get_authenticator, get_credential_store
from studybuddy.schemas.auth import (
    AccountOutSchema,
    MessageSchema,
    PasswordChangeSchema,
    PreferencesPatchSchema,
    PreferencesSchema,
)
from studybuddy.services.accounts import CredentialStore
from studybuddy.services.auth import Authenticator
from studybuddy.services.validation import raise_for, validate_preferences

router = APIRouter(prefix="/account", tags=["account"])


def _account_out(user: User) -> AccountOutSchema:
    return AccountOutSchema(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        preferences=PreferencesSchema.model_validate(user),
    )


@router.get("", response_model=AccountOutSchema)
async def get_account(
    principal: CurrentPrincipal,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    user = await store.get(principal.id)
    if user is None:
        raise NotFound("Account not found")
    return _account_out(user)


@router.patch("/preferences", response_model=AccountOutSchema)
async def update_preferences(
    body: PreferencesPatchSchema,
    principal: CurrentPrincipal,
    store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    changes = body.model_dump(exclude_none=True)
    raise_for(validate_preferences(**changes))
    user = await store.update_preferences(principal.id, **changes)
    return _account_out(user)


@router.post("/password", response_model=MessageSchema)
async def change_password(
    body: PasswordChangeSchema,
    principal: CurrentPrincipal,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
):
    await authenticator.change_password(principal, body.current_password, body.new_password)
    return MessageSchema(message="Password updated")
