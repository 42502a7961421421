from studybuddy.schemas.auth import (
    AccountOutSchema,
    AuthCheckSchema,
    LoginOutSchema,
    LoginSchema,
    MessageSchema,
    PrincipalSchema,
    SignupSchema,
)
from studybuddy.schemas.deck import (
    CardSchema,
    DeckInSchema,
    DeckOutSchema,
    DeckSummarySchema,
    ProgressPatchSchema,
    StudyPositionSchema,
)

__all__ = [
    "AccountOutSchema",
    "AuthCheckSchema",
    "LoginOutSchema",
    "LoginSchema",
    "MessageSchema",
    "PrincipalSchema",
    "SignupSchema",
    "CardSchema",
    "DeckInSchema",
    "DeckOutSchema",
    "DeckSummarySchema",
    "ProgressPatchSchema",
    "StudyPositionSchema",
]
