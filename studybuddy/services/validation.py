"""Field-level validation shared by create and update paths.

Each validator returns a list of FieldError (empty when the input is valid)
and never touches the database.
"""
import math
import re
from collections.abc import Sequence
from typing import Any

from studybuddy.core.errors import FieldError, ValidationFailed

# Simple, practical email check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
REMINDER_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

NAME_MIN, NAME_MAX = 2, 50
PASSWORD_MIN = 6
PASSWORD_MAX_BYTES = 72  # bcrypt hard limit (UTF-8)
TITLE_MIN, TITLE_MAX = 3, 100
DESCRIPTION_MAX = 500
PROGRESS_MIN, PROGRESS_MAX = 0, 100


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def raise_for(errors: list[FieldError]) -> None:
    if errors:
        raise ValidationFailed(errors)


def validate_password(password: str | None, field: str = "password") -> list[FieldError]:
    pwd = password or ""
    if not pwd:
        return [FieldError(field, "Password is required")]
    if len(pwd) < PASSWORD_MIN:
        return [FieldError(field, f"Password must be at least {PASSWORD_MIN} characters long")]
    if len(pwd.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return [FieldError(field, f"Password cannot be longer than {PASSWORD_MAX_BYTES} bytes")]
    return []


def validate_signup(name: str | None, email: str | None, password: str | None) -> list[FieldError]:
    errors: list[FieldError] = []
    name = (name or "").strip()
    if not name:
        errors.append(FieldError("name", "Name is required"))
    elif not NAME_MIN <= len(name) <= NAME_MAX:
        errors.append(FieldError("name", f"Name must be {NAME_MIN}-{NAME_MAX} characters long"))

    email_norm = normalize_email(email)
    if not email_norm:
        errors.append(FieldError("email", "Email is required"))
    elif not EMAIL_RE.match(email_norm):
        errors.append(FieldError("email", "Please provide a valid email"))

    errors.extend(validate_password(password))
    return errors


def validate_preferences(
    subjects: Sequence[str] | None = None,
    daily_goal: int | None = None,
    reminder_time: str | None = None,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if subjects is not None and any(not isinstance(s, str) or not s.strip() for s in subjects):
        errors.append(FieldError("subjects", "Subjects must be non-empty strings"))
    if daily_goal is not None and not 0 <= daily_goal <= 24 * 60:
        errors.append(FieldError("daily_goal", "Daily goal must be between 0 and 1440 minutes"))
    if reminder_time is not None and not REMINDER_RE.match(reminder_time):
        errors.append(FieldError("reminder_time", "Reminder time must be HH:MM"))
    return errors


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def clean_deck(data: dict[str, Any]) -> dict[str, Any]:
    """Trim text fields and cards the way they are stored."""
    description = data.get("description")
    return {
        "title": _text(data.get("title")),
        "subject": _text(data.get("subject")),
        "description": description.strip() if isinstance(description, str) and description.strip() else None,
        "cards": [
            {"front": _text(c.get("front")), "back": _text(c.get("back"))}
            for c in (data.get("cards") or [])
        ],
    }


def validate_deck(data: dict[str, Any]) -> list[FieldError]:
    """Validate a cleaned deck payload (see clean_deck)."""
    errors: list[FieldError] = []
    title = data.get("title") or ""
    if not title:
        errors.append(FieldError("title", "Title is required"))
    elif not TITLE_MIN <= len(title) <= TITLE_MAX:
        errors.append(FieldError("title", f"Title must be {TITLE_MIN}-{TITLE_MAX} characters long"))

    if not data.get("subject"):
        errors.append(FieldError("subject", "Subject is required"))

    description = data.get("description")
    if description and len(description) > DESCRIPTION_MAX:
        errors.append(FieldError("description", f"Description cannot be more than {DESCRIPTION_MAX} characters"))

    cards = data.get("cards") or []
    if not cards:
        errors.append(FieldError("cards", "At least one card is required"))
    for i, card in enumerate(cards):
        if not card.get("front"):
            errors.append(FieldError(f"cards[{i}].front", "Front content is required"))
        if not card.get("back"):
            errors.append(FieldError(f"cards[{i}].back", "Back content is required"))
    return errors


def validate_progress(progress: Any) -> list[FieldError]:
    if isinstance(progress, bool) or not isinstance(progress, (int, float)):
        return [FieldError("progress", "Progress must be a number")]
    if not math.isfinite(progress) or not PROGRESS_MIN <= progress <= PROGRESS_MAX:
        return [FieldError("progress", f"Progress must be between {PROGRESS_MIN} and {PROGRESS_MAX}")]
    return []


def round_half_up(value: float) -> int:
    """Round .5 away from zero (builtin round() is banker's rounding)."""
    return int(math.floor(value + 0.5))
