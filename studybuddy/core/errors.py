"""Error taxonomy shared by stores, services and the HTTP layer.

Components translate driver, hashing and signing failures into these types at
their boundary. ``studybuddy.main`` maps each type to a status code and a
message that is safe to show to the client.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One field-level validation problem."""

    field: str
    message: str


class StudyBuddyError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    public_message = "Internal server error"
    # whether the constructor message may be shown to the client
    expose_message = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def client_message(self) -> str:
        return self.message if self.expose_message else self.public_message


class ValidationFailed(StudyBuddyError):
    """Bad input shape or values; the client can correct it."""

    status_code = 400
    public_message = "Validation failed"
    expose_message = True

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(f"Invalid value for: {fields}" if fields else None)


class DuplicateIdentity(StudyBuddyError):
    status_code = 400
    public_message = "Email already registered"
    expose_message = True


class Unauthenticated(StudyBuddyError):
    """Bad credentials or a missing/expired/invalid session.

    Callers never learn which one; the message is always generic.
    """

    status_code = 401
    public_message = "Invalid email or password"


class SessionExpired(Unauthenticated):
    public_message = "Unauthorized - Please log in"


class InvalidSessionToken(Unauthenticated):
    public_message = "Unauthorized - Please log in"


class NotFound(StudyBuddyError):
    """Owner-scoped lookup miss. Also stands in for "forbidden"."""

    status_code = 404
    public_message = "Not found"
    expose_message = True


class Unavailable(StudyBuddyError):
    """Timeout or connectivity failure of the store or hashing subsystem."""

    status_code = 503
    public_message = "Service temporarily unavailable, please try again"


class AuthenticationUnavailable(Unavailable):
    public_message = "Sign-in is temporarily unavailable, please try again"


class Internal(StudyBuddyError):
    status_code = 500
    public_message = "Internal server error"
