"""Study Buddy - FastAPI app entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studybuddy.core.config import get_settings
from studybuddy.core.errors import FieldError, StudyBuddyError, Unavailable, ValidationFailed
from studybuddy.core.log import configure_logging
from studybuddy.db.session import get_database_manager
from studybuddy.routers import account, auth, chat, flashcards

logger = logging.getLogger(__name__)


def _database_manager(app: FastAPI):
    # honour test overrides of the dependency
    return app.dependency_overrides.get(get_database_manager, get_database_manager)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    configure_logging(settings)
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)

    manager = _database_manager(app)
    try:
        await manager.connect()
    except Unavailable as e:
        # requests reconnect lazily
        logger.warning("Database not reachable at startup: %s", e)

    yield

    await manager.close()


app = FastAPI(
    title="Study Buddy",
    description="Accounts, sessions and flashcard study progress",
    lifespan=lifespan,
)

app.include_router(auth.router)
app.include_router(account.router)
app.include_router(flashcards.router)
app.include_router(chat.router)


def _field_errors_body(exc: ValidationFailed) -> dict:
    return {
        "error": exc.client_message,
        "fields": [{"field": e.field, "message": e.message} for e in exc.errors],
    }


@app.exception_handler(StudyBuddyError)
async def domain_error_handler(request: Request, exc: StudyBuddyError):
    if isinstance(exc, ValidationFailed):
        return JSONResponse(status_code=exc.status_code, content=_field_errors_body(exc))
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.client_message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append(FieldError(".".join(loc) or "body", err.get("msg", "Invalid value")))
    return JSONResponse(status_code=400, content=_field_errors_body(ValidationFailed(errors)))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "ok", "database": _database_manager(app).state.value}
