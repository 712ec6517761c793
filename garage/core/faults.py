"""
Fault taxonomy and normalization - one wire contract for every failure.
A fault is raised at any layer, tagged with a FaultKind, and rendered here into
a single JSON response. Handlers never build their own error bodies.
"""

import logging
import traceback
import uuid
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from garage.config import get_settings
from garage.core.security import TokenError, TokenExpired

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong!"

# SQLSTATE unique_violation
UNIQUE_VIOLATION = "23505"


class FaultKind(str, Enum):
    VALIDATION = "validation_error"
    DUPLICATE_KEY = "duplicate_key"
    MALFORMED_IDENTIFIER = "malformed_identifier"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    # Other 4xx raised by routing (405, 413, ...); the fault keeps the exact status
    REQUEST_REJECTED = "request_rejected"
    UNCLASSIFIED = "unclassified"

    @property
    def status_code(self) -> int:
        return FAULT_TABLE[self][0]

    @property
    def is_operational(self) -> bool:
        return FAULT_TABLE[self][1]


# kind -> (HTTP status, operational)
FAULT_TABLE: dict[FaultKind, tuple[int, bool]] = {
    FaultKind.VALIDATION: (400, True),
    FaultKind.DUPLICATE_KEY: (400, True),
    FaultKind.MALFORMED_IDENTIFIER: (400, True),
    FaultKind.UNAUTHENTICATED: (401, True),
    FaultKind.NOT_FOUND: (404, True),
    FaultKind.REQUEST_REJECTED: (400, True),
    FaultKind.UNCLASSIFIED: (500, False),
}


class Fault(Exception):
    """The only exception type that crosses layer boundaries."""

    def __init__(self, kind: FaultKind, message: str, detail: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail
        self.error_id = uuid.uuid4().hex
        self._status_code = status_code

    @property
    def status_code(self) -> int:
        return self._status_code or self.kind.status_code

    @property
    def is_operational(self) -> bool:
        return self.kind.is_operational

    @classmethod
    def validation(cls, message: str, detail: Any = None) -> "Fault":
        return cls(FaultKind.VALIDATION, message, detail)

    @classmethod
    def duplicate_key(cls, message: str) -> "Fault":
        return cls(FaultKind.DUPLICATE_KEY, message)

    @classmethod
    def malformed_identifier(cls, message: str) -> "Fault":
        return cls(FaultKind.MALFORMED_IDENTIFIER, message)

    @classmethod
    def unauthenticated(cls, message: str = "Please log in to access this resource") -> "Fault":
        return cls(FaultKind.UNAUTHENTICATED, message)

    @classmethod
    def not_found(cls, message: str) -> "Fault":
        return cls(FaultKind.NOT_FOUND, message)

    def __repr__(self) -> str:
        return f"<Fault(kind={self.kind.value}, message={self.message!r})>"


def _validation_message(errors: list[dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return "Invalid input data. " + ". ".join(parts)


def classify(exc: BaseException) -> Fault:
    """Tag any exception with a FaultKind. Unknown exceptions become UNCLASSIFIED."""
    if isinstance(exc, Fault):
        return exc
    if isinstance(exc, TokenExpired):
        return Fault.unauthenticated("Your token has expired! Please log in again.")
    if isinstance(exc, TokenError):
        return Fault.unauthenticated("Invalid token. Please log in again!")
    if isinstance(exc, (RequestValidationError, ValidationError)):
        errors = [dict(e) for e in exc.errors()]
        # ctx may hold exception instances that are not JSON serializable
        detail = [{k: v for k, v in e.items() if k in ("loc", "msg", "type")} for e in errors]
        return Fault.validation(_validation_message(errors), detail)
    if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
        return Fault.duplicate_key("Duplicate field value. Please use another value!")
    if isinstance(exc, StarletteHTTPException):
        if exc.status_code == 404:
            return Fault.not_found(exc.detail)
        if 400 <= exc.status_code < 500:
            return Fault(FaultKind.REQUEST_REJECTED, exc.detail, status_code=exc.status_code)
        return Fault(FaultKind.UNCLASSIFIED, exc.detail, status_code=exc.status_code)
    return Fault(FaultKind.UNCLASSIFIED, str(exc) or type(exc).__name__)


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Unique-constraint failures only; FK and NOT NULL violations are not duplicates."""
    orig = exc.orig
    # asyncpg exposes sqlstate, psycopg2 pgcode
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "unique" in str(orig).lower()


def render(fault: Fault, *, production: bool, exc: BaseException | None = None) -> tuple[int, dict[str, Any]]:
    """Build (status, body) for a fault under the active rendering mode."""
    source = exc if exc is not None else fault
    status_word = "fail" if 400 <= fault.status_code < 500 else "error"

    if not production:
        return fault.status_code, {
            "status": status_word,
            "kind": fault.kind.value,
            "message": fault.message,
            "error": {
                "id": fault.error_id,
                "type": type(source).__name__,
                "detail": fault.detail,
            },
            "stack": traceback.format_exception(type(source), source, source.__traceback__),
        }

    if fault.is_operational:
        return fault.status_code, {"status": status_word, "message": fault.message}
    return 500, {"status": "error", "message": GENERIC_MESSAGE}


def normalize(exc: BaseException, *, production: bool) -> tuple[int, dict[str, Any]]:
    """Classify and render in one step."""
    return render(classify(exc), production=production, exc=exc)


def _log_fault(request: Request, fault: Fault, exc: BaseException) -> None:
    if fault.is_operational:
        logger.warning(
            "%s %s -> %s %s: %s (error_id=%s)",
            request.method,
            request.url.path,
            fault.status_code,
            fault.kind.value,
            fault.message,
            fault.error_id,
        )
    else:
        logger.error(
            "%s %s -> unhandled %s (error_id=%s)",
            request.method,
            request.url.path,
            type(exc).__name__,
            fault.error_id,
            exc_info=(type(exc), exc, exc.__traceback__),
        )


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    fault = classify(exc)
    _log_fault(request, fault, exc)
    status_code, body = render(fault, production=get_settings().is_production, exc=exc)
    # Keep routing headers such as Allow on a 405
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


class FaultMiddleware:
    """
    Raw ASGI middleware that renders exceptions no handler caught.
    Installed inside CORSMiddleware so the normalized 500 still carries CORS
    headers; Starlette's own Exception handler runs outside every middleware.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = await handle_exception(Request(scope), exc)
            await response(scope, receive, send)


def register_exception_handlers(app: FastAPI) -> None:
    """Route every failure category through handle_exception."""
    for exc_class in (
        Fault,
        TokenError,
        RequestValidationError,
        ValidationError,
        IntegrityError,
        StarletteHTTPException,
        Exception,
    ):
        app.add_exception_handler(exc_class, handle_exception)
