"""
Fault classification and rendering under both modes.
"""

import pytest
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from garage.core.faults import (
    FAULT_TABLE,
    GENERIC_MESSAGE,
    Fault,
    FaultKind,
    classify,
    normalize,
    render,
)
from garage.core.security import TokenExpired, TokenMalformed


class _Body(BaseModel):
    title: str = Field(..., min_length=3)


def _pydantic_error() -> ValidationError:
    try:
        _Body(title="x")
    except ValidationError as exc:
        return exc
    raise AssertionError("expected a validation error")


def test_every_kind_has_a_status():
    assert set(FAULT_TABLE) == set(FaultKind)


@pytest.mark.parametrize(
    "kind, status, operational",
    [
        (FaultKind.VALIDATION, 400, True),
        (FaultKind.DUPLICATE_KEY, 400, True),
        (FaultKind.MALFORMED_IDENTIFIER, 400, True),
        (FaultKind.UNAUTHENTICATED, 401, True),
        (FaultKind.NOT_FOUND, 404, True),
        (FaultKind.REQUEST_REJECTED, 400, True),
        (FaultKind.UNCLASSIFIED, 500, False),
    ],
)
def test_fault_table(kind: FaultKind, status: int, operational: bool):
    assert kind.status_code == status
    assert kind.is_operational is operational


def test_classify_passes_faults_through():
    fault = Fault.not_found("Car not found")
    assert classify(fault) is fault


def test_classify_token_errors_as_unauthenticated():
    assert classify(TokenExpired("x")).kind is FaultKind.UNAUTHENTICATED
    assert "expired" in classify(TokenExpired("x")).message
    assert classify(TokenMalformed("x")).kind is FaultKind.UNAUTHENTICATED


def test_classify_validation_error():
    fault = classify(_pydantic_error())
    assert fault.kind is FaultKind.VALIDATION
    assert fault.message.startswith("Invalid input data. title:")
    assert fault.detail[0]["loc"] == ("title",)


def test_classify_integrity_error_as_duplicate_key():
    exc = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: users.email"))
    assert classify(exc).kind is FaultKind.DUPLICATE_KEY


def test_classify_unknown_as_unclassified():
    fault = classify(RuntimeError("db exploded"))
    assert fault.kind is FaultKind.UNCLASSIFIED
    assert fault.message == "db exploded"


def test_production_operational_fault_shows_message_only():
    status, body = render(Fault.not_found("Car not found"), production=True)
    assert status == 404
    assert body == {"status": "fail", "message": "Car not found"}


def test_production_unclassified_fault_is_generic():
    status, body = normalize(RuntimeError("password=hunter2 leaked"), production=True)
    assert status == 500
    assert body == {"status": "error", "message": GENERIC_MESSAGE}


def test_development_includes_diagnostics():
    exc = RuntimeError("db exploded")
    status, body = normalize(exc, production=False)
    assert status == 500
    assert body["status"] == "error"
    assert body["kind"] == "unclassified"
    assert body["message"] == "db exploded"
    assert body["error"]["type"] == "RuntimeError"
    assert len(body["error"]["id"]) == 32
    assert isinstance(body["stack"], list)


def test_development_operational_fault_keeps_status():
    status, body = render(Fault.unauthenticated(), production=False)
    assert status == 401
    assert body["status"] == "fail"
    assert body["message"] == "Please log in to access this resource"


class _PgError(Exception):
    def __init__(self, message: str, pgcode: str):
        super().__init__(message)
        self.pgcode = pgcode


@pytest.mark.parametrize(
    "orig",
    [
        Exception("FOREIGN KEY constraint failed"),
        Exception("NOT NULL constraint failed: cars.title"),
        _PgError('insert or update on table "cars" violates foreign key constraint', "23503"),
    ],
)
def test_classify_other_integrity_errors_as_unclassified(orig: Exception):
    exc = IntegrityError("INSERT ...", {}, orig)
    fault = classify(exc)
    assert fault.kind is FaultKind.UNCLASSIFIED
    assert fault.status_code == 500


def test_classify_unique_violation_by_sqlstate():
    orig = _PgError('duplicate key value violates "users_email_key"', "23505")
    assert classify(IntegrityError("INSERT ...", {}, orig)).kind is FaultKind.DUPLICATE_KEY


def test_classify_routing_errors():
    assert classify(StarletteHTTPException(404)).kind is FaultKind.NOT_FOUND
    rejected = classify(StarletteHTTPException(405))
    assert rejected.kind is FaultKind.REQUEST_REJECTED
    assert rejected.status_code == 405
    assert rejected.message == "Method Not Allowed"


def test_production_routing_error_keeps_its_status():
    status, body = normalize(StarletteHTTPException(405), production=True)
    assert status == 405
    assert body == {"status": "fail", "message": "Method Not Allowed"}
