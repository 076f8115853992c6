import logging

from app.core.errors import ConflictError, ConsistencyError, FullError, NotFoundError
from app.core.error_handlers import STATUS_BY_KIND
from app.core.logging import RequestIdFilter
from app.core.middleware import request_id_var


def test_error_bodies():
    assert FullError("No slots left.").as_dict() == {"error": "Full", "detail": "No slots left."}
    assert ConflictError("Lost a race.").as_dict()["retryable"] is True
    assert "retryable" not in NotFoundError("gone").as_dict()


def test_errors_keep_builtin_meaning():
    assert isinstance(FullError("x"), ValueError)
    assert isinstance(NotFoundError("x"), LookupError)
    assert isinstance(ConsistencyError("x", counter=1, ledger=0), RuntimeError)


def test_every_kind_has_a_status():
    from app.core.errors import ErrorKind

    assert set(STATUS_BY_KIND) == set(ErrorKind)


def _record():
    return logging.LogRecord("app.test", logging.INFO, __file__, 1, "hello", (), None)


def test_log_records_carry_request_id():
    record = _record()
    token = request_id_var.set("req-9")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert record.request_id == "req-9"


def test_log_records_outside_a_request():
    record = _record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"
