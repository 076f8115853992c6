# app/core/retry.py
from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import get_settings
from app.core.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL: serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_PGCODES = {"40001", "40P01", "55P03"}


def is_transient(exc: BaseException) -> bool:
    """
    True for contention we expect to clear on retry.
    """
    if isinstance(exc, (ConflictError, StaleDataError)):
        return True
    if isinstance(exc, OperationalError):
        pgcode = getattr(exc.orig, "pgcode", None)
        if pgcode in _TRANSIENT_PGCODES:
            return True
        # sqlite3.OperationalError("database is locked")
        return "database is locked" in str(exc.orig).lower()
    return False


def run_in_transaction(
    db: Session,
    unit: Callable[[], T],
    *,
    label: str,
    max_attempts: Optional[int] = None,
    backoff_ms: Optional[int] = None,
) -> T:
    """
    Run `unit` (which must commit on success) with bounded retry.

    - Every failure rolls the session back so row locks are released
    - Transient contention is retried with exponential backoff + jitter
    - Anything else propagates unchanged
    - Exhausted retries raise ConflictError (retryable)
    """
    settings = get_settings()
    attempts = max_attempts or settings.transaction_max_attempts
    base_delay = (backoff_ms if backoff_ms is not None else settings.transaction_retry_backoff_ms) / 1000.0

    last_exc: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return unit()
        except Exception as exc:
            db.rollback()
            if not is_transient(exc):
                raise
            last_exc = exc
            if attempt == attempts:
                break
            delay = base_delay * (2 ** (attempt - 1))
            delay += random.uniform(0, base_delay)
            logger.warning(
                "[tx] %s contention attempt=%d/%d retry_in=%.3fs cause=%s",
                label, attempt, attempts, delay, type(exc).__name__,
            )
            time.sleep(delay)

    logger.warning("[tx] %s gave up after %d attempts", label, attempts)
    raise ConflictError(
        f"{label} could not complete because of concurrent updates; retry.",
        attempts=attempts,
    ) from last_exc
