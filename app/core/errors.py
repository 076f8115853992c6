# app/core/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NotFound = "NotFound"
    Forbidden = "Forbidden"
    Conflict = "Conflict"
    OpportunityUnavailable = "OpportunityUnavailable"
    OpportunityLocked = "OpportunityLocked"
    Full = "Full"
    AlreadyAssigned = "AlreadyAssigned"
    NotAssigned = "NotAssigned"
    InvalidCapacity = "InvalidCapacity"
    InvalidField = "InvalidField"
    NotEligible = "NotEligible"
    DuplicateFeedback = "DuplicateFeedback"
    ConsistencyError = "ConsistencyError"


class EngineError(Exception):
    """
    Tagged engine failure. Callers branch on `kind`, never on message text.

    `retryable` is True only for transient contention (Conflict).
    """

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def as_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind.value, "detail": self.message}
        if self.retryable:
            body["retryable"] = True
        return body


class NotFoundError(EngineError, LookupError):
    kind = ErrorKind.NotFound


class ForbiddenError(EngineError, PermissionError):
    kind = ErrorKind.Forbidden


class ConflictError(EngineError):
    kind = ErrorKind.Conflict
    retryable = True


# ─────────────────────────────────────────────
# BUSINESS-RULE REJECTIONS (caller must re-decide)
# ─────────────────────────────────────────────

class RuleViolation(EngineError, ValueError):
    pass


class OpportunityUnavailableError(RuleViolation):
    kind = ErrorKind.OpportunityUnavailable


class OpportunityLockedError(RuleViolation):
    kind = ErrorKind.OpportunityLocked


class FullError(RuleViolation):
    kind = ErrorKind.Full


class AlreadyAssignedError(RuleViolation):
    kind = ErrorKind.AlreadyAssigned


class NotAssignedError(RuleViolation):
    kind = ErrorKind.NotAssigned


class InvalidCapacityError(RuleViolation):
    kind = ErrorKind.InvalidCapacity


class InvalidFieldError(RuleViolation):
    kind = ErrorKind.InvalidField


class NotEligibleError(RuleViolation):
    kind = ErrorKind.NotEligible


class DuplicateFeedbackError(RuleViolation):
    kind = ErrorKind.DuplicateFeedback


# ─────────────────────────────────────────────
# SYSTEM FAULT
# ─────────────────────────────────────────────

class ConsistencyError(EngineError, RuntimeError):
    """
    current_volunteers disagrees with the assignment ledger.
    Reported, never repaired here.
    """

    kind = ErrorKind.ConsistencyError

    def __init__(
        self,
        message: str,
        *,
        opportunity_id: Optional[str] = None,
        counter: Optional[int] = None,
        ledger: Optional[int] = None,
    ):
        super().__init__(message, opportunity_id=opportunity_id, counter=counter, ledger=ledger)
        self.opportunity_id = opportunity_id
        self.counter = counter
        self.ledger = ledger
