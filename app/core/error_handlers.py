# app/core/error_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import ConsistencyError, EngineError, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NotFound: 404,
    ErrorKind.NotAssigned: 404,
    ErrorKind.Forbidden: 403,
    ErrorKind.Conflict: 409,
    ErrorKind.OpportunityUnavailable: 409,
    ErrorKind.OpportunityLocked: 409,
    ErrorKind.Full: 409,
    ErrorKind.AlreadyAssigned: 409,
    ErrorKind.DuplicateFeedback: 409,
    ErrorKind.NotEligible: 409,
    ErrorKind.InvalidCapacity: 422,
    ErrorKind.InvalidField: 422,
    ErrorKind.ConsistencyError: 500,
}


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    body = exc.as_dict()
    rid = getattr(request.state, "request_id", None)
    if rid:
        body["request_id"] = rid

    if isinstance(exc, ConsistencyError):
        logger.error(
            "[consistency] %s opportunity=%s counter=%s ledger=%s",
            exc.message, exc.opportunity_id, exc.counter, exc.ledger,
        )
        body["counter"] = exc.counter
        body["ledger"] = exc.ledger
    else:
        logger.info("[rejected] %s %s: %s", request.method, request.url.path, exc.kind.value)

    return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 400), content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EngineError, engine_error_handler)
