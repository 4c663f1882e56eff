"""Translate ledger errors into JSON responses: {"error", "detail", "context"}."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.errors import (
    AlreadyUndone,
    InsufficientStock,
    InvalidState,
    LedgerError,
    NotFound,
    PersistenceFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: 400,
    NotFound: 404,
    InsufficientStock: 409,
    InvalidState: 409,
    AlreadyUndone: 409,
    PersistenceFailure: 503,
}


def status_for(exc: LedgerError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_body(code: str, detail: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"error": code, "detail": detail, "context": jsonable_encoder(context)}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    if isinstance(exc, PersistenceFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content=error_body(exc.code, exc.message, exc.context))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or None
    detail = str(first.get("msg") or "invalid request")
    context = {"field": field} if field else {}
    return JSONResponse(status_code=400, content=error_body(ValidationError.code, detail, context))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
