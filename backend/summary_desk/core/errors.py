# summary_desk/core/errors.py
"""Translate application errors into JSON responses with a next step."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from summary_desk.exceptions import (
    ConfigurationError,
    ConflictError,
    GenerationInProgress,
    InvalidFilenameError,
    NotFoundError,
    PollTimeout,
    StoreError,
    SummaryDeskError,
    TransientStoreError,
    TriggerRejected,
)
from summary_desk.utils.logging import logger

# Most specific first
STATUS_CODES = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (GenerationInProgress, 409),
    (InvalidFilenameError, 400),
    (TransientStoreError, 503),
    (StoreError, 500),
    (TriggerRejected, 502),
    (PollTimeout, 202),
    (ConfigurationError, 500),
]


def status_code_for(exc: SummaryDeskError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def summary_desk_error_handler(request: Request, exc: SummaryDeskError) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(f"{type(exc).__name__}: {exc}", extra={
        "path": request.url.path,
        "operation": exc.operation,
        "key": exc.key,
        "status_code": status_code,
    })
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def setup_error_handlers(app: FastAPI):
    """Register exception handlers"""
    app.add_exception_handler(SummaryDeskError, summary_desk_error_handler)
