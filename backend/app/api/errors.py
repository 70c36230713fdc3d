from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import (
    Conflict,
    NotFound,
    PlanningError,
    ReferenceNotFound,
    UniquenessViolation,
    ValidationError,
)

logger = logging.getLogger("budget_plan_api.errors")

STATUS_BY_ERROR: dict[type[PlanningError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ReferenceNotFound: 422,
    NotFound: status.HTTP_404_NOT_FOUND,
    UniquenessViolation: status.HTTP_409_CONFLICT,
    Conflict: status.HTTP_409_CONFLICT,
}


def status_for(exc: PlanningError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def planning_error_handler(request: Request, exc: PlanningError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info("%s %s -> %s %s", request.method, request.url.path, status_code, exc.code)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlanningError, planning_error_handler)
