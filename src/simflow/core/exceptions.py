"""Exception handlers with request_id in responses."""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.simflow.core.logging import get_logger
from src.simflow.workflow.errors import (
    Conflict,
    Forbidden,
    InsufficientBudget,
    InvalidTransition,
    NotFound,
    ProjectInUse,
    ProjectUnavailable,
    ReasonRequired,
    ValidationFailed,
    WorkflowError,
)

logger = get_logger(__name__)

# Most specific class wins; see status_for
ERROR_STATUS_CODES: dict[type[WorkflowError], int] = {
    InvalidTransition: status.HTTP_409_CONFLICT,
    Forbidden: status.HTTP_403_FORBIDDEN,
    InsufficientBudget: status.HTTP_409_CONFLICT,
    ReasonRequired: 422,
    Conflict: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    ProjectUnavailable: status.HTTP_409_CONFLICT,
    ProjectInUse: status.HTTP_409_CONFLICT,
    ValidationFailed: 422,
}


def status_for(exc: WorkflowError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


def error_body(detail: Any, error: str, **extra: Any) -> dict[str, Any]:
    return {"detail": detail, "error": error, "request_id": correlation_id.get(), **extra}


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        status_code = status_for(exc)
        error = type(exc).__name__
        logger.info(
            "Workflow rule rejected request",
            error=error,
            status_code=status_code,
            path=request.url.path,
            **exc.context(),
        )
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(error_body(exc.message, error, **exc.context())),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder(error_body(exc.errors(), "RequestValidationError")),
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.detail, "HTTPException"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.detail, "HTTPException"),
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error", "InternalServerError"),
        )
