"""Global error handling.

Every handler answers with {"error": <category>, "detail": str | list}. Domain errors
never reach these handlers directly; routers translate them into APIException subclasses.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from logger import get_logger

logger = get_logger("http")

ERROR_CATEGORIES: dict[int, str] = {
    400: "Bad request",
    404: "Not found",
    405: "Method not allowed",
    409: "Conflict",
    413: "Payload too large",
    422: "Validation error",
    429: "Too many requests",
    500: "Internal server error",
}


def error_response(status_code: int, detail, headers: dict[str, str] | None = None) -> JSONResponse:
    category = ERROR_CATEGORIES.get(status_code, f"Error {status_code}")
    return JSONResponse(status_code=status_code, content={"error": category, "detail": detail}, headers=headers)


def _echo_safe(error: dict) -> dict:
    """Validation error entry without non-scalar inputs (uploaded files, whole bodies)."""
    entry = {"type": error.get("type"), "loc": error.get("loc"), "msg": error.get("msg")}
    value = error.get("input")
    if isinstance(value, str | int | float | bool | None):
        entry["input"] = value
    if error.get("ctx"):
        entry["ctx"] = {key: str(ctx_value) for key, ctx_value in error["ctx"].items()}
    return entry


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTPException and APIException handler."""
    return error_response(exc.status_code, exc.detail, exc.headers)


async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation handler: out-of-range options, bad tiers, missing fields."""
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, [_echo_safe(e) for e in exc.errors()])


async def response_validation_exception_handler(_request: Request, exc: ResponseValidationError) -> JSONResponse:
    logger.opt(exception=exc).error(f"Response validation error | errors={len(exc.errors())}")
    detail = [{"type": e.get("type"), "loc": e.get("loc"), "msg": e.get("msg")} for e in exc.errors()]
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail if get_settings().app.debug else "Response validation failed",
    )


async def global_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, hide it from the client unless debugging."""
    logger.opt(exception=exc).error(f"Unhandled exception | {type(exc).__name__}: {exc!r}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) if get_settings().app.debug else "An error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Covers APIException and router-level 404/405 raised by Starlette
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
