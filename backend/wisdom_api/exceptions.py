from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback
import uuid
from wisdom_api.core.config import settings
from wisdom_api.core.errors import AppError
from wisdom_api.core.logging import get_logger


def _request_id(request: Request | None) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_payload(code: str, message: str, request: Request | None = None, details=None, error_id: str | None = None):
    """Build the flat error body every failing endpoint returns."""
    out = {"error": message, "code": code}
    rid = _request_id(request)
    if rid:
        out["request_id"] = rid
    if details is not None:
        out["details"] = details
    if error_id:
        out["error_id"] = error_id
    return out


def _validation_details(errors) -> list[dict]:
    # pydantic error dicts may carry non-JSON values under "ctx"/"input"
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in errors
    ]


def install_exception_handlers(app):
    log = get_logger("wisdom_api.exceptions")

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        level = log.error if exc.status_code >= 500 else log.info
        level(
            "%s %s %s -> %s: %s",
            type(exc).__name__, request.method, request.url.path, exc.status_code, exc.message,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            error_payload(exc.code, exc.message, request),
            status_code=exc.status_code,
            headers=exc.headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc.errors())
        log.info(
            "ValidationError %s %s: %s",
            request.method, request.url.path, details,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            error_payload("validation_error", "Please check your input and try again.", request, details),
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        log.warning(
            "HTTPException %s %s -> %s: %s",
            request.method, request.url.path, exc.status_code, exc.detail,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            error_payload("http_error", str(exc.detail), request),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        err_id = str(uuid.uuid4())
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        log.error(
            "Unhandled exception [%s] %s %s\nTraceback:\n%s",
            err_id, request.method, request.url.path, tb,
            extra={"request_id": _request_id(request)},
        )
        # Only dev builds echo the exception text back
        details = repr(exc) if settings.is_dev_mode else None
        return JSONResponse(
            error_payload("internal_error", "Something went wrong", request, details, error_id=err_id),
            status_code=500,
        )
