import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DocTrackError(HTTPException):
    """Base for domain errors raised by the service layer.

    Subclasses are HTTPExceptions so routers can let them propagate unchanged;
    the handler below renders them with their machine-readable ``code``.
    """

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details=None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.details = details


class ValidationError(DocTrackError):
    status_code = 400
    code = "validation_error"


class NotFoundError(DocTrackError):
    status_code = 404
    code = "not_found"


class ConflictError(DocTrackError):
    status_code = 409
    code = "conflict"


class StorageError(DocTrackError):
    status_code = 502
    code = "storage_error"


class PermissionDeniedError(DocTrackError):
    status_code = 403
    code = "permission_denied"


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(DocTrackError)
    async def domain_exception_handler(request: Request, exc: DocTrackError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
