"""
Journal Lookup API — medical journal directory, specialty filters and NLM Catalog search.

App factory, lifespan, middleware and exception handlers. Routes live in
routers/journals.py; all journal logic lives in services/.
"""
import time
import uuid
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .exceptions import JournalLookupError
from .http_client import close_clients
from .logging_config import setup_logging
from .rate_limit import limiter
from .routers import journals
from .schemas.errors import ErrorResponse
from .services.journal_service import JournalService

API_VERSION = "v1"
APP_VERSION = "1.0.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-API-Version": API_VERSION,
}

_HTTP_ERROR_TYPES = {404: "RouteNotFound", 405: "MethodNotAllowed"}


def _error_response(
    request: Request,
    status_code: int,
    type_: str,
    message: str = "",
    detail: list | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=HTTPStatus(status_code).phrase,
        type=type_,
        message=message,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


# --- App Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    service = getattr(app.state, "journal_service", None)
    if service is None:
        service = JournalService()
        app.state.journal_service = service
    # Traffic is only accepted once the journal index is loaded
    await service.initialize()
    logger.info("Journal Lookup API ready", version=APP_VERSION)
    yield
    await close_clients()


def create_app(service: JournalService | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, version=APP_VERSION, lifespan=lifespan)
    if service is not None:
        app.state.journal_service = service

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        start = time.monotonic()
        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error in {request.method} {request.url.path}")
                response = _error_response(
                    request, 500, "HandlerFailure", "The request could not be completed"
                )
            duration_ms = (time.monotonic() - start) * 1000
            log = logger.warning if response.status_code >= 400 else logger.debug
            log(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)")
        response.headers["X-Request-ID"] = request_id
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.exception_handler(JournalLookupError)
    async def journal_error_handler(request: Request, exc: JournalLookupError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind}: {exc.message}")
        return _error_response(request, exc.status_code, exc.kind, exc.message, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(
            request,
            exc.status_code,
            _HTTP_ERROR_TYPES.get(exc.status_code, "HTTPError"),
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            request, 422, "ValidationError", "Request validation failed",
            detail=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        item = exc.limit.limit
        headers = {
            "Retry-After": str(item.get_expiry()),
            "X-RateLimit-Limit": str(item.amount),
        }
        return _error_response(
            request, 429, "RateLimitExceeded", f"Rate limit exceeded: {exc.detail}", headers=headers
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error in {request.method} {request.url.path}")
        return _error_response(request, 500, "HandlerFailure", "The request could not be completed")

    app.include_router(journals.router)

    @app.get("/health")
    async def health(request: Request):
        service = getattr(request.app.state, "journal_service", None)
        return {
            "status": "ok",
            "version": APP_VERSION,
            "ready": bool(service and service.ready),
        }

    return app


app = create_app()
