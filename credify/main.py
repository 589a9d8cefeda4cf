import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import AppConfig
from .email_service import EmailDeliveryError, EmailTransport, Notifier, build_transport
from .rate_limiter import (
    RATE_LIMIT_MESSAGE,
    RateLimiter,
    RateLimitExceeded,
    enforce_rate_limit,
    get_redis_client,
    is_rate_limited_path,
)
from .routes.apply import router as apply_router
from .routes.career import router as career_router
from .routes.contact import router as contact_router
from .schemas import ErrorResponse, FieldError
from .security_headers import SecurityHeadersMiddleware
from .uploads import ResumeRejected
from .validation import SubmissionValidationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def error_response(status_code: int, error: str, errors=None, headers=None) -> JSONResponse:
    body = ErrorResponse(error=error, errors=errors).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    config: AppConfig = app.state.config

    if config.redis_url:
        try:
            app.state.rate_limiter.redis_client = get_redis_client(config.redis_url)
        except Exception as e:
            logger.warning(f"Redis connection failed - rate limiting will use memory only: {e}")

    yield
    logger.info("Application shutting down...")


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(SubmissionValidationError)
    async def submission_validation_handler(request: Request, exc: SubmissionValidationError):
        return error_response(400, exc.message, errors=exc.errors)

    @app.exception_handler(ResumeRejected)
    async def resume_rejected_handler(request: Request, exc: ResumeRejected):
        logger.warning(f"Resume rejected on {request.url.path}: {exc.reason}")
        return error_response(400, exc.reason)

    @app.exception_handler(EmailDeliveryError)
    async def email_delivery_handler(request: Request, exc: EmailDeliveryError):
        # Details were logged by the notifier
        return error_response(500, "Email failed")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        errors = [
            FieldError(msg=str(err.get("msg", "Invalid value")), path=str(err.get("loc", ["body"])[-1]))
            for err in exc.errors()
        ]
        return error_response(400, "Validation failed", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} - Error: {exc}")
        return error_response(500, "Internal server error")


def create_app(
    config: Optional[AppConfig] = None,
    transport: Optional[EmailTransport] = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        config: Settings snapshot; read from the environment when omitted
        transport: Email transport; built from ``config`` when omitted
    """
    config = config or AppConfig.from_env()
    transport = transport or build_transport(config)

    app = FastAPI(title=f"{config.brand_name} Forms API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.notifier = Notifier(transport, background=config.background_dispatch)
    app.state.rate_limiter = RateLimiter(
        limit=config.rate_limit_max, window_seconds=config.rate_limit_window_seconds
    )
    logger.info(
        f"Dispatch mode: {config.dispatch_mode}, resume required: {config.career_resume_required}"
    )

    register_exception_handlers(app)

    @app.middleware("http")
    async def rate_limit_api(request: Request, call_next):
        if not is_rate_limited_path(request.url.path):
            return await call_next(request)

        try:
            limit_headers = enforce_rate_limit(request)
        except RateLimitExceeded as e:
            return error_response(
                429, RATE_LIMIT_MESSAGE, headers={"Retry-After": str(e.retry_after), **e.headers}
            )

        response = await call_next(request)
        for name, value in limit_headers.items():
            response.headers.setdefault(name, value)
        return response

    if config.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health"])
        logger.info("Security headers enabled")
    else:
        logger.warning("Security headers DISABLED - only use in development!")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(contact_router)
    app.include_router(career_router)
    app.include_router(apply_router)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return f"{config.brand_name} backend is live ✅"

    @app.get("/health")
    def health():
        return {"status": "healthy", "transport": getattr(transport, "name", "custom")}

    # Static frontend, mounted last so the API routes above take priority
    if config.static_dir and os.path.isdir(config.static_dir):
        app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="static")
        logger.info(f"Serving static files from {config.static_dir}")

    return app


app = create_app()
