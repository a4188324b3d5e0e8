import logging
import time
import uuid
from datetime import datetime

import sentry_sdk
import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from ecofinds.api.v1 import auth, cart, products, purchases, users, wishlist
from ecofinds.core.config import settings
from ecofinds.core.exceptions import APIError
from ecofinds.core.logging_config import configure_logging
from ecofinds.core.rate_limiter import limiter
from ecofinds.db.session import engine

API_VERSION = "1.0.0"


def standardized_error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "success": False,
                "message": message,
                "data": None,
                "errors": errors or [],
                "timestamp": f"{datetime.utcnow().isoformat()}Z",
            }
        ),
    )


configure_logging()

if settings.ENVIRONMENT == "production" and settings.SENTRY_DSN:
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
        )
        logging.info("Sentry initialized successfully")
    except Exception as e:
        # The API keeps serving without error reporting
        logging.warning(f"Failed to initialize Sentry: {e}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=API_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return standardized_error_response(
        status_code=429,
        message="Too many requests. Please try again later.",
    )


cors_origins = list(settings.BACKEND_CORS_ORIGINS)
# Cookies need an exact origin match
if settings.FRONTEND_URL and settings.FRONTEND_URL not in cors_origins:
    cors_origins.append(settings.FRONTEND_URL)


app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "X-Correlation-ID",
    ],
    expose_headers=["X-Process-Time", "X-Correlation-ID"],
    max_age=3600,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    if settings.ENVIRONMENT == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

    request.state.correlation_id = correlation_id
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("correlation_id")

    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger = structlog.get_logger()

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )

    return response


app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Authentication"])
app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])
app.include_router(products.router, prefix=f"{settings.API_V1_STR}/products", tags=["Products"])
app.include_router(cart.router, prefix=f"{settings.API_V1_STR}/cart", tags=["Cart"])
app.include_router(purchases.router, prefix=f"{settings.API_V1_STR}/purchases", tags=["Purchases"])
app.include_router(wishlist.router, prefix=f"{settings.API_V1_STR}/wishlist", tags=["Wishlist"])


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION,
        "timestamp": f"{datetime.utcnow().isoformat()}Z",
    }


@app.get("/health/database")
def database_health_check():
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")

        pool = engine.pool
        metrics = {
            "pool_class": pool.__class__.__name__,
            "size": pool.size() if hasattr(pool, "size") else None,
            "checked_out": pool.checkedout() if hasattr(pool, "checkedout") else None,
            "overflow": pool.overflow() if hasattr(pool, "overflow") else None,
            "status": pool.status() if hasattr(pool, "status") else None,
        }
        return {"status": "healthy", "pool": metrics}
    except Exception as exc:
        return {
            "status": "unhealthy",
            "pool": {},
            "reason": f"Database connectivity check failed: {exc}",
        }


@app.get("/")
def root():
    return {
        "message": "EcoFinds Marketplace API",
        "docs": f"{settings.API_V1_STR}/docs",
        "version": API_VERSION,
    }


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return standardized_error_response(
        status_code=exc.status_code,
        message=exc.message,
        errors=exc.errors,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail

    if isinstance(detail, str):
        message = detail
        errors = []
    elif isinstance(detail, list):
        message = "Request failed"
        errors = detail
    elif isinstance(detail, dict):
        message = detail.get("message", "Request failed")
        errors = detail.get("errors", [])
    else:
        message = "Request failed"
        errors = []

    return standardized_error_response(
        status_code=exc.status_code,
        message=message,
        errors=errors,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return standardized_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation failed",
        errors=errors,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger = structlog.get_logger()
    logger.exception("unhandled_exception", error_type=type(exc).__name__, detail=str(exc))

    if settings.DEBUG and settings.ENVIRONMENT != "production":
        return standardized_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=f"Internal server error: {str(exc)}",
            errors=[{"type": type(exc).__name__}],
        )

    return standardized_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Internal server error",
    )
