import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from ...domain.exceptions import DomainError
from ...infrastructure.metrics import domain_errors_total

logger = structlog.get_logger(__name__)


def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    domain_errors_total.labels(error=exc.error_code).inc()
    logger.info("domain_error", path=request.url.path, error=exc.error_code,
                status_code=exc.status_code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate_limited", path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content={"error": "TOO_MANY_REQUESTS", "message": f"Rate limit exceeded: {exc.detail}", "statusCode": 429},
    )


def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_SERVER_ERROR", "message": "Internal server error", "statusCode": 500},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
