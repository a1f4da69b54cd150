"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from employee_api.config import Settings, get_settings
from employee_api.database import dispose_engine
from employee_api.exceptions import EmployeeAPIError
from employee_api.middleware.error_handler import (
    employee_api_error_handler,
    generic_exception_handler,
    http_exception_handler,
    sqlalchemy_exception_handler,
    validation_exception_handler,
)
from employee_api.routers import audit, auth, employees, users

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Headers set on every response; HSTS is added in production only
BASE_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security and caching headers to every response.

    Employee records include salaries, so nothing is cacheable unless the
    route set its own ``Cache-Control``.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(BASE_SECURITY_HEADERS)
        response.headers.setdefault("Cache-Control", "no-store")
        if get_settings().environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and release database connections on shutdown."""
    logger.info("Starting %s in %s mode", app.title, get_settings().environment)
    yield
    await dispose_engine()
    logger.info("Stopped %s", app.title)


def configure_logging(level: str) -> None:
    """Configure root logging for the process."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain, validation and database errors onto JSON responses."""
    app.add_exception_handler(EmployeeAPIError, employee_api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


def add_middleware(app: FastAPI, config: Settings) -> None:
    """Install security headers and CORS."""
    origins = config.cors_origins_list
    if "*" in origins:
        raise ValueError("CORS_ORIGINS must list explicit origins; '*' is not allowed with credentials")

    app.add_middleware(SecurityHeadersMiddleware)
    # Added last so it wraps everything else, including preflight requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )


def create_app() -> FastAPI:
    """Build the application from the current settings."""
    config = get_settings()
    configure_logging(config.log_level)

    app = FastAPI(
        title=config.app_name,
        version="0.1.0",
        description="Employees, user accounts and their audit trail",
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )

    register_exception_handlers(app)
    add_middleware(app, config)

    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Authentication"])
    app.include_router(employees.router, prefix=f"{API_PREFIX}/employees", tags=["Employees"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
    app.include_router(audit.router, prefix=f"{API_PREFIX}/audit", tags=["Audit"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "healthy"}

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    config = get_settings()
    logger.info("Listening on %s:%d", config.host, config.port)
    uvicorn.run(
        "employee_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
