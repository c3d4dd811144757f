"""
Main FastAPI application for the Dental Lab back-office API.
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dental_lab.api.api_router import api_router
from dental_lab.api.v1.health import health_payload
from dental_lab.core.config import settings
from dental_lab.core.exceptions import AppError
from dental_lab.core.logging import get_logger, setup_logging
from dental_lab.db.init_db import init_db
from dental_lab.services.email_service import EmailService
from dental_lab.services.storage_service import StorageService
from dental_lab.services.token_service import TokenService

logger = get_logger("dental_lab.api")


def error_body(message: str, code: str, details=None) -> dict:
    body = {"success": False, "message": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting Dental Lab API...")
    try:
        init_db()
        logger.info("Application startup completed")
        yield
    except Exception as e:
        logger.error(f"Application startup failed: {e}")
        raise
    finally:
        logger.info("Shutting down Dental Lab API...")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}", exc_info=True)
        details = None if settings.is_production else exc.details
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.code, details))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Validation failed", "VALIDATION_ERROR", details)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "HTTP_ERROR"
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content=error_body(message, code))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(message, "INTERNAL_SERVER_ERROR")
        )


def create_app(
    token_service: Optional[TokenService] = None,
    email_service: Optional[EmailService] = None,
    storage_service: Optional[StorageService] = None,
    use_lifespan: bool = True,
) -> FastAPI:
    """Build the application with its process-wide collaborators."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Back-office API for dental lab cases, workflow, billing and administration",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan if use_lifespan else None
    )

    app.state.token_service = token_service or TokenService()
    app.state.email_service = email_service or EmailService()
    app.state.storage_service = storage_service or StorageService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.3f}s"
        )
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["health"])
    async def health():
        return {"success": True, "data": health_payload()}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "dental_lab.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
