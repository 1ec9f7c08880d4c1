"""
FastAPI application entry point for the QuickBooks connector
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from .api.dependencies import get_store
from .api.oauth_routes import pages_router, router as oauth_router
from .api.routes import router
from .api.schemas import HealthResponse
from .quickbooks.errors import QuickBooksError, QuickBooksErrorType
from .utils.logger import get_logger
from .utils.scheduler import start_scheduler, stop_scheduler

logger = get_logger(__name__)

SERVICE_NAME = "quickbooks-connector"
VERSION = "0.1.0"

ERROR_STATUS_CODES = {
    QuickBooksErrorType.AUTHENTICATION: 401,
    QuickBooksErrorType.RATE_LIMIT: 429,
    QuickBooksErrorType.SERVER_ERROR: 502,
    QuickBooksErrorType.CONNECTION: 503,
    QuickBooksErrorType.INVALID_REQUEST: 400,
    QuickBooksErrorType.UNKNOWN: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting QuickBooks connector")
    start_scheduler(
        settings.auto_sync_schedule,
        settings.schedule_time,
        store=get_store(settings),
        config=settings.quickbooks_config(),
    )
    yield
    # Shutdown
    logger.info("Shutting down QuickBooks connector")
    stop_scheduler()


app = FastAPI(
    title="QuickBooks Connector",
    description="Connects a CRM to QuickBooks Online and syncs accounting data",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url] if settings.frontend_url else ["*"],
    allow_credentials=bool(settings.frontend_url),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuickBooksError)
async def quickbooks_error_handler(request: Request, exc: QuickBooksError):
    status_code = ERROR_STATUS_CODES[exc.error_type]
    logger.warning(f"{request.method} {request.url.path} failed with {exc.error_type.value}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


app.include_router(oauth_router)
app.include_router(router)
app.include_router(pages_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "QuickBooks Connector",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "connect": "/api/quickbooks/auth/connect",
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="healthy", service=SERVICE_NAME, version=VERSION)


if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
