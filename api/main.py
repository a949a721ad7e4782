"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import ServiceRegistry
from api.routes import check_router, status_router
from consumer.sweeper import JobSweeper
from shared.config import settings
from shared.errors import InternalError, LeakCheckError
from shared.logger import configure_logging
from storage.registry import StoreRegistry

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    store = StoreRegistry.init_store()
    ServiceRegistry.init()

    sweeper = JobSweeper(store)
    sweeper.start()
    logger.info("Leak check API started")

    yield

    # Shutdown
    await sweeper.stop()
    await ServiceRegistry.close()
    StoreRegistry.close()
    logger.info("Leak check API shut down")


# Create FastAPI app
app = FastAPI(
    title="Leak Check Batch API",
    description="Submit credentials for leak checking and track batch jobs to completion",
    version=settings.api_version,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeakCheckError)
async def leak_check_error_handler(request: Request, exc: LeakCheckError):
    """Render domain errors as {error, code}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Render request validation failures in the same {error, code} shape."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid input: {details}", "code": "INVALID_INPUT"}
    )


# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError(str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Include routers
app.include_router(check_router, prefix=settings.api_prefix)
app.include_router(status_router, prefix=settings.api_prefix)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Leak Check Batch API",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug
    )
