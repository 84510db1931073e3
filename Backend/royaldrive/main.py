import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from royaldrive.core.config import settings
from royaldrive.core.exceptions import ConflictError, DealershipError, InvalidUpdateError

# Setup Logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
# Database Initialization (Startup)
# --------------------------------------------------------------------------
from royaldrive.core.database import init_db
from royaldrive.services.vehicle_cache_service import close_vehicle_cache

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Connecting to Database...")
    await init_db()
    logger.info("Database Connection Successful!")
    yield
    await close_vehicle_cache()

# Create FastAPI application
app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Dealership back-office: inventory, storefront and sales",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --------------------------------------------------------------------------
# CORS Middleware
# --------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------------------------------------------------------------------
# Exception Handlers
# --------------------------------------------------------------------------
@app.exception_handler(DealershipError)
async def dealership_exception_handler(request: Request, exc: DealershipError):
    content = {
        "message": exc.message,
        "detail": type(exc).__name__,
        "path": str(request.url)
    }
    if isinstance(exc, ConflictError):
        content["field"] = exc.field
    elif isinstance(exc, InvalidUpdateError):
        content["errors"] = exc.errors
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


# Global handler so unexpected errors still come back as JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_msg = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Unhandled error at {request.url.path}:\n{error_msg}")

    return JSONResponse(
        status_code=500,
        content={
            "message": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "Unexpected error",
            "path": str(request.url)
        }
    )

# --------------------------------------------------------------------------
# Basic Routes
# --------------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# --------------------------------------------------------------------------
# API Routers
# --------------------------------------------------------------------------
from royaldrive.api.v1 import api_router

app.include_router(api_router, prefix="/api/v1")
