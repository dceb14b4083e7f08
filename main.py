"""
FastAPI main application for the tutoring business management API.

Every error leaves the API as ``{"error": "<message>"}``.
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from database import engine, init_db, close_db  # noqa: E402
from routers import auth, students, tutorings, payments, materials, evaluations  # noqa: E402

SERVICE_NAME = "Tutoring Management API"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup, release the pool on shutdown."""
    logger.info("Starting %s (%s)", SERVICE_NAME, os.getenv("ENVIRONMENT", "development"))
    init_db()
    yield
    close_db()
    logger.info("Shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Authentication, students, tutorings, payments, materials and evaluations",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in origins if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s -> %s (%.1fms)",
        request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


# ============================================
# Exception handlers
# ============================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the location prefix ("body", "query", ...) and pydantic's "Value error, " prefix
    # Integer parts are list indexes or, for unparseable JSON, a byte offset
    field = ".".join(part for part in first.get("loc", ())[1:] if isinstance(part, str))
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}" if field else message


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _describe_validation_error(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ============================================
# Health checks
# ============================================

@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "environment": os.getenv("ENVIRONMENT", "development"),
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check with database status"""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        logger.exception("Database health check failed")
        db_status = "error"

    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "database": db_status,
        "environment": os.getenv("ENVIRONMENT", "development"),
    }


# Register routers
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(students.router, prefix="/api", tags=["students"])
app.include_router(tutorings.router, prefix="/api", tags=["tutorings"])
app.include_router(payments.router, prefix="/api", tags=["payments"])
app.include_router(materials.router, prefix="/api", tags=["materials"])
app.include_router(evaluations.router, prefix="/api", tags=["evaluations"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3001")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
