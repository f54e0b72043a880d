import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .database import Base, engine
from .domain.bookings import door_router, router as bookings_router
from .domain.cancellations import router as cancellations_router
from .domain.combinations import router as combinations_router
from .domain.limits import router as limits_router
from .domain.references import router as references_router
from .exceptions import BookingError, GenerationExhausted

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Venue Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if isinstance(exc, GenerationExhausted):
        logger.error(f"🚨 {request.method} {request.url.path} - {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.status_code} {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, **exc.extra})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc.errors())},
    )


def jsonable_errors(errors) -> list:
    # Pydantic puts the raised ValueError in ctx, which is not JSON serializable
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        cleaned.append(error)
    return cleaned


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(bookings_router)
app.include_router(cancellations_router)
app.include_router(door_router)
app.include_router(limits_router)
app.include_router(combinations_router)
app.include_router(references_router)


@app.get("/")
def root():
    return {"message": "Venue Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check the refund worker's Redis broker for monitoring"""
    try:
        import redis

        redis_client = redis.from_url(
            os.getenv("REDIS_URL", "redis://localhost:6379"), socket_connect_timeout=2
        )

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
