import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers the tables on Base.metadata)
from .cache import invalidate_catalog_cache
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import router as catalog_router
from .domain.payments.router import router as payments_router
from .domain.pricing.router import router as pricing_router
from .domain.slots.router import router as slots_router
from .shared.errors import BookingError, ErrorCode

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SLOW_REQUEST_THRESHOLD = 2.0


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

    # Catalog rows are edited in the database directly; drop what a previous run cached
    cleared = invalidate_catalog_cache()
    if cleared:
        logger.info(f"Cleared {cleared} cached catalog responses")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="CineMates Booking API", version="1.0.0", lifespan=lifespan)


def _failure_body(request: Request, body: dict) -> dict:
    # Payment endpoints always answer with a status field
    if request.url.path.startswith("/payment-"):
        return {"status": "failure", **body}
    return body


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc}")
    return JSONResponse(status_code=exc.status_code, content=_failure_body(request, exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400 VALIDATION_ERROR"""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": str(error.get("msg", "")).removeprefix("Value error, "),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    detail = errors[0]["message"] if errors else "Invalid request"
    if errors and errors[0]["field"]:
        detail = f"{errors[0]['field']}: {detail}"
    body = {"detail": detail, "code": ErrorCode.VALIDATION_ERROR.value, "details": {"errors": errors}}
    return JSONResponse(status_code=400, content=_failure_body(request, body))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration = time.time() - start
    if duration > SLOW_REQUEST_THRESHOLD:
        logger.warning(f"🐌 Slow request {request.method} {request.url.path} ({duration:.2f}s)")
    return response


# Log CORS configuration for debugging
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(bookings_router)
app.include_router(slots_router)
app.include_router(pricing_router)
app.include_router(payments_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
