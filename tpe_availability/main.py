from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from tpe_availability.db.base import get_db
from tpe_availability.core.config import settings
from tpe_availability.core.logging import configure_logging
from tpe_availability.routers import availability as availability_router
from tpe_availability.routers import bi as bi_router
from tpe_availability.routers import metrics as metrics_router
from tpe_availability.routers import policies as policies_router
from tpe_availability.routers import week_locks as week_locks_router
from tpe_availability.core.errors import (
    AvailabilityException,
    availability_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging()

app = FastAPI(
    title="TPE Availability API",
    description=(
        "**Payment terminal availability**\n\n"
        "Evaluates hourly terminal telemetry against versioned policies and "
        "stores one verdict per terminal per day and per week.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(AvailabilityException, availability_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(policies_router.router)
app.include_router(week_locks_router.router)
app.include_router(availability_router.router)
app.include_router(metrics_router.router)
app.include_router(bi_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable, HTTP 503 otherwise.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
