# venue_booking/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from venue_booking.api.v1.api import api_router
from venue_booking.api.v1.endpoints import health
from venue_booking.core.config import settings
from venue_booking.core.exceptions import AppError
from venue_booking.core.llm_client import get_llm_client
from venue_booking.middleware import (
    error_handler_middleware,
    app_error_handler,
    validation_error_handler,
    database_error_handler,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting venue booking service (env={settings.ENV})")
    if not get_llm_client().is_configured:
        logger.warning("ANTHROPIC_API_KEY not set - the venue agent endpoint will answer 500")
    yield
    logger.info("Shutting down venue booking service")


app = FastAPI(
    title="Venue Booking Service",
    description="Bookings, change proposals and the venue booking agent",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins() or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)
app.middleware("http")(error_handler_middleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)

app.include_router(health.router)
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
