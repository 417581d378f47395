import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from . import models
from .database import engine
from .exceptions import register_exception_handlers
from .routers import booking_router, item_router, user_router
from .outbox_poller import run_outbox_poller

import redis.asyncio as redis
from fastapi_limiter import FastAPILimiter
from .config import settings

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("shareit")

# Create database tables on startup
models.Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    logger.info("Starting background tasks...")

    redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8")
    try:
        await FastAPILimiter.init(redis_client)
        logger.info("FastAPILimiter initialized with Redis.")
    except Exception as e:
        logger.error(f"Failed to initialize FastAPILimiter: {e}")

    poller_task = asyncio.create_task(run_outbox_poller())

    yield  # The application is now running

    logger.info("Shutting down background tasks...")

    await redis_client.close()

    poller_task.cancel()
    try:
        await poller_task
    except asyncio.CancelledError:
        logger.info("Outbox poller task successfully cancelled.")
    except Exception as e:
        logger.error(f"Error during outbox poller shutdown: {e}")


app = FastAPI(
    title="ShareIt API",
    description="Share items with other users: book them, approve bookings, leave comments.",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)

app.include_router(user_router.router)
app.include_router(item_router.router)
app.include_router(booking_router.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the ShareIt API"}
