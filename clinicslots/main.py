# clinicslots/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clinicslots.core.config import settings
from clinicslots.core.logging import configure_logging
from clinicslots.core.middleware import RequestContextMiddleware
from clinicslots.db.sql import engine as db_engine, init_db
from clinicslots.modules.slots.engine import build_engine
from clinicslots.routers import appointments, calendar, health, providers

logger = logging.getLogger(__name__)


# Define lifespan event
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    The lifespan function is used to manage the FastAPI application lifecycle.
    The scheduling engine is built once here and shared by all requests.
    """
    configure_logging()
    # Initialize database (create tables if they don't exist)
    await init_db()
    app.state.engine = build_engine()
    logger.info("Clinic slots API ready (env=%s)", settings.APP_ENV)
    yield
    await db_engine.dispose()


app = FastAPI(
    title="Clinic Slot Scheduling API",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(providers.router, prefix=settings.API_PREFIX, tags=["slots"])
app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])
app.include_router(calendar.router, prefix=settings.API_PREFIX, tags=["calendar"])


@app.get("/")
def root():
    return {"message": "Clinic slot scheduling API running"}
