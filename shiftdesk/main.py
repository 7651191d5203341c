import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shiftdesk.core.config import settings
from shiftdesk.core.database import create_tables
from shiftdesk.core.errors import register_error_handlers
from shiftdesk.core.logging import configure_logging
from shiftdesk.api.v1.auth import router as auth_router
from shiftdesk.api.v1.employees import router as employees_router, groups_router
from shiftdesk.api.v1.shifts import router as shifts_router
from shiftdesk.api.v1.shift_exchanges import router as exchanges_router, shift_router as shift_exchange_router
from shiftdesk.api.v1.payroll import periods_router, entries_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup (SQLite / local development)
    await create_tables()
    logger.info("shiftdesk API started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="shiftdesk API",
    description="Shift scheduling, shift exchange and payroll",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

API_PREFIX = "/api/v1"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(groups_router, prefix=API_PREFIX)
app.include_router(employees_router, prefix=API_PREFIX)
app.include_router(shifts_router, prefix=API_PREFIX)
app.include_router(shift_exchange_router, prefix=API_PREFIX)
app.include_router(exchanges_router, prefix=API_PREFIX)
app.include_router(periods_router, prefix=API_PREFIX)
app.include_router(entries_router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "shiftdesk API", "version": "1.0.0"}
