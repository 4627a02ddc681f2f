from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from caseload.api import health
from caseload.core.config import settings
from caseload.core.logging import setup_logging
from caseload.core.middleware import RequestIdMiddleware
from caseload.modules.assignment.api.routes import router as assignment_router
from caseload.modules.assignment.container import build_engine

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.STORE_BACKEND.lower() == "sql":
        from caseload.core.database import get_engine, init_database
        await init_database(get_engine(settings.DATABASE_URL))
    app.state.engine = build_engine(settings)
    logger.info("caseload_started", store_backend=settings.STORE_BACKEND)
    yield
    logger.info("caseload_stopped")


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.include_router(health.router)
app.include_router(assignment_router, prefix=settings.API_V1_STR)
