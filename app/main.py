from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.logging_middleware import LoggingMiddleware
from app.core.context import get_request_id

setup_logging()
logger = logging.getLogger(__name__)

from app.api import checkins, health, locations, users
from app.core.container import container
from app.core.database import AsyncSessionLocal, init_models
from application.services.scheduler import RewardScheduler
from domain.errors import (
    AlreadyCheckedIn,
    GameError,
    LocationNotFound,
    OutOfRange,
    PersistenceConflict,
    PersistenceFailure,
    UserNotFound,
    UsernameConflict,
    UserQuestNotFound,
)

ERROR_STATUS = {
    OutOfRange: status.HTTP_422_UNPROCESSABLE_ENTITY,
    LocationNotFound: status.HTTP_404_NOT_FOUND,
    UserNotFound: status.HTTP_404_NOT_FOUND,
    UserQuestNotFound: status.HTTP_404_NOT_FOUND,
    AlreadyCheckedIn: status.HTTP_409_CONFLICT,
    UsernameConflict: status.HTTP_409_CONFLICT,
    PersistenceConflict: status.HTTP_503_SERVICE_UNAVAILABLE,
    PersistenceFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    if settings.AUTO_CREATE_SCHEMA:
        if "sqlite" in settings.SQLALCHEMY_DATABASE_URI:
            os.makedirs("./data", exist_ok=True)
        await init_models()
        logger.info("Database schema ensured.")

        if settings.SEED_CATALOG:
            from app.core.seeding import seed_catalog

            async with AsyncSessionLocal() as session:
                await seed_catalog(session)

    scheduler = None
    dispatcher = container.reward_dispatcher
    if settings.ENABLE_SCHEDULER and dispatcher is not None:
        scheduler = RewardScheduler(dispatcher)
        scheduler.start()
    elif settings.ENABLE_SCHEDULER:
        logger.warning("ENABLE_SCHEDULER set but REWARD_LEDGER_URL missing; reward outbox will not drain")

    yield

    if scheduler:
        await scheduler.aclose()
    elif dispatcher is not None:
        await dispatcher.aclose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"Request rejected: {exc.code}", extra={"detail": exc.detail})
    return JSONResponse(status_code=status_code, content={**exc.to_dict(), "request_id": get_request_id()})


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = get_request_id()
    logger.error(f"Global Exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "request_id": req_id},
    )


app.include_router(health.router)
app.include_router(users.router, prefix=settings.API_V1_STR)
app.include_router(checkins.router, prefix=settings.API_V1_STR)
app.include_router(locations.router, prefix=settings.API_V1_STR)
