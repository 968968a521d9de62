import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from fruitflow.config import settings
from fruitflow.database import Base, SessionLocal, engine

# Registers every table on Base.metadata
import fruitflow.models  # noqa: F401

from fruitflow.api.routes import (
    ai,
    app_routes,
    auth,
    market,
    orders,
    products,
    users,
    ws,
)
from fruitflow.seed import seed_all_if_empty
from fruitflow.services.health_check import run_health_check_cycle
from fruitflow.services.users import refresh_all_ratings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

try:
    Base.metadata.create_all(bind=engine)
except SQLAlchemyError as exc:
    logger.warning(
        "Tables not created, database unreachable (%s). "
        "Check DATABASE_URL or the db_* settings.",
        exc,
    )


def _health_check_job() -> None:
    db = SessionLocal()
    try:
        report = run_health_check_cycle(db)
        if report:
            logger.info("Scheduled health check: %s", report.overall_status)
    finally:
        db.close()


def _start_scheduler() -> BackgroundScheduler | None:
    if not settings.health_check_enabled:
        return None
    minutes = max(1, settings.health_check_interval_minutes)
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        _health_check_job, "interval", minutes=minutes, id="platform_health_check"
    )
    scheduler.start()
    logger.info("Health-check scheduler running every %d minute(s)", minutes)
    return scheduler


def _prepare_accounts() -> None:
    """Seed the manager account, then re-apply the rating suspension rule."""
    try:
        seed_all_if_empty()
    except SQLAlchemyError as exc:
        logger.warning("Seeding skipped: %s", exc)
        return
    db = SessionLocal()
    try:
        suspended = refresh_all_ratings(db)
        if suspended:
            logger.warning("%d account(s) suspended for low ratings", len(suspended))
    except SQLAlchemyError as exc:
        logger.warning("Rating refresh skipped: %s", exc)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = _start_scheduler()
    _prepare_accounts()
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(title="FruitFlow Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (app_routes, auth, users, products, orders, ai, market, ws):
    app.include_router(module.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.env == "development",
    )
