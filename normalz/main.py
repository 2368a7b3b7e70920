import logging
import os
import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

# Load env from the project .env (tests configure the environment themselves)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")

from normalz import __version__
from normalz.api import game, health, metrics, questions, streaks
from normalz.api.deps import GameServices
from normalz.core.config import Settings, settings as default_settings, validate_config
from normalz.core.database import build_engine, create_all_tables, make_session_factory
from normalz.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from normalz.core.logging import configure_logging
from normalz.core.middleware.metrics import MetricsMiddleware
from normalz.core.middleware.request_id import RequestIdMiddleware
from normalz.core.validation import validate_env
from normalz.features.game.service import GameService
from normalz.features.leaderboard.client import HttpLeaderboardClient, LeaderboardIds
from normalz.features.questions.persistence import SqlQuestionStore
from normalz.features.questions.seed import load_seed_questions
from normalz.features.questions.store import InMemoryQuestionStore, QuestionStore
from normalz.features.selector.service import QuestionSelector
from normalz.features.streaks.schedule import ResetSchedule
from normalz.features.streaks.service import StreakService
from normalz.features.streaks.storage import InMemoryStreakStateStore, SqlStreakStateStore, StreakStateStore
from normalz.features.tally.engine import TallyEngine

logger = logging.getLogger("normalz")


def build_services(
    cfg: Settings,
    *,
    store: Optional[QuestionStore] = None,
    streak_store: Optional[StreakStateStore] = None,
    streak_service: Optional[StreakService] = None,
    rng: Optional[random.Random] = None,
) -> GameServices:
    """Composition root: wire stores, engine, selector and streak tracking from settings."""
    engine = None
    if store is None or (streak_store is None and streak_service is None):
        database_url = cfg.TEST_DATABASE_URL if cfg.ENV.lower() == "test" and cfg.TEST_DATABASE_URL else cfg.DATABASE_URL
        if database_url:
            engine = build_engine(database_url)
            create_all_tables(engine)
            factory = make_session_factory(engine)
            store = store or SqlQuestionStore(factory)
            streak_store = streak_store or SqlStreakStateStore(factory)

    store = store or InMemoryQuestionStore()

    if streak_service is None:
        leaderboard_ids = LeaderboardIds(
            all_time=cfg.LEADERBOARD_ALL_TIME_ID,
            daily=cfg.LEADERBOARD_DAILY_ID,
            weekly=cfg.LEADERBOARD_WEEKLY_ID,
        )
        kwargs = {}
        if cfg.LEADERBOARD_URL:
            kwargs["leaderboard_factory"] = lambda player_id: _http_leaderboard(cfg, player_id)
        streak_service = StreakService(
            streak_store or InMemoryStreakStateStore(),
            schedule=ResetSchedule.from_settings(cfg.RESET_UTC_OFFSET_HOURS, cfg.WEEK_START_DAY),
            leaderboard_ids=leaderboard_ids,
            **kwargs,
        )

    if rng is None:
        rng = random.Random(cfg.SELECTOR_SEED) if cfg.SELECTOR_SEED is not None else random.Random()

    game_service = GameService(
        store=store,
        engine=TallyEngine(store),
        selector=QuestionSelector(store, rng=rng),
        streaks=streak_service,
    )
    return GameServices(store=store, game=game_service, streaks=streak_service, engine=engine)


def _http_leaderboard(cfg: Settings, player_id: str) -> HttpLeaderboardClient:
    client = HttpLeaderboardClient(cfg.LEADERBOARD_URL, player_id, api_key=cfg.LEADERBOARD_API_KEY)
    client.authenticate()
    return client


def create_app(cfg: Optional[Settings] = None, services: Optional[GameServices] = None) -> FastAPI:
    cfg = cfg or default_settings
    configure_logging(cfg.ENV)
    validate_env(settings_obj=cfg)
    validate_config(settings_obj=cfg)

    services = services or build_services(cfg)
    if cfg.QUESTION_SEED_PATH:
        created = load_seed_questions(services.store, cfg.QUESTION_SEED_PATH)
        logger.info(f"Seeded {created} question(s) from {cfg.QUESTION_SEED_PATH}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Normalz game service...")
        try:
            yield
        finally:
            if services.engine is not None:
                services.engine.dispose()
            logger.info("Stopping Normalz game service...")

    app = FastAPI(title="Normalz - Game Service", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(game.router, tags=["game"])
    app.include_router(questions.router, tags=["questions"])
    app.include_router(streaks.router, tags=["streaks"])
    app.include_router(health.router)
    app.include_router(metrics.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("normalz.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), log_level="info")
