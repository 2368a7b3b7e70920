"""Service container owned by the app and handed to routes through Depends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.engine import Engine

from normalz.features.game.service import GameService
from normalz.features.questions.store import QuestionStore
from normalz.features.streaks.service import StreakService


@dataclass
class GameServices:
    store: QuestionStore
    game: GameService
    streaks: StreakService
    engine: Optional[Engine] = None  # SQL engine when DATABASE_URL is configured


def get_services(request: Request) -> GameServices:
    return request.app.state.services


def get_game_service(request: Request) -> GameService:
    return get_services(request).game


def get_streak_service(request: Request) -> StreakService:
    return get_services(request).streaks


def get_question_store(request: Request) -> QuestionStore:
    return get_services(request).store
