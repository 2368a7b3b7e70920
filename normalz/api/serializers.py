"""Wire shapes shared by the routers. Keys are camelCase for the mobile client."""

from __future__ import annotations

from typing import Optional

from normalz.models.question import Question, TallySnapshot
from normalz.models.streak import StreakState, StreakUpdate


def question_payload(question: Question, snapshot: TallySnapshot) -> dict:
    payload = {
        "questionId": question.question_id,
        "options": list(question.options),
        "answerCounts": snapshot.answer_counts(),
        "totalAnswers": snapshot.total,
    }
    if question.prompt:
        payload["prompt"] = question.prompt
    return payload


def streak_payload(state: StreakState, update: Optional[StreakUpdate] = None) -> dict:
    payload = {
        "playerId": state.player_id,
        "currentStreak": state.current_streak,
        "allTimeHigh": state.all_time_high,
        "dailyHigh": state.daily_high,
        "weeklyHigh": state.weekly_high,
        "lastDailyReset": state.last_daily_reset.isoformat() if state.last_daily_reset else None,
        "lastWeeklyReset": state.last_weekly_reset.isoformat() if state.last_weekly_reset else None,
    }
    if update is not None:
        payload["newAchievements"] = [
            {"id": a.name, "threshold": a.threshold, "title": a.title, "emoji": a.emoji}
            for a in sorted(update.new_achievements, key=lambda a: a.threshold)
        ]
        payload["beatenMarks"] = list(update.beaten_marks)
    return payload
