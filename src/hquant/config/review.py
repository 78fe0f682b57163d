"""Import review defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import int_env_var

DEFAULT_MATCH_MIN_SCORE = 0
SENT_TO_WAITING_DAYS = 7
WAITING_OVERDUE_DAYS = 10
STATUS_CHECK_INTERVAL_SECONDS = 60 * 60


@dataclass(frozen=True, slots=True)
class ReviewConfig:
    match_min_score: int = DEFAULT_MATCH_MIN_SCORE


def get_review_config() -> ReviewConfig:
    min_score = int_env_var("HQUANT_MATCH_MIN_SCORE", DEFAULT_MATCH_MIN_SCORE)
    return ReviewConfig(match_min_score=min_score)
