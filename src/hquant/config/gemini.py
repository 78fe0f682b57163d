"""Gemini (LLM) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_TIMEOUT_SECONDS = 120.0

# 4 attempts in total, waits of 1s, 2s, 4s capped at 10s
GEMINI_RETRY_POLICY = RetryPolicy(
    total=3,
    backoff_factor=1.0,
    max_backoff_wait=10.0,
    backoff_jitter=0.0,
)


@dataclass(frozen=True)
class GeminiConfig:
    """Holds Gemini API configuration values."""

    api_key: str
    model: str
    resilience: ResilienceConfig


def default_gemini_resilience(base_url: str = GEMINI_BASE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="gemini",
        base_url=base_url,
        timeout_seconds=GEMINI_TIMEOUT_SECONDS,
        retry=GEMINI_RETRY_POLICY,
        ratelimit=RateLimit(max_calls=10, per_seconds=60.0),
    )


def get_gemini_config(*, resilience: ResilienceConfig | None = None) -> GeminiConfig:
    values = require_env_vars(("GEMINI_API_KEY",))
    base_url = optional_env_var("GEMINI_BASE_URL") or GEMINI_BASE_URL
    return GeminiConfig(
        api_key=values["GEMINI_API_KEY"],
        model=optional_env_var("GEMINI_MODEL") or GEMINI_DEFAULT_MODEL,
        resilience=resilience or default_gemini_resilience(base_url),
    )
