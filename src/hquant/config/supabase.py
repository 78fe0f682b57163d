"""Supabase (hosted backing store) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import ResilienceConfig

SUPABASE_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class SupabaseConfig:
    """Holds Supabase REST configuration values."""

    url: str
    anon_key: str
    resilience: ResilienceConfig

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1/"


def supabase_configured() -> bool:
    """Return whether the hosted store is selected by the environment."""

    return bool(optional_env_var("SUPABASE_URL") and optional_env_var("SUPABASE_ANON_KEY"))


def get_supabase_config(*, resilience: ResilienceConfig | None = None) -> SupabaseConfig:
    values = require_env_vars(("SUPABASE_URL", "SUPABASE_ANON_KEY"))
    url = values["SUPABASE_URL"]
    key = values["SUPABASE_ANON_KEY"]
    return SupabaseConfig(
        url=url,
        anon_key=key,
        resilience=resilience
        or ResilienceConfig(
            name="supabase",
            base_url=f"{url.rstrip('/')}/rest/v1/",
            timeout_seconds=SUPABASE_TIMEOUT_SECONDS,
            default_headers={"apikey": key, "Authorization": f"Bearer {key}"},
        ),
    )
