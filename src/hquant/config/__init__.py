"""Application configuration helpers."""

from __future__ import annotations

from .env import int_env_var, optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .gemini import GeminiConfig, get_gemini_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .review import ReviewConfig, get_review_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .supabase import SupabaseConfig, get_supabase_config, supabase_configured

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "GeminiConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ReviewConfig",
    "StorageConfig",
    "SupabaseConfig",
    "get_database_config",
    "get_gemini_config",
    "get_review_config",
    "get_storage_config",
    "get_supabase_config",
    "int_env_var",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
    "supabase_configured",
]
