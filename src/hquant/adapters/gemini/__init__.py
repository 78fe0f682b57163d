"""Public interface for the Gemini adapter."""

from __future__ import annotations

from .client import GeminiClient
from .extraction import GeminiCompositionExtractor, GeminiInsumoExtractor, GeminiReviser
from .matching import GeminiCompositionMatcher, GeminiInsumoMatcher
from .translator import extract_json_block, fix_invalid_escapes

__all__ = [
    "GeminiClient",
    "GeminiCompositionExtractor",
    "GeminiCompositionMatcher",
    "GeminiInsumoExtractor",
    "GeminiInsumoMatcher",
    "GeminiReviser",
    "extract_json_block",
    "fix_invalid_escapes",
]
