"""HTTP client for the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from hquant.adapters.http_resilience import ResilientClient, default_client_factory
from hquant.config.gemini import GeminiConfig, get_gemini_config
from hquant.domain.errors import AdapterError, MalformedResponseError

from .schema import ErrorResponse, GenerateContentResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from hquant.config.http_resilience import ResilienceConfig
    from hquant.domain.ports import ImageInput

log = getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).error.message
    except (ValueError, ValidationError):
        return response.reason_phrase or "request failed"


@dataclass(slots=True)
class GeminiClient:
    """Send one prompt (optionally with an image) and return the answer text.

    Retries and the client-side rate limit live in the transport built from
    ``config.resilience``; whatever still fails is raised as ``AdapterError``.
    """

    config: GeminiConfig = field(default_factory=get_gemini_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )

    async def generate(
        self,
        prompt: str,
        *,
        image: ImageInput | None = None,
        operation: str = "generate",
    ) -> str:
        parts: list[dict[str, object]] = [{"text": prompt}]
        if image is not None:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": image.mime_type,
                        "data": base64.b64encode(image.data).decode("ascii"),
                    }
                }
            )
        body = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        url = f"models/{self.config.model}:generateContent"

        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={"x-goog-api-key": self.config.api_key},
                )
        except httpx.HTTPError as exc:
            log.error("Gemini %s request failed: %s", operation, exc)
            raise AdapterError(f"Gemini request failed: {exc}", operation=operation) from exc

        if response.is_error:
            message = _error_message(response)
            log.error("Gemini %s returned %s: %s", operation, response.status_code, message)
            raise AdapterError(
                f"Gemini returned {response.status_code}: {message}",
                operation=operation,
                status_code=response.status_code,
            )

        try:
            payload = GenerateContentResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise MalformedResponseError(
                "Gemini answer is not a generateContent payload",
                operation=operation,
                raw=response.text,
            ) from exc

        text = payload.text
        if not text:
            raise MalformedResponseError(
                "Gemini answer holds no text", operation=operation, raw=response.text
            )
        return text
