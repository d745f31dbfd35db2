"""
LLM provider for script, idea and metadata generation.
"""
import asyncio
import json
import re
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from loguru import logger

from ..core.errors import (
    AuthError,
    GenerationError,
    GenerationTimeout,
    InvalidRequest,
    MalformedResponse,
    ProviderUnavailable,
    RateLimited,
)
from ..core.models import ProviderId

CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model wraps around JSON."""
    return CODE_FENCE.sub("", text).strip()


def translate_google_error(error: google_exceptions.GoogleAPIError) -> GenerationError:
    """Map google-api-core exceptions onto the error taxonomy."""
    message = f"Gemini error: {getattr(error, 'message', None) or error}"
    provider = ProviderId.GEMINI.value
    if isinstance(error, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied)):
        return AuthError(f"{message} Check GEMINI_API_KEY.", provider=provider, status=error.code)
    if isinstance(error, google_exceptions.InvalidArgument):
        if "API key not valid" in str(error):
            return AuthError(f"{message} Check GEMINI_API_KEY.", provider=provider, status=401)
        return InvalidRequest(message, provider=provider, status=400)
    if isinstance(error, google_exceptions.NotFound):
        return InvalidRequest(message, provider=provider, status=404)
    if isinstance(error, google_exceptions.ResourceExhausted):
        return RateLimited(message, provider=provider, status=429)
    if isinstance(error, google_exceptions.DeadlineExceeded):
        return GenerationTimeout(message, provider=provider)
    return ProviderUnavailable(message, provider=provider, status=getattr(error, "code", None))


class GeminiTextProvider:
    """Google's Gemini API provider for text and JSON generation."""

    provider_id = ProviderId.GEMINI

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gemini-2.5-flash",
        timeout: float = 60.0,
        temperature: float = 0.8,
        max_output_tokens: int = 8192
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def get_provider_name(self) -> str:
        return self.provider_id.value

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_text(self, prompt: str) -> str:
        """Generate text using Gemini API."""
        if not self.api_key:
            raise AuthError("GEMINI_API_KEY is not configured", provider=self.get_provider_name())

        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name)

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    prompt,
                    generation_config=genai.types.GenerationConfig(
                        temperature=self.temperature,
                        candidate_count=1,
                        max_output_tokens=self.max_output_tokens,
                    )
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"Gemini did not respond within {self.timeout:g}s",
                provider=self.get_provider_name()
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise translate_google_error(e) from e

        try:
            return response.text
        except ValueError as e:
            # Raised when the candidate was blocked and carries no text part
            raise InvalidRequest(
                f"Gemini returned no text ({e}). Rephrase the request and try again.",
                provider=self.get_provider_name()
            ) from e

    async def generate_json(self, prompt: str) -> Any:
        """Generate text and parse it as JSON."""
        text = await self.generate_text(prompt)
        cleaned = strip_code_fences(text)
        try:
            return json.loads(cleaned)
        except ValueError as e:
            logger.debug(f"Unparseable Gemini output: {cleaned[:200]}")
            raise MalformedResponse(
                f"Gemini returned invalid JSON: {e}",
                provider=self.get_provider_name()
            ) from e
