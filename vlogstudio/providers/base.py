"""
Base provider classes for the media generation system.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type

import aiohttp
from loguru import logger

from ..config.settings import Settings
from ..core.errors import (
    AuthError,
    GenerationError,
    GenerationTimeout,
    InvalidRequest,
    MalformedResponse,
    ProviderUnavailable,
    QuotaExhausted,
    RateLimited,
)
from ..core.models import (
    GenerationRequest,
    MediaArtifact,
    MediaKind,
    ProviderId,
    ProviderProfile,
)
from ..core.profiles import negative_prompt, resolve_models
from .decoding import (
    ExtractionRule,
    Payload,
    PayloadKind,
    ProviderResponse,
    extract_payload,
    summarize_body,
)

STATUS_ERRORS: Dict[int, Type[GenerationError]] = {
    400: InvalidRequest,
    401: AuthError,
    402: QuotaExhausted,
    403: AuthError,
    404: InvalidRequest,
    408: GenerationTimeout,
    422: InvalidRequest,
    429: RateLimited,
}


def error_class_for_status(status: int) -> Type[GenerationError]:
    """Default HTTP status translation shared by every adapter."""
    if status in STATUS_ERRORS:
        return STATUS_ERRORS[status]
    if status >= 500:
        return ProviderUnavailable
    return InvalidRequest


class BaseProvider(ABC):
    """
    Abstract base class for all generation providers.

    Subclasses build the provider request and declare how to decode the
    response; this class owns transport, timeouts and error translation.
    One outbound call per invocation (two for URL results), never retried here.
    """

    provider_id: ProviderId
    media_kind: MediaKind
    display_name: str = ""
    decoding: Sequence[ExtractionRule] = ()
    # Appended to the message of the matching error class
    hints: Dict[Type[GenerationError], str] = {}

    def __init__(
        self,
        settings: Settings,
        session: aiohttp.ClientSession,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.settings = settings
        self.session = session
        self.sleep = sleep

    def get_provider_name(self) -> str:
        return self.provider_id.value

    @property
    def api_key(self) -> Optional[str]:
        return self.settings.get_api_key(self.provider_id)

    def is_configured(self) -> bool:
        return self.settings.is_configured(self.provider_id)

    @property
    def pacing_delay(self) -> float:
        return self.settings.pacing_delay(self.provider_id)

    @property
    def batch_concurrency(self) -> int:
        """Scenes that may run at once when this provider heads the chain."""
        return 1

    def profiles(self, request: GenerationRequest) -> List[ProviderProfile]:
        """Every model this provider will try for a request, in order."""
        return resolve_models(
            self.provider_id,
            request.quality_tier,
            request.media_kind,
            request.style,
            request.aspect_ratio,
        )

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def negative_prompt(self) -> str:
        return negative_prompt(self.media_kind)

    async def invoke(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        """
        Generate one artifact.

        Args:
            profile: Resolved provider parameters
            request: Scene request

        Returns:
            The produced artifact

        Raises:
            GenerationError subclass describing the failure
        """
        logger.info(
            f"{self.get_provider_name()}/{profile.model_id}: generating scene "
            f"{request.scene_number}/{request.scene_count}"
        )
        try:
            return await self._generate(profile, request)
        except GenerationError as e:
            if e.provider is None:
                e.provider = self.get_provider_name()
            raise
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise MalformedResponse(
                f"{self.display_name} returned an unexpected response: {e}",
                provider=self.get_provider_name()
            ) from e

    @abstractmethod
    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        """Perform the provider call and build the artifact."""
        pass

    async def _request(
        self,
        method: str,
        url: str,
        timeout: float,
        **kwargs: Any
    ) -> ProviderResponse:
        """Send one request and buffer the response; error statuses raise."""
        try:
            async with self.session.request(
                method,
                url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                **kwargs
            ) as response:
                body = await response.read()
                result = ProviderResponse(
                    status=response.status,
                    content_type=response.headers.get("Content-Type", ""),
                    body=body,
                )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"{self.display_name} did not respond within {timeout:g}s",
                provider=self.get_provider_name()
            ) from e
        except aiohttp.ClientConnectorError as e:
            raise ProviderUnavailable(
                f"{self.display_name} is unreachable: {e}",
                provider=self.get_provider_name()
            ) from e
        except aiohttp.ClientConnectionError as e:
            # reset or dropped mid-request
            raise GenerationTimeout(
                f"{self.display_name} connection aborted: {e}",
                provider=self.get_provider_name()
            ) from e
        except aiohttp.ClientError as e:
            raise ProviderUnavailable(
                f"{self.display_name} request failed: {e}",
                provider=self.get_provider_name()
            ) from e

        if result.status >= 400:
            raise self.translate_error(result)
        return result

    def translate_error(self, response: ProviderResponse) -> GenerationError:
        """Map an error response onto the taxonomy."""
        error_class = self.classify_error(response)
        message = self.describe_error(response)
        hint = self.hints.get(error_class)
        if hint:
            message = f"{message} {hint}"
        return error_class(
            message,
            provider=self.get_provider_name(),
            status=response.status,
            details={"body": summarize_body(response)},
        )

    def classify_error(self, response: ProviderResponse) -> Type[GenerationError]:
        return error_class_for_status(response.status)

    def describe_error(self, response: ProviderResponse) -> str:
        return f"{self.display_name} error ({response.status}). {summarize_body(response)}"

    def extract(self, response: ProviderResponse) -> Payload:
        return extract_payload(response, self.decoding, provider=self.get_provider_name())

    async def download(self, url: str, timeout: float, default_mime: str) -> Payload:
        """Second fetch for vendors that answer with a URL."""
        response = await self._request("GET", url, timeout)
        if response.is_json or response.is_html or not response.body:
            raise MalformedResponse(
                f"{self.display_name} result URL did not return media: {summarize_body(response)}",
                provider=self.get_provider_name(),
                status=response.status,
            )
        return Payload(
            kind=PayloadKind.RAW_BINARY,
            mime_type=response.mime_type or default_mime,
            data=response.body,
            url=url,
        )

    def _artifact(
        self,
        profile: ProviderProfile,
        request: GenerationRequest,
        data: Optional[bytes],
        mime_type: str,
        seed: Optional[int] = None,
        url: Optional[str] = None
    ) -> MediaArtifact:
        return MediaArtifact(
            mime_type=mime_type,
            source_provider=self.provider_id,
            source_model=profile.model_id,
            prompt=request.prompt,
            payload=data,
            url=url,
            seed=seed if seed is not None else request.seed,
        )


class BaseImageProvider(BaseProvider):
    """Base class for image generation providers."""

    media_kind = MediaKind.IMAGE


class BaseVideoProvider(BaseProvider):
    """Base class for video generation providers."""

    media_kind = MediaKind.VIDEO

    def duration(self, request: GenerationRequest) -> int:
        return request.duration or self.settings.DEFAULT_VIDEO_DURATION
