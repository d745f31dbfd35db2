"""
Generation service: owns the HTTP session and wires providers, retry,
fallback and batching together for the API and CLI.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

import aiohttp
import numpy as np
from loguru import logger

from ..config.settings import Settings
from ..core.errors import ValidationError
from ..core.models import AspectRatio, BatchResult, MediaKind, ProviderId
from ..core.profiles import CHAIN_ORDER
from ..core.retry import RetryPolicy
from ..providers.base import BaseProvider
from ..providers.registry import build_providers
from .batch import BatchCoordinator
from .fallback import FallbackChain


class GenerationService:
    """Entry point for image and video generation requests."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        providers: Optional[Mapping[MediaKind, List[BaseProvider]]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[np.random.Generator] = None
    ):
        self.settings = settings or Settings()
        self._session = session
        self._owns_session = session is None
        self._injected = dict(providers) if providers is not None else {}
        self._providers = dict(self._injected)
        self.sleep = sleep
        self.rng = rng if rng is not None else np.random.default_rng()

    async def __aenter__(self) -> "GenerationService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.cleanup()

    async def cleanup(self) -> None:
        """Close the HTTP session if this service created it."""
        if self._owns_session and self._session is not None:
            if not self._session.closed:
                await self._session.close()
                logger.debug("Closed generation HTTP session")
            self._session = None
            # built providers hold the closed session
            self._providers = dict(self._injected)

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def providers_for(self, media_kind: MediaKind) -> List[BaseProvider]:
        media_kind = MediaKind(media_kind)
        if media_kind not in self._providers:
            self._providers[media_kind] = build_providers(
                media_kind, self.settings, self.session, sleep=self.sleep
            )
        return self._providers[media_kind]

    def chain_for(self, media_kind: MediaKind) -> FallbackChain:
        policy = RetryPolicy(
            max_attempts=self.settings.MAX_ATTEMPTS,
            delays=self.settings.retry_delays(),
            sleep=self.sleep,
        )
        return FallbackChain(self.providers_for(media_kind), policy)

    def coordinator_for(self, media_kind: MediaKind) -> BatchCoordinator:
        return BatchCoordinator(
            self.chain_for(media_kind),
            self.settings,
            sleep=self.sleep,
            rng=self.rng,
        )

    def chain_names(self, media_kind: MediaKind) -> List[str]:
        """Provider ids that would join the chain, without opening a session."""
        media_kind = MediaKind(media_kind)
        if media_kind in self._providers:
            return [p.get_provider_name() for p in self._providers[media_kind]]
        return [p.value for p in CHAIN_ORDER[media_kind] if self.settings.is_configured(p)]

    async def generate_images(
        self,
        prompt: str,
        count: Optional[int] = None,
        style: str = "vibrant",
        aspect_ratio: str = "9:16",
        quality_tier: str = "balanced"
    ) -> Dict[str, Any]:
        """
        Generate a batch of scene images.

        Returns:
            Response body with images in scene order and per-scene errors
        """
        count = self.settings.DEFAULT_IMAGE_COUNT if count is None else count
        if not 1 <= count <= self.settings.MAX_IMAGE_COUNT:
            raise ValidationError(
                f"Count must be between 1 and {self.settings.MAX_IMAGE_COUNT}",
                "INVALID_SCENE_COUNT"
            )

        result = await self.coordinator_for(MediaKind.IMAGE).generate_batch(
            prompt,
            count,
            style=style,
            aspect_ratio=aspect_ratio,
            quality_tier=quality_tier,
            media_kind=MediaKind.IMAGE,
        )
        return {
            "success": True,
            "images": [artifact.to_dict() for artifact in result.artifacts],
            "errors": [error.to_dict() for error in result.errors],
            "resolutionSubstituted": self._resolution_substituted(result, aspect_ratio),
        }

    async def generate_video(
        self,
        prompt: str,
        style: str = "vibrant",
        aspect_ratio: str = "9:16",
        quality_tier: str = "balanced",
        duration: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Generate a single video clip.

        Returns:
            Response body with the video artifact
        """
        result = await self.coordinator_for(MediaKind.VIDEO).generate_batch(
            prompt,
            1,
            style=style,
            aspect_ratio=aspect_ratio,
            quality_tier=quality_tier,
            media_kind=MediaKind.VIDEO,
            duration=duration or self.settings.DEFAULT_VIDEO_DURATION,
        )
        artifact = result.artifacts[0]
        return {
            "success": True,
            "video": {
                "id": artifact.id,
                "data": artifact.data_uri,
                "mimeType": artifact.mime_type,
                "model": artifact.source_model,
                "source": artifact.source_provider.value,
                "prompt": artifact.prompt,
            },
        }

    @staticmethod
    def _resolution_substituted(result: BatchResult, aspect_ratio: str) -> bool:
        """True when a portrait request was served at square size."""
        if AspectRatio.parse(aspect_ratio) is not AspectRatio.PORTRAIT:
            return False
        return any(
            artifact.source_provider is ProviderId.NVIDIA_SDXL
            for artifact in result.artifacts
        )
