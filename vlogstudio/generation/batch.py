"""
Batch generation: one prompt into N scenes through the fallback chain.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, List, Optional

import numpy as np
from loguru import logger

from ..config.settings import Settings
from ..core.errors import AllProvidersExhausted, GenerationError, NoArtifactsProduced, ValidationError
from ..core.models import (
    AspectRatio,
    BatchResult,
    GenerationRequest,
    MediaKind,
    ProviderId,
    QualityTier,
    SceneError,
    Style,
)
from ..core.profiles import style_guide
from .fallback import FallbackChain

MAX_SEED = 4294967295

VIDEO_MOTION_SUFFIX = (
    "High quality cinematic motion, stable camera movement, clean details, no text, no watermark."
)


def build_scene_prompt(prompt: str, scene_index: int, scene_count: int, style: Any, media_kind: Any) -> str:
    """Scene prompt: user prompt, scene position, style guide and quality suffix."""
    base = f"{prompt.strip()}, scene {scene_index + 1} of {scene_count}, {style_guide(style)}"
    if MediaKind(media_kind) is MediaKind.VIDEO:
        return f"{base}. {VIDEO_MOTION_SUFFIX}"
    return f"{base}, high quality, detailed"


def build_requests(
    prompt: str,
    count: int,
    style: Any = Style.VIBRANT,
    aspect_ratio: Any = AspectRatio.PORTRAIT,
    quality_tier: Any = QualityTier.BALANCED,
    media_kind: Any = MediaKind.IMAGE,
    rng: Optional[np.random.Generator] = None,
    duration: Optional[int] = None
) -> List[GenerationRequest]:
    """Split a prompt into per-scene requests, each with a fresh seed."""
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt is required", "EMPTY_PROMPT")
    if count <= 0:
        raise ValidationError(f"Scene count must be positive, got {count}", "INVALID_SCENE_COUNT")

    rng = rng if rng is not None else np.random.default_rng()
    style = Style.parse(style)
    media_kind = MediaKind(media_kind)
    return [
        GenerationRequest(
            prompt=build_scene_prompt(prompt, index, count, style, media_kind),
            scene_index=index,
            scene_count=count,
            style=style,
            aspect_ratio=AspectRatio.parse(aspect_ratio),
            quality_tier=QualityTier.parse(quality_tier),
            media_kind=media_kind,
            seed=int(rng.integers(0, MAX_SEED)),
            duration=duration,
        )
        for index in range(count)
    ]


def scene_error(request: GenerationRequest, error: GenerationError) -> SceneError:
    """Summarize a failed scene; exhausted chains report their primary error and keep every attempt."""
    exhausted = isinstance(error, AllProvidersExhausted)
    cause = error.primary if exhausted and error.primary else error
    provider = cause.provider or error.provider
    return SceneError(
        scene_index=request.scene_index,
        provider_id=ProviderId(provider) if provider else None,
        message=error.message,
        status=cause.http_status,
        error_code=cause.error_code,
        error=cause,
        attempts=list(error.attempts) if exhausted else [],
    )


class BatchCoordinator:
    """Runs every scene of a batch with the chain head's pacing policy."""

    def __init__(
        self,
        chain: FallbackChain,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.chain = chain
        self.settings = settings
        self.sleep = sleep
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock

    async def generate_batch(
        self,
        prompt: str,
        count: int,
        style: Any = Style.VIBRANT,
        aspect_ratio: Any = AspectRatio.PORTRAIT,
        quality_tier: Any = QualityTier.BALANCED,
        media_kind: Any = MediaKind.IMAGE,
        duration: Optional[int] = None
    ) -> BatchResult:
        """
        Generate every scene of a batch.

        Args:
            prompt: User prompt
            count: Number of scenes
            style: Style keyword
            aspect_ratio: 9:16 or 16:9
            quality_tier: cheap/balanced/best
            media_kind: image or video
            duration: Clip length in seconds for video

        Returns:
            Frozen BatchResult with at least one artifact

        Raises:
            ValidationError: Empty prompt or non-positive count
            NoArtifactsProduced: Every scene failed
        """
        requests = build_requests(
            prompt, count, style, aspect_ratio, quality_tier, media_kind,
            rng=self.rng, duration=duration,
        )
        result = BatchResult(count)
        deadline = self.clock() + self.settings.BATCH_TIMEOUT

        head = self.chain.head
        concurrency = head.batch_concurrency if head is not None else 1
        logger.info(
            f"Generating {count} {requests[0].media_kind.value} scene(s), "
            f"head={head.get_provider_name() if head else 'none'}, concurrency={concurrency}"
        )

        if concurrency > 1:
            await self._run_grouped(requests, result, concurrency, deadline)
        else:
            delay = head.pacing_delay if head is not None else 0.0
            await self._run_sequential(requests, result, delay, deadline)

        result.freeze()
        logger.info(
            f"Batch finished: {len(result.artifacts)} succeeded, {len(result.errors)} failed"
        )
        if not result.artifacts:
            raise NoArtifactsProduced(result, media_label=requests[0].media_kind.value)
        return result

    async def _run_sequential(
        self,
        requests: List[GenerationRequest],
        result: BatchResult,
        delay: float,
        deadline: float
    ) -> None:
        for position, request in enumerate(requests):
            if self.clock() >= deadline:
                self._record_budget_exceeded(requests[position:], result)
                return
            await self._run_scene(request, result)
            if position < len(requests) - 1 and delay > 0:
                await self.sleep(delay)

    async def _run_grouped(
        self,
        requests: List[GenerationRequest],
        result: BatchResult,
        group_size: int,
        deadline: float
    ) -> None:
        for start in range(0, len(requests), group_size):
            if self.clock() >= deadline:
                self._record_budget_exceeded(requests[start:], result)
                return
            group = requests[start:start + group_size]
            await asyncio.gather(*(self._run_scene(request, result) for request in group))

    async def _run_scene(self, request: GenerationRequest, result: BatchResult) -> None:
        try:
            artifact = await self.chain.generate_one(request)
        except GenerationError as e:
            logger.warning(f"Scene {request.scene_number}/{request.scene_count} failed: {e}")
            result.add_error(scene_error(request, e))
        else:
            result.add_artifact(request.scene_index, artifact)

    def _record_budget_exceeded(self, remaining: List[GenerationRequest], result: BatchResult) -> None:
        logger.warning(
            f"Batch time budget of {self.settings.BATCH_TIMEOUT:g}s exceeded, "
            f"skipping {len(remaining)} scene(s)"
        )
        for request in remaining:
            result.add_error(SceneError(
                scene_index=request.scene_index,
                provider_id=None,
                message=f"Skipped: batch time budget of {self.settings.BATCH_TIMEOUT:g}s exceeded",
                status=504,
                error_code="BATCH_TIMEOUT",
            ))
