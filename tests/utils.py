"""
Test utilities: fake HTTP session, scripted providers and helpers.
"""
import base64
import io
import json
from typing import Any, Dict, List, Optional, Sequence, Union

from PIL import Image

from vlogstudio.config.settings import Settings
from vlogstudio.core.errors import GenerationError
from vlogstudio.core.models import (
    GenerationRequest,
    MediaArtifact,
    MediaKind,
    ProviderId,
    ProviderProfile,
    SamplerParams,
)

TEST_KEYS = {
    "NVIDIA_API_KEY": "nvapi-test",
    "GEMINI_API_KEY": "gemini-test",
    "HUGGINGFACE_API_KEY": "hf_test",
    "AI_GATEWAY_API_KEY": "gateway-test",
    "FAL_KEY": "fal-test",
    "POLLINATIONS_ENABLED": True,
}


def make_settings(**overrides: Any) -> Settings:
    """Settings independent of the process environment."""
    values = dict(TEST_KEYS)
    values.update({
        "AI_GATEWAY_URL": "https://gateway.test/v1",
        "GATEWAY_VIDEO_MODELS": "",
        "FAL_QUEUE_URL": "https://queue.fal.test",
        "MAX_ATTEMPTS": 2,
        "RATE_LIMIT_RETRY_DELAY": 2.0,
        "TIMEOUT_RETRY_DELAY": 1.2,
        "UNAVAILABLE_RETRY_DELAY": 1.2,
        "NVIDIA_PACING_DELAY": 0.3,
        "GEMINI_PACING_DELAY": 0.5,
        "HUGGINGFACE_PACING_DELAY": 2.0,
        "DEFAULT_PACING_DELAY": 0.3,
        "POLLINATIONS_CONCURRENCY": 3,
        "POLL_INTERVAL": 2.0,
        "POLL_MAX_ATTEMPTS": 60,
        "BATCH_TIMEOUT": 600.0,
        "DEFAULT_IMAGE_COUNT": 6,
        "MAX_IMAGE_COUNT": 12,
        "DEFAULT_VIDEO_DURATION": 5,
        "CORS_ORIGINS": "*",
    })
    values.update(overrides)
    return Settings(**values)


def png_bytes(size=(4, 4), color=(200, 80, 20)) -> bytes:
    """Encode a tiny real PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager."""

    def __init__(self, status: int = 200, body: Union[bytes, str, Dict, List] = b"",
                 content_type: Optional[str] = None):
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
            content_type = content_type or "application/json"
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.status = status
        self.headers = {"Content-Type": content_type or "application/octet-stream"}
        self._body = body

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


def json_response(document: Any, status: int = 200) -> FakeResponse:
    return FakeResponse(status, document, "application/json")


class FakeSession:
    """Replays queued responses in order and records every request."""

    def __init__(self, responses: Sequence[Union[FakeResponse, BaseException]] = ()):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def queue(self, *responses: Union[FakeResponse, BaseException]) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_profile(provider_id: ProviderId = ProviderId.NVIDIA_SDXL, model_id: str = "model-a",
                 **overrides: Any) -> ProviderProfile:
    values = dict(
        provider_id=provider_id,
        model_id=model_id,
        sampler=SamplerParams(steps=25, cfg_scale=7.0, sampler="K_DPM_2_ANCESTRAL"),
        width=768,
        height=1344,
        max_timeout_ms=30_000,
    )
    values.update(overrides)
    return ProviderProfile(**values)


def make_request(prompt: str = "a lighthouse at dusk", **overrides: Any) -> GenerationRequest:
    values = dict(prompt=prompt, scene_index=0, scene_count=1, seed=7)
    values.update(overrides)
    return GenerationRequest(**values)


class FakeProvider:
    """
    Scripted provider for orchestration tests.

    ``outcomes`` is consumed one item per invoke call: an exception is
    raised, anything else produces an artifact. When exhausted the last
    outcome repeats.
    """

    def __init__(
        self,
        provider_id: ProviderId,
        outcomes: Sequence[Any] = ("ok",),
        models: Sequence[str] = ("model-a",),
        media_kind: MediaKind = MediaKind.IMAGE,
        batch_concurrency: int = 1,
        pacing_delay: float = 0.0
    ):
        self.provider_id = provider_id
        self.media_kind = media_kind
        self.outcomes = list(outcomes)
        self.models = list(models)
        self.batch_concurrency = batch_concurrency
        self.pacing_delay = pacing_delay
        self.calls: List[Any] = []

    def get_provider_name(self) -> str:
        return self.provider_id.value

    def is_configured(self) -> bool:
        return True

    def profiles(self, request: GenerationRequest) -> List[ProviderProfile]:
        return [make_profile(self.provider_id, model) for model in self.models]

    async def invoke(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        self.calls.append((profile.model_id, request.scene_index))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            if isinstance(outcome, GenerationError) and outcome.provider is None:
                outcome.provider = self.get_provider_name()
            raise outcome
        mime_type = "video/mp4" if self.media_kind is MediaKind.VIDEO else "image/png"
        return MediaArtifact(
            mime_type=mime_type,
            source_provider=self.provider_id,
            source_model=profile.model_id,
            prompt=request.prompt,
            payload=b"media-" + str(request.scene_index).encode(),
            seed=request.seed,
        )
