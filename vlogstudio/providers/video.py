"""
Video generation providers.
"""
from typing import Any, Dict, List, Type

from loguru import logger

from ..core.errors import AuthError, GenerationError, MalformedResponse, QuotaExhausted
from ..core.models import (
    AsyncJobHandle,
    GenerationRequest,
    MediaArtifact,
    ProviderId,
    ProviderProfile,
)
from ..core.profiles import resolve_models
from ..generation.poller import JobPoller, JobSubmission
from .base import BaseVideoProvider
from .decoding import ExtractionRule, Payload, PayloadKind, ProviderResponse, lookup, summarize_body
from .image import HUGGINGFACE_INFERENCE_URL, HuggingFaceMixin

VIDEO_MIME = "video/mp4"


class HuggingFaceVideoProvider(HuggingFaceMixin, BaseVideoProvider):
    """Hugging Face inference router, text-to-video task (synchronous, raw bytes)."""

    decoding = (
        ExtractionRule(PayloadKind.RAW_BINARY, default_mime=VIDEO_MIME),
    )

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "inputs": request.prompt,
            "parameters": {
                "negative_prompt": self.negative_prompt(),
                "num_frames": profile.num_frames,
                "num_inference_steps": profile.sampler.steps,
                "guidance_scale": profile.sampler.cfg_scale,
            },
            "options": {"wait_for_model": True, "use_cache": False},
        }

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "POST",
            f"{HUGGINGFACE_INFERENCE_URL}/{profile.model_id}",
            profile.timeout_seconds,
            headers=self.auth_headers(),
            json=self.build_payload(profile, request),
        )
        # Loading or erroring models answer 200 with a JSON status document
        if response.is_json:
            raise MalformedResponse(
                f"Video model returned JSON instead of video bytes: {summarize_body(response)}"
            )
        payload = self.extract(response)
        return self._artifact(profile, request, payload.data, payload.mime_type)


class GatewayVideoProvider(BaseVideoProvider):
    """OpenAI-compatible AI gateway routing to hosted video models."""

    provider_id = ProviderId.GATEWAY
    display_name = "AI Gateway"
    decoding = (
        ExtractionRule(PayloadKind.INLINE_BASE64, path="data.0.b64_json", default_mime=VIDEO_MIME),
        ExtractionRule(PayloadKind.REMOTE_URL, path="data.0.url", default_mime=VIDEO_MIME),
        ExtractionRule(PayloadKind.REMOTE_URL, path="video.url", default_mime=VIDEO_MIME),
    )
    hints = {
        AuthError: "Check AI_GATEWAY_API_KEY.",
        QuotaExhausted: "AI Gateway credits are exhausted. Top up your gateway balance.",
    }

    def profiles(self, request: GenerationRequest) -> List[ProviderProfile]:
        return resolve_models(
            self.provider_id,
            request.quality_tier,
            request.media_kind,
            request.style,
            request.aspect_ratio,
            model_overrides=self.settings.gateway_models(),
        )

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "model": profile.model_id,
            "prompt": request.prompt,
            "negative_prompt": self.negative_prompt(),
            "aspect_ratio": request.aspect_ratio.value,
            "size": profile.size,
            "duration": self.duration(request),
            "n": 1,
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        return payload

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "POST",
            f"{self.settings.AI_GATEWAY_URL}/videos/generations",
            profile.timeout_seconds,
            headers=self.auth_headers(),
            json=self.build_payload(profile, request),
        )
        payload = self.extract(response)
        if payload.kind is PayloadKind.REMOTE_URL:
            payload = await self.download(payload.url, profile.timeout_seconds, payload.mime_type)
        return self._artifact(profile, request, payload.data, payload.mime_type, url=payload.url)


class FalVideoProvider(BaseVideoProvider):
    """fal.ai queue API: submit, poll the status URL, then fetch the result."""

    provider_id = ProviderId.FAL
    display_name = "fal"
    decoding = (
        ExtractionRule(PayloadKind.REMOTE_URL, path="video.url", mime_path="video.content_type",
                       default_mime=VIDEO_MIME),
        ExtractionRule(PayloadKind.REMOTE_URL, path="videos.0.url", mime_path="videos.0.content_type",
                       default_mime=VIDEO_MIME),
    )
    hints = {
        AuthError: "Check FAL_KEY at fal.ai/dashboard/keys.",
        QuotaExhausted: "fal account balance is exhausted. Top up at fal.ai/dashboard/billing.",
    }

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Key {self.api_key}"}

    def classify_error(self, response: ProviderResponse) -> Type[GenerationError]:
        # Locked accounts come back as 403 with a balance message
        if response.status == 403 and "balance" in response.text().lower():
            return QuotaExhausted
        return super().classify_error(response)

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "prompt": request.prompt,
            "negative_prompt": self.negative_prompt(),
            "aspect_ratio": request.aspect_ratio.value,
            "duration": str(self.duration(request)),
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        return payload

    def _request_url(self, profile: ProviderProfile, request_id: str, suffix: str = "") -> str:
        return f"{self.settings.FAL_QUEUE_URL}/{profile.model_id}/requests/{request_id}{suffix}"

    async def _download_result(self, response: ProviderResponse, profile: ProviderProfile) -> Payload:
        payload = self.extract(response)
        return await self.download(payload.url, profile.timeout_seconds, payload.mime_type)

    async def _submit(self, profile: ProviderProfile, request: GenerationRequest) -> JobSubmission[MediaArtifact]:
        response = await self._request(
            "POST",
            f"{self.settings.FAL_QUEUE_URL}/{profile.model_id}",
            profile.timeout_seconds,
            headers=self.auth_headers(),
            json=self.build_payload(profile, request),
        )
        document = response.json()

        if lookup(document, "video.url"):
            payload = await self._download_result(response, profile)
            return JobSubmission(
                result=self._artifact(profile, request, payload.data, payload.mime_type, url=payload.url)
            )

        request_id = document["request_id"]
        return JobSubmission(handle=AsyncJobHandle(
            request_id=request_id,
            status_url=document.get("status_url") or self._request_url(profile, request_id, "/status"),
            response_url=document.get("response_url") or self._request_url(profile, request_id),
        ))

    async def _check_status(self, handle: AsyncJobHandle, profile: ProviderProfile) -> str:
        response = await self._request(
            "GET",
            handle.status_url,
            profile.timeout_seconds,
            headers=self.auth_headers(),
        )
        try:
            return str(response.json().get("status", ""))
        except (AttributeError, ValueError) as e:
            raise MalformedResponse(f"fal status response was not a JSON object: {e}") from e

    async def _fetch_result(
        self,
        handle: AsyncJobHandle,
        profile: ProviderProfile,
        request: GenerationRequest
    ) -> MediaArtifact:
        response = await self._request(
            "GET",
            handle.response_url,
            profile.timeout_seconds,
            headers=self.auth_headers(),
        )
        payload = await self._download_result(response, profile)
        logger.info(f"fal job {handle.request_id} produced {len(payload.data)} bytes")
        return self._artifact(profile, request, payload.data, payload.mime_type, url=payload.url)

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        poller = JobPoller(
            interval=self.settings.POLL_INTERVAL,
            max_polls=self.settings.POLL_MAX_ATTEMPTS,
            sleep=self.sleep,
        )
        return await poller.run(
            submit=lambda: self._submit(profile, request),
            check_status=lambda handle: self._check_status(handle, profile),
            fetch_result=lambda handle: self._fetch_result(handle, profile, request),
        )
