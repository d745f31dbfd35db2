"""
Image generation providers.
"""
from typing import Any, Dict, Type
from urllib.parse import quote

from ..core.errors import AuthError, GenerationError, InvalidRequest, MalformedResponse, QuotaExhausted
from ..core.models import GenerationRequest, MediaArtifact, ProviderId, ProviderProfile
from .base import BaseImageProvider
from .decoding import (
    ExtractionRule,
    PayloadKind,
    ProviderResponse,
    lookup,
    sniff_image_mime,
    summarize_body,
)

NVIDIA_SDXL_URL = "https://ai.api.nvidia.com/v1/genai/stabilityai/stable-diffusion-xl"
POLLINATIONS_URL = "https://image.pollinations.ai/prompt"
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
HUGGINGFACE_INFERENCE_URL = "https://router.huggingface.co/hf-inference/models"


class NvidiaSDXLProvider(BaseImageProvider):
    """Stable Diffusion XL through NVIDIA NIM."""

    provider_id = ProviderId.NVIDIA_SDXL
    display_name = "NVIDIA SDXL"
    decoding = (
        ExtractionRule(
            PayloadKind.INLINE_BASE64,
            path="artifacts.0.base64",
            seed_path="artifacts.0.seed",
            default_mime="image/png",
        ),
    )
    hints = {
        AuthError: "Check NVIDIA_API_KEY at build.nvidia.com.",
        QuotaExhausted: "NVIDIA credits are exhausted. Check your balance at build.nvidia.com.",
    }

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "text_prompts": [
                {"text": request.prompt, "weight": 1},
                {"text": self.negative_prompt(), "weight": -1},
            ],
            "cfg_scale": profile.sampler.cfg_scale,
            "sampler": profile.sampler.sampler,
            "steps": profile.sampler.steps,
            "width": profile.width,
            "height": profile.height,
        }
        if request.seed is not None:
            payload["seed"] = request.seed
        return payload

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "POST",
            NVIDIA_SDXL_URL,
            profile.timeout_seconds,
            headers={**self.auth_headers(), "Accept": "application/json"},
            json=self.build_payload(profile, request),
        )

        document = response.json()
        if lookup(document, "artifacts.0.finishReason") == "CONTENT_FILTERED":
            raise InvalidRequest(
                "NVIDIA SDXL filtered this prompt as unsafe content. Rephrase the prompt and try again.",
            )

        payload = self.extract(response)
        return self._artifact(profile, request, payload.data, payload.mime_type, seed=payload.seed)


class PollinationsProvider(BaseImageProvider):
    """Pollinations: unauthenticated GET returning raw image bytes."""

    provider_id = ProviderId.POLLINATIONS
    display_name = "Pollinations"
    decoding = (
        ExtractionRule(PayloadKind.RAW_BINARY, default_mime="image/jpeg"),
    )

    @property
    def batch_concurrency(self) -> int:
        return self.settings.POLLINATIONS_CONCURRENCY

    def auth_headers(self) -> Dict[str, str]:
        return {}

    def build_params(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        params = {
            "width": profile.width,
            "height": profile.height,
            "model": profile.model_id,
            "nologo": "true",
        }
        if request.seed is not None:
            params["seed"] = request.seed
        return params

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "GET",
            f"{POLLINATIONS_URL}/{quote(request.prompt, safe='')}",
            profile.timeout_seconds,
            params=self.build_params(profile, request),
        )
        payload = self.extract(response)
        # Content-Type is unreliable here, trust the bytes
        mime_type = sniff_image_mime(payload.data, provider=self.get_provider_name())
        return self._artifact(profile, request, payload.data, mime_type)


class GeminiImageProvider(BaseImageProvider):
    """Gemini multimodal model returning inline image parts."""

    provider_id = ProviderId.GEMINI
    display_name = "Gemini"
    decoding = (
        ExtractionRule(
            PayloadKind.INLINE_BASE64,
            path="candidates.0.content.parts.*.inlineData.data",
            mime_path="candidates.0.content.parts.*.inlineData.mimeType",
        ),
        ExtractionRule(
            PayloadKind.INLINE_BASE64,
            path="candidates.0.content.parts.*.inline_data.data",
            mime_path="candidates.0.content.parts.*.inline_data.mime_type",
        ),
    )
    hints = {
        AuthError: "Check GEMINI_API_KEY in Google AI Studio.",
        QuotaExhausted: "Gemini quota is exhausted for this key.",
    }

    def auth_headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    def classify_error(self, response: ProviderResponse) -> Type[GenerationError]:
        # Gemini reports a bad key as a plain 400
        if response.status == 400 and "API key not valid" in response.text():
            return AuthError
        return super().classify_error(response)

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        orientation = "portrait" if profile.height > profile.width else "landscape"
        text = (
            f"Generate an image: {request.prompt}. "
            f"Aspect ratio: {request.aspect_ratio.value} ({orientation}). "
            f"Avoid: {self.negative_prompt()}."
        )
        return {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "POST",
            f"{GEMINI_API_URL}/{profile.model_id}:generateContent",
            profile.timeout_seconds,
            headers=self.auth_headers(),
            json=self.build_payload(profile, request),
        )

        document = response.json()
        block_reason = lookup(document, "promptFeedback.blockReason")
        if block_reason:
            raise InvalidRequest(
                f"Gemini blocked this prompt ({block_reason}). Rephrase the prompt and try again.",
            )

        payload = self.extract(response)
        return self._artifact(profile, request, payload.data, payload.mime_type)


class HuggingFaceMixin:
    """Error handling shared by the Hugging Face image and video tasks."""

    provider_id = ProviderId.HUGGINGFACE
    display_name = "Hugging Face"
    hints = {
        AuthError: "Use HUGGINGFACE_API_KEY (or HF_TOKEN) with Inference permissions.",
        QuotaExhausted: "Hugging Face inference credits are exhausted.",
    }

    def describe_error(self, response: ProviderResponse) -> str:
        if response.is_html and response.status in (401, 403):
            return (
                f"{self.display_name} error ({response.status}). "
                "Unauthorized by Hugging Face. Verify token and permissions."
            )
        return super().describe_error(response)


class HuggingFaceImageProvider(HuggingFaceMixin, BaseImageProvider):
    """Hugging Face inference router, text-to-image task."""

    decoding = (
        ExtractionRule(PayloadKind.RAW_BINARY, default_mime="image/png"),
    )

    def build_payload(self, profile: ProviderProfile, request: GenerationRequest) -> Dict[str, Any]:
        parameters = {
            "negative_prompt": self.negative_prompt(),
            "width": profile.width,
            "height": profile.height,
            "num_inference_steps": profile.sampler.steps,
            "guidance_scale": profile.sampler.cfg_scale,
        }
        if request.seed is not None:
            parameters["seed"] = request.seed
        return {
            "inputs": request.prompt,
            "parameters": parameters,
            "options": {"wait_for_model": True, "use_cache": False},
        }

    async def _generate(self, profile: ProviderProfile, request: GenerationRequest) -> MediaArtifact:
        response = await self._request(
            "POST",
            f"{HUGGINGFACE_INFERENCE_URL}/{profile.model_id}",
            profile.timeout_seconds,
            headers={**self.auth_headers(), "Accept": "image/png"},
            json=self.build_payload(profile, request),
        )
        if response.is_json:
            raise MalformedResponse(
                f"Image model returned JSON instead of image bytes: {summarize_body(response)}",
            )
        payload = self.extract(response)
        mime_type = sniff_image_mime(payload.data, provider=self.get_provider_name())
        return self._artifact(profile, request, payload.data, mime_type)
