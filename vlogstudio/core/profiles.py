"""
Quality tier and style resolution.

Maps (quality tier, media kind, style, aspect ratio) onto concrete provider
parameters. Everything here is pure table lookup; unknown tiers and styles
fall back to balanced/vibrant instead of failing.

Known provider limitation: NVIDIA SDXL is only driven at square size for
portrait requests, so 9:16 comes back as 1024x1024. The profile records
this as ``square_substituted`` so callers can report it.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import (
    AspectRatio,
    MediaKind,
    ProviderId,
    ProviderProfile,
    QualityTier,
    SamplerParams,
    Style,
)

STYLE_GUIDES: Dict[Style, str] = {
    Style.VIBRANT: "ultra vibrant colors, high contrast, visually stunning, eye-catching, professional quality",
    Style.CINEMATIC: "cinematic lighting, dramatic atmosphere, film quality, 4K resolution, movie poster style",
    Style.ARTISTIC: "digital art, beautiful illustration, trending on artstation, masterpiece quality",
    Style.REALISTIC: "photorealistic, ultra HD, detailed, natural lighting, professional photography",
    Style.ANIME: "anime style, vibrant colors, detailed illustration, studio quality anime art",
    Style.DEVOTIONAL: "divine atmosphere, golden light, spiritual, sacred art, traditional Indian art style",
    Style.FOLK: "traditional folk art style, colorful, rural Indian aesthetics, earthy tones, cultural",
}

NEGATIVE_PROMPTS: Dict[MediaKind, str] = {
    MediaKind.IMAGE: "blurry, low quality, distorted, watermark, text, ugly, deformed",
    MediaKind.VIDEO: "blurry, low quality, artifacts, watermark, text, logo, flicker, distortion",
}

# Fallback order per media kind, cheapest/most reliable first.
CHAIN_ORDER: Dict[MediaKind, Tuple[ProviderId, ...]] = {
    MediaKind.IMAGE: (
        ProviderId.NVIDIA_SDXL,
        ProviderId.POLLINATIONS,
        ProviderId.GEMINI,
        ProviderId.HUGGINGFACE,
    ),
    MediaKind.VIDEO: (
        ProviderId.GATEWAY,
        ProviderId.FAL,
        ProviderId.HUGGINGFACE,
    ),
}

SAMPLERS: Dict[MediaKind, Dict[QualityTier, SamplerParams]] = {
    MediaKind.IMAGE: {
        QualityTier.CHEAP: SamplerParams(steps=15, cfg_scale=5.0, sampler="K_EULER"),
        QualityTier.BALANCED: SamplerParams(steps=25, cfg_scale=7.0, sampler="K_DPM_2_ANCESTRAL"),
        QualityTier.BEST: SamplerParams(steps=40, cfg_scale=9.0, sampler="K_DPMPP_2M"),
    },
    MediaKind.VIDEO: {
        QualityTier.CHEAP: SamplerParams(steps=20, cfg_scale=6.0, sampler="euler"),
        QualityTier.BALANCED: SamplerParams(steps=30, cfg_scale=7.0, sampler="dpmpp_2m"),
        QualityTier.BEST: SamplerParams(steps=40, cfg_scale=8.0, sampler="dpmpp_2m_karras"),
    },
}

# (width, height) for portrait output; landscape swaps the pair.
TIER_RESOLUTIONS: Dict[MediaKind, Dict[QualityTier, Tuple[int, int]]] = {
    MediaKind.IMAGE: {
        QualityTier.CHEAP: (576, 1024),
        QualityTier.BALANCED: (768, 1344),
        QualityTier.BEST: (1080, 1920),
    },
    MediaKind.VIDEO: {
        QualityTier.CHEAP: (480, 848),
        QualityTier.BALANCED: (720, 1280),
        QualityTier.BEST: (1080, 1920),
    },
}

SDXL_LANDSCAPE = (1344, 768)
SDXL_SQUARE = (1024, 1024)

VIDEO_FRAMES = {
    AspectRatio.PORTRAIT: 48,
    AspectRatio.LANDSCAPE: 72,
}

PROVIDER_MODELS: Dict[Tuple[ProviderId, MediaKind], Dict[QualityTier, Tuple[str, ...]]] = {
    (ProviderId.NVIDIA_SDXL, MediaKind.IMAGE): {
        QualityTier.CHEAP: ("stabilityai/stable-diffusion-xl",),
        QualityTier.BALANCED: ("stabilityai/stable-diffusion-xl",),
        QualityTier.BEST: ("stabilityai/stable-diffusion-xl",),
    },
    (ProviderId.POLLINATIONS, MediaKind.IMAGE): {
        QualityTier.CHEAP: ("turbo",),
        QualityTier.BALANCED: ("flux",),
        QualityTier.BEST: ("flux-realism",),
    },
    (ProviderId.GEMINI, MediaKind.IMAGE): {
        QualityTier.CHEAP: ("gemini-2.0-flash-exp",),
        QualityTier.BALANCED: ("gemini-2.0-flash-exp",),
        QualityTier.BEST: ("gemini-2.0-flash-preview-image-generation",),
    },
    (ProviderId.HUGGINGFACE, MediaKind.IMAGE): {
        QualityTier.CHEAP: ("stabilityai/sdxl-turbo",),
        QualityTier.BALANCED: ("stabilityai/stable-diffusion-xl-base-1.0",),
        QualityTier.BEST: ("stabilityai/stable-diffusion-xl-base-1.0",),
    },
    (ProviderId.HUGGINGFACE, MediaKind.VIDEO): {
        QualityTier.CHEAP: ("cerspense/zeroscope_v2_576w",),
        QualityTier.BALANCED: ("THUDM/CogVideoX-2b",),
        QualityTier.BEST: ("genmo/mochi-1-preview",),
    },
    (ProviderId.GATEWAY, MediaKind.VIDEO): {
        QualityTier.CHEAP: ("bytedance/seedance-v1-lite", "alibaba/wan-v2.2-5b"),
        QualityTier.BALANCED: ("klingai/kling-v2.1-standard", "bytedance/seedance-v1-lite"),
        QualityTier.BEST: ("google/veo-3.0-generate", "klingai/kling-v2.1-master"),
    },
    (ProviderId.FAL, MediaKind.VIDEO): {
        QualityTier.CHEAP: ("fal-ai/ltx-video",),
        QualityTier.BALANCED: ("fal-ai/kling-video/v2.1/standard/text-to-video",),
        QualityTier.BEST: ("fal-ai/veo3",),
    },
}

# Hard per-call wall-clock limits.
IMAGE_TIMEOUT_MS = 30_000
VIDEO_TIMEOUTS_MS: Dict[ProviderId, int] = {
    ProviderId.HUGGINGFACE: 180_000,
    ProviderId.GATEWAY: 120_000,
    # per submit/poll call; the poll budget bounds the whole job
    ProviderId.FAL: 30_000,
}


def style_guide(style: Any) -> str:
    """Prompt augmentation phrase for a style keyword."""
    return STYLE_GUIDES[Style.parse(style)]


def negative_prompt(media_kind: Any) -> str:
    return NEGATIVE_PROMPTS[MediaKind(media_kind)]


def supported_models(provider_id: ProviderId, media_kind: MediaKind, quality_tier: QualityTier) -> Tuple[str, ...]:
    try:
        return PROVIDER_MODELS[(ProviderId(provider_id), MediaKind(media_kind))][quality_tier]
    except KeyError:
        raise ValueError(
            f"Provider {provider_id} does not generate {media_kind} media"
        ) from None


def _dimensions(
    provider_id: ProviderId,
    media_kind: MediaKind,
    quality_tier: QualityTier,
    aspect_ratio: AspectRatio
) -> Tuple[int, int, bool]:
    if provider_id is ProviderId.NVIDIA_SDXL:
        if aspect_ratio is AspectRatio.LANDSCAPE:
            return SDXL_LANDSCAPE[0], SDXL_LANDSCAPE[1], False
        return SDXL_SQUARE[0], SDXL_SQUARE[1], True

    width, height = TIER_RESOLUTIONS[media_kind][quality_tier]
    if aspect_ratio is AspectRatio.LANDSCAPE:
        width, height = height, width
    return width, height, False


def _timeout_ms(provider_id: ProviderId, media_kind: MediaKind) -> int:
    if media_kind is MediaKind.IMAGE:
        return IMAGE_TIMEOUT_MS
    return VIDEO_TIMEOUTS_MS[provider_id]


def resolve_models(
    provider_id: ProviderId,
    quality_tier: Any,
    media_kind: Any,
    style: Any,
    aspect_ratio: Any,
    model_overrides: Optional[Sequence[str]] = None
) -> List[ProviderProfile]:
    """
    Resolve one profile per model a provider offers for this request shape.

    Args:
        provider_id: Provider to resolve for
        quality_tier: cheap/balanced/best (unknown -> balanced)
        media_kind: image or video
        style: Style keyword (unknown -> vibrant)
        aspect_ratio: 9:16 or 16:9 (unknown -> 9:16)
        model_overrides: Optional model ids replacing the tier defaults

    Returns:
        Profiles in the provider's model priority order
    """
    provider_id = ProviderId(provider_id)
    media_kind = MediaKind(media_kind)
    tier = QualityTier.parse(quality_tier)
    aspect = AspectRatio.parse(aspect_ratio)

    models = tuple(model_overrides) if model_overrides else supported_models(provider_id, media_kind, tier)
    width, height, substituted = _dimensions(provider_id, media_kind, tier, aspect)

    return [
        ProviderProfile(
            provider_id=provider_id,
            model_id=model_id,
            sampler=SAMPLERS[media_kind][tier],
            width=width,
            height=height,
            max_timeout_ms=_timeout_ms(provider_id, media_kind),
            style_guide=style_guide(style),
            num_frames=VIDEO_FRAMES[aspect] if media_kind is MediaKind.VIDEO else None,
            square_substituted=substituted,
        )
        for model_id in models
    ]


def resolve(
    quality_tier: Any,
    media_kind: Any,
    style: Any,
    aspect_ratio: Any,
    provider_id: Optional[ProviderId] = None
) -> ProviderProfile:
    """Resolve the primary profile, by default for the head of the fallback chain."""
    media_kind = MediaKind(media_kind)
    provider_id = provider_id or CHAIN_ORDER[media_kind][0]
    return resolve_models(provider_id, quality_tier, media_kind, style, aspect_ratio)[0]
