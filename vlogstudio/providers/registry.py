"""
Binding of provider ids to adapter classes, and chain construction.
"""
import asyncio
from typing import Awaitable, Callable, Dict, List, Tuple, Type

import aiohttp
from loguru import logger

from ..config.settings import Settings
from ..core.models import MediaKind, ProviderId
from ..core.profiles import CHAIN_ORDER
from .base import BaseProvider
from .image import GeminiImageProvider, HuggingFaceImageProvider, NvidiaSDXLProvider, PollinationsProvider
from .video import FalVideoProvider, GatewayVideoProvider, HuggingFaceVideoProvider

PROVIDER_CLASSES: Dict[Tuple[ProviderId, MediaKind], Type[BaseProvider]] = {
    (ProviderId.NVIDIA_SDXL, MediaKind.IMAGE): NvidiaSDXLProvider,
    (ProviderId.POLLINATIONS, MediaKind.IMAGE): PollinationsProvider,
    (ProviderId.GEMINI, MediaKind.IMAGE): GeminiImageProvider,
    (ProviderId.HUGGINGFACE, MediaKind.IMAGE): HuggingFaceImageProvider,
    (ProviderId.GATEWAY, MediaKind.VIDEO): GatewayVideoProvider,
    (ProviderId.FAL, MediaKind.VIDEO): FalVideoProvider,
    (ProviderId.HUGGINGFACE, MediaKind.VIDEO): HuggingFaceVideoProvider,
}


def get_provider_class(provider_id: ProviderId, media_kind: MediaKind) -> Type[BaseProvider]:
    try:
        return PROVIDER_CLASSES[(ProviderId(provider_id), MediaKind(media_kind))]
    except KeyError:
        raise ValueError(f"No {media_kind} adapter for provider {provider_id}") from None


def build_providers(
    media_kind: MediaKind,
    settings: Settings,
    session: aiohttp.ClientSession,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> List[BaseProvider]:
    """
    Instantiate the fallback chain for one media kind.

    Providers without credentials are left out; the rest keep chain order.
    """
    media_kind = MediaKind(media_kind)
    providers = []
    for provider_id in CHAIN_ORDER[media_kind]:
        provider = get_provider_class(provider_id, media_kind)(settings, session, sleep=sleep)
        if provider.is_configured():
            providers.append(provider)
        else:
            logger.debug(f"Skipping {provider_id.value} for {media_kind.value}: not configured")

    logger.info(
        f"{media_kind.value} chain: "
        f"{' -> '.join(p.get_provider_name() for p in providers) or '(empty)'}"
    )
    return providers
