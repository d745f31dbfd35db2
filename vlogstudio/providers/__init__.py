"""
Generation providers for images, video and text.
Each adapter translates one vendor API into the shared artifact and error model.
"""

from .base import BaseProvider, BaseImageProvider, BaseVideoProvider
from .image import NvidiaSDXLProvider, PollinationsProvider, GeminiImageProvider, HuggingFaceImageProvider
from .video import GatewayVideoProvider, FalVideoProvider, HuggingFaceVideoProvider
from .llm import GeminiTextProvider
from .registry import build_providers, get_provider_class

__all__ = [
    # Base classes
    'BaseProvider',
    'BaseImageProvider',
    'BaseVideoProvider',
    # Image providers
    'NvidiaSDXLProvider',
    'PollinationsProvider',
    'GeminiImageProvider',
    'HuggingFaceImageProvider',
    # Video providers
    'GatewayVideoProvider',
    'FalVideoProvider',
    'HuggingFaceVideoProvider',
    # LLM providers
    'GeminiTextProvider',
    # Registry
    'build_providers',
    'get_provider_class',
]
