"""
vlogstudio: multi-provider image and video generation for short-form
video creation.
"""

__version__ = "1.0.0"

from .config.settings import Settings
from .core.errors import GenerationError
from .core.models import MediaArtifact, MediaKind, ProviderId

__all__ = [
    '__version__',
    'Settings',
    'GenerationError',
    'MediaArtifact',
    'MediaKind',
    'ProviderId',
]
