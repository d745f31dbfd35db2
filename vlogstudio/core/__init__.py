"""Core data model, error taxonomy, retry policy and profile resolution."""

from .errors import (
    AllProvidersExhausted,
    AuthError,
    ErrorHandler,
    GenerationError,
    GenerationTimeout,
    InvalidRequest,
    JobFailed,
    JobTimedOut,
    MalformedResponse,
    NoArtifactsProduced,
    ProviderUnavailable,
    QuotaExhausted,
    RateLimited,
    ValidationError,
)
from .models import (
    AspectRatio,
    BatchResult,
    GenerationRequest,
    MediaArtifact,
    MediaKind,
    ProviderId,
    ProviderProfile,
    QualityTier,
    Style,
)
from .profiles import resolve, resolve_models
from .retry import RetryPolicy, with_retry

__all__ = [
    # Errors
    'GenerationError',
    'ValidationError',
    'AuthError',
    'QuotaExhausted',
    'InvalidRequest',
    'RateLimited',
    'ProviderUnavailable',
    'GenerationTimeout',
    'MalformedResponse',
    'JobFailed',
    'JobTimedOut',
    'AllProvidersExhausted',
    'NoArtifactsProduced',
    'ErrorHandler',
    # Models
    'AspectRatio',
    'BatchResult',
    'GenerationRequest',
    'MediaArtifact',
    'MediaKind',
    'ProviderId',
    'ProviderProfile',
    'QualityTier',
    'Style',
    # Policies
    'resolve',
    'resolve_models',
    'RetryPolicy',
    'with_retry',
]
