"""
Fallback chain across providers and models.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

from loguru import logger

from ..core.errors import AllProvidersExhausted, GenerationError, ProviderUnavailable
from ..core.models import GenerationAttempt, GenerationRequest, MediaArtifact, ProviderProfile
from ..core.retry import RetryPolicy

if TYPE_CHECKING:
    from ..providers.base import BaseProvider


@dataclass(frozen=True)
class ChainLink:
    """One (provider, model) position in the chain."""
    provider: "BaseProvider"
    profile: ProviderProfile

    @property
    def label(self) -> str:
        return f"{self.provider.get_provider_name()}/{self.profile.model_id}"


class FallbackChain:
    """Tries providers in priority order; the first success wins."""

    def __init__(self, providers: Sequence["BaseProvider"], retry_policy: Optional[RetryPolicy] = None):
        self.providers = list(providers)
        self.retry_policy = retry_policy or RetryPolicy()

    @property
    def head(self) -> Optional["BaseProvider"]:
        return self.providers[0] if self.providers else None

    def links(self, request: GenerationRequest) -> List[ChainLink]:
        """Expand providers into (provider, model) links for a request."""
        return [
            ChainLink(provider, profile)
            for provider in self.providers
            for profile in provider.profiles(request)
        ]

    async def generate_one(
        self,
        request: GenerationRequest,
        attempt_log: Optional[List[GenerationAttempt]] = None
    ) -> MediaArtifact:
        """
        Generate one artifact, falling back link by link.

        Args:
            request: Scene request
            attempt_log: Optional list receiving every attempt made

        Returns:
            The first successful artifact

        Raises:
            AllProvidersExhausted: Every link failed; carries all attempts
        """
        attempts = attempt_log if attempt_log is not None else []
        errors: List[GenerationError] = []

        for link in self.links(request):
            try:
                return await self.retry_policy.run(
                    lambda link=link: link.provider.invoke(link.profile, request),
                    provider_id=link.provider.provider_id,
                    model_id=link.profile.model_id,
                    attempt_log=attempts,
                )
            except GenerationError as e:
                errors.append(e)
                logger.warning(f"{link.label} failed for scene {request.scene_number}: {e}")
            except Exception as e:
                logger.exception(f"{link.label} raised unexpectedly for scene {request.scene_number}")
                errors.append(ProviderUnavailable(
                    f"{link.label} failed unexpectedly: {type(e).__name__}: {e}",
                    provider=link.provider.get_provider_name(),
                ))

        if not errors:
            logger.error(f"No {request.media_kind.value} providers are configured")
        else:
            logger.error(
                f"All providers failed for scene {request.scene_number} "
                f"after {len(attempts)} attempts"
            )
        raise AllProvidersExhausted(attempts, errors)
