"""
Data model shared by the provider adapters and the orchestration layer.
"""
import base64
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import GenerationError, ValidationError


class MediaKind(str, Enum):
    """Kind of media a request produces."""
    IMAGE = "image"
    VIDEO = "video"


class QualityTier(str, Enum):
    """Named bundle of generation parameters, cheapest first."""
    CHEAP = "cheap"
    BALANCED = "balanced"
    BEST = "best"

    @classmethod
    def parse(cls, value: Any) -> "QualityTier":
        """Parse a tier name, falling back to balanced."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.BALANCED


class AspectRatio(str, Enum):
    """Supported output aspect ratios."""
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"

    @classmethod
    def parse(cls, value: Any) -> "AspectRatio":
        """Parse an aspect ratio, falling back to portrait."""
        try:
            return cls(str(value))
        except ValueError:
            return cls.PORTRAIT


class Style(str, Enum):
    """Visual style keywords understood by the prompt builder."""
    VIBRANT = "vibrant"
    CINEMATIC = "cinematic"
    ARTISTIC = "artistic"
    REALISTIC = "realistic"
    ANIME = "anime"
    DEVOTIONAL = "devotional"
    FOLK = "folk"

    @classmethod
    def parse(cls, value: Any) -> "Style":
        """Parse a style keyword, falling back to vibrant."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.VIBRANT


class ProviderId(str, Enum):
    """Closed set of supported generation providers."""
    NVIDIA_SDXL = "nvidia-sdxl"
    POLLINATIONS = "pollinations"
    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"
    GATEWAY = "gateway"
    FAL = "fal"


class AttemptOutcome(str, Enum):
    """Result of one provider attempt."""
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class GenerationRequest:
    """One logical generation request (a single scene)."""
    prompt: str
    scene_index: int
    scene_count: int
    style: Style = Style.VIBRANT
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    quality_tier: QualityTier = QualityTier.BALANCED
    media_kind: MediaKind = MediaKind.IMAGE
    seed: Optional[int] = None
    duration: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.prompt or not self.prompt.strip():
            raise ValidationError("Prompt is required", "EMPTY_PROMPT")
        if self.scene_count <= 0:
            raise ValidationError(
                f"Scene count must be positive, got {self.scene_count}",
                "INVALID_SCENE_COUNT"
            )
        if not 0 <= self.scene_index < self.scene_count:
            raise ValidationError(
                f"Scene index {self.scene_index} outside 0..{self.scene_count - 1}",
                "INVALID_SCENE_INDEX"
            )

    @property
    def scene_number(self) -> int:
        return self.scene_index + 1


@dataclass(frozen=True)
class SamplerParams:
    """Sampling cost knobs for diffusion-style providers."""
    steps: int
    cfg_scale: float
    sampler: str


@dataclass(frozen=True)
class ProviderProfile:
    """Concrete parameters for one provider/model, derived per request."""
    provider_id: ProviderId
    model_id: str
    sampler: SamplerParams
    width: int
    height: int
    max_timeout_ms: int
    style_guide: str = ""
    num_frames: Optional[int] = None
    square_substituted: bool = False

    @property
    def timeout_seconds(self) -> float:
        return self.max_timeout_ms / 1000.0

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class GenerationAttempt:
    """Record of a single adapter invocation."""
    provider_id: ProviderId
    model_id: str
    attempt_number: int
    started_at: datetime
    outcome: AttemptOutcome
    error_code: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider_id.value,
            "model": self.model_id,
            "attempt": self.attempt_number,
            "startedAt": self.started_at.isoformat(),
            "outcome": self.outcome.value,
            "code": self.error_code,
            "message": self.error_detail,
        }


@dataclass
class MediaArtifact:
    """Successfully produced media plus its provenance."""
    mime_type: str
    source_provider: ProviderId
    source_model: str
    prompt: str
    payload: Optional[bytes] = None
    url: Optional[str] = None
    seed: Optional[int] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def data_uri(self) -> Optional[str]:
        """Self-describing data URI, or the reference URL when no bytes are held."""
        if self.payload is None:
            return self.url
        encoded = base64.b64encode(self.payload).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "data": self.data_uri,
            "mimeType": self.mime_type,
            "prompt": self.prompt,
            "source": self.source_provider.value,
            "model": self.source_model,
        }
        if self.seed is not None:
            data["seed"] = self.seed
        return data


@dataclass(frozen=True)
class SceneError:
    """A scene that permanently failed."""
    scene_index: int
    provider_id: Optional[ProviderId]
    message: str
    status: int = 500
    error_code: str = "GENERATION_ERROR"
    error: Optional[GenerationError] = field(default=None, compare=False, repr=False)
    attempts: List[GenerationAttempt] = field(default_factory=list, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene": self.scene_index + 1,
            "provider": self.provider_id.value if self.provider_id else None,
            "status": self.status,
            "code": self.error_code,
            "message": self.message,
        }


class BatchResult:
    """Artifacts and errors for every scene of one batch, in scene order."""

    def __init__(self, scene_count: int):
        self.scene_count = scene_count
        self._artifacts: Dict[int, MediaArtifact] = {}
        self._errors: List[SceneError] = []
        self._frozen = False

    @property
    def artifacts(self) -> List[MediaArtifact]:
        return [self._artifacts[index] for index in sorted(self._artifacts)]

    @property
    def indexed_artifacts(self) -> List[Tuple[int, MediaArtifact]]:
        return sorted(self._artifacts.items())

    @property
    def errors(self) -> List[SceneError]:
        return list(self._errors)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def covered_indices(self) -> List[int]:
        return sorted(list(self._artifacts) + [e.scene_index for e in self._errors])

    def add_artifact(self, scene_index: int, artifact: MediaArtifact) -> None:
        self._check_open(scene_index)
        self._artifacts[scene_index] = artifact

    def add_error(self, error: SceneError) -> None:
        self._check_open(error.scene_index)
        self._errors.append(error)

    def freeze(self) -> "BatchResult":
        self._frozen = True
        return self

    def _check_open(self, scene_index: int) -> None:
        if self._frozen:
            raise RuntimeError("BatchResult is frozen")
        if not 0 <= scene_index < self.scene_count:
            raise ValueError(f"Scene index {scene_index} out of range")
        if scene_index in self._artifacts or any(
            e.scene_index == scene_index for e in self._errors
        ):
            raise ValueError(f"Scene {scene_index} already recorded")


@dataclass
class AsyncJobHandle:
    """Vendor job reference held while polling."""
    request_id: str
    status_url: Optional[str] = None
    response_url: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    poll_count: int = 0
