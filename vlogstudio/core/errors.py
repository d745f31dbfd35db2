"""
Error taxonomy for provider calls and the orchestration layer.
Every failure carries an error code, a retryable flag and the HTTP status
it should surface as.
"""
import json
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger


class GenerationError(Exception):
    """Base exception class for generation errors."""
    default_code = "GENERATION_ERROR"
    http_status = 500
    retryable = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
        status: Optional[int] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.provider = provider
        # upstream HTTP status, when there was one
        self.status = status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.provider:
            data["provider"] = self.provider
        if self.status is not None:
            data["status"] = self.status
        return data

    def to_response(self) -> Dict[str, Any]:
        """Body for the external interface."""
        return {"error": self.message}


class ValidationError(GenerationError):
    """Input rejected at the boundary."""
    default_code = "VALIDATION_ERROR"
    http_status = 400


class ProviderError(GenerationError):
    """Failure reported by (or while talking to) one provider."""
    default_code = "PROVIDER_ERROR"


class AuthError(ProviderError):
    """Bad or missing credential."""
    default_code = "AUTH_ERROR"
    http_status = 401

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        # 401 and 403 are both passed through as-is
        if self.status in (401, 403):
            self.http_status = self.status


class QuotaExhausted(ProviderError):
    """Provider billing or credit exhausted."""
    default_code = "QUOTA_EXHAUSTED"
    http_status = 402


class InvalidRequest(ProviderError):
    """Provider rejected the parameters or prompt."""
    default_code = "INVALID_REQUEST"
    http_status = 400


class RateLimited(ProviderError):
    """Provider throttled the request."""
    default_code = "RATE_LIMITED"
    http_status = 429
    retryable = True


class ProviderUnavailable(ProviderError):
    """Transient provider-side failure."""
    default_code = "PROVIDER_UNAVAILABLE"
    http_status = 500
    retryable = True


class GenerationTimeout(ProviderError):
    """Local deadline exceeded."""
    default_code = "TIMEOUT"
    http_status = 504
    retryable = True


class MalformedResponse(ProviderError):
    """Provider answered successfully but the payload is unusable."""
    default_code = "MALFORMED_RESPONSE"
    http_status = 502


class JobFailed(ProviderError):
    """Async vendor explicitly reported the job as failed."""
    default_code = "JOB_FAILED"
    http_status = 500


class JobTimedOut(GenerationTimeout):
    """Async job did not reach a terminal state within the poll budget."""
    default_code = "JOB_TIMED_OUT"
    http_status = 504
    # the poll budget already spans minutes
    retryable = False


# Lower rank means a more actionable message for the user.
ACTIONABILITY = (
    AuthError,
    QuotaExhausted,
    InvalidRequest,
    RateLimited,
    MalformedResponse,
    JobTimedOut,
    JobFailed,
    GenerationTimeout,
    ProviderUnavailable,
)


def actionability(error: BaseException) -> int:
    for rank, error_class in enumerate(ACTIONABILITY):
        if isinstance(error, error_class):
            return rank
    return len(ACTIONABILITY)


def most_actionable(errors: Iterable[GenerationError]) -> Optional[GenerationError]:
    """Pick the error whose message helps the user most; ties keep the earliest."""
    best = None
    for error in errors:
        if best is None or actionability(error) < actionability(best):
            best = error
    return best


def attempt_details(attempts: Sequence[Any]) -> List[Dict[str, Any]]:
    """One response row per GenerationAttempt."""
    return [
        {
            "attempt": index + 1,
            "provider": attempt.provider_id.value,
            "model": attempt.model_id,
            "status": attempt.outcome.value,
            "message": attempt.error_detail,
        }
        for index, attempt in enumerate(attempts)
    ]


class AllProvidersExhausted(GenerationError):
    """Every provider in a fallback chain failed."""
    default_code = "ALL_PROVIDERS_FAILED"

    def __init__(self, attempts: Sequence[Any], errors: Sequence[GenerationError]):
        self.attempts = list(attempts)
        self.errors = list(errors)
        self.primary = self.errors[0] if self.errors else None
        message = self.primary.message if self.primary else "No providers are configured"
        super().__init__(
            message,
            details={"attempts": [attempt.to_dict() for attempt in self.attempts]},
            provider=self.primary.provider if self.primary else None,
        )
        if self.primary is not None:
            self.http_status = self.primary.http_status

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "details": attempt_details(self.attempts),
        }


class NoArtifactsProduced(GenerationError):
    """A batch finished with zero successful scenes."""
    default_code = "NO_ARTIFACTS_PRODUCED"

    def __init__(self, result: Any, media_label: str = "image"):
        self.result = result
        self.media_label = media_label
        scene_errors = list(result.errors)
        self.primary = most_actionable(
            e.error for e in scene_errors if e.error is not None
        )
        if self.primary is not None:
            message = self.primary.message
        elif scene_errors:
            message = scene_errors[0].message
        else:
            message = f"No {media_label}s could be generated"
        super().__init__(
            message,
            details={"scenes": [e.to_dict() for e in scene_errors]},
            provider=self.primary.provider if self.primary else None,
        )
        if self.primary is not None:
            self.http_status = self.primary.http_status

    def to_response(self) -> Dict[str, Any]:
        scene_errors = self.result.errors
        # a single video clip reports its full attempt log
        if self.media_label == "video" and len(scene_errors) == 1 and scene_errors[0].attempts:
            return {"error": self.message, "details": attempt_details(scene_errors[0].attempts)}
        return {
            "error": self.message,
            "details": [
                {
                    self.media_label: e.scene_index + 1,
                    "provider": e.provider_id.value if e.provider_id else None,
                    "status": e.status,
                    "message": e.message,
                }
                for e in scene_errors
            ],
        }


class ErrorHandler:
    """Logs failures with their context and shapes them for callers."""

    def __init__(self, error_dir: Optional[Path] = None):
        self.error_dir = Path(error_dir) if error_dir else None
        self.error_counts: Dict[str, int] = {}

    def log_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Log error with detailed context and stack trace."""
        error_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {},
        }

        if isinstance(error, GenerationError):
            error_data.update({
                "error_code": error.error_code,
                "error_details": error.details,
                "http_status": error.http_status,
            })
        else:
            error_data["stack_trace"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

        key = error_data.get("error_code", error_data["error_type"])
        self.error_counts[key] = self.error_counts.get(key, 0) + 1

        logger.error(json.dumps(error_data, indent=2, default=str))

        if self.error_dir is not None:
            error_file = self.error_dir / f"error_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')}.json"
            error_file.parent.mkdir(parents=True, exist_ok=True)
            with open(error_file, "w") as f:
                json.dump(error_data, f, indent=2, default=str)

        return error_data

    def to_response(self, error: BaseException) -> Dict[str, Any]:
        """Convert any failure into the external error body."""
        if isinstance(error, GenerationError):
            return error.to_response()
        return {"error": str(error) or "Generation failed"}

    @staticmethod
    def status_for(error: BaseException) -> int:
        if isinstance(error, GenerationError):
            return error.http_status
        return 500

    def summary(self) -> List[Dict[str, Any]]:
        return [
            {"code": code, "count": count}
            for code, count in sorted(self.error_counts.items())
        ]
