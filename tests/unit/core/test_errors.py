"""
Tests for the error taxonomy and error handler.
"""
import json
from datetime import datetime, timezone

from vlogstudio.core.errors import (
    AllProvidersExhausted,
    AuthError,
    ErrorHandler,
    GenerationTimeout,
    InvalidRequest,
    JobTimedOut,
    NoArtifactsProduced,
    ProviderUnavailable,
    QuotaExhausted,
    RateLimited,
    most_actionable,
)
from vlogstudio.core.models import (
    AttemptOutcome,
    BatchResult,
    GenerationAttempt,
    ProviderId,
    SceneError,
)


def test_retryable_flags():
    """Only rate limits, timeouts and provider outages are transient."""
    assert RateLimited("x").retryable
    assert ProviderUnavailable("x").retryable
    assert GenerationTimeout("x").retryable
    assert not AuthError("x").retryable
    assert not QuotaExhausted("x").retryable
    assert not InvalidRequest("x").retryable
    assert not JobTimedOut("x").retryable


def test_auth_error_passes_through_403():
    assert AuthError("denied").http_status == 401
    assert AuthError("denied", status=403).http_status == 403
    assert QuotaExhausted("broke").http_status == 402


def test_most_actionable_prefers_credentials_over_outages():
    outage = ProviderUnavailable("down")
    auth = AuthError("bad key")
    assert most_actionable([outage, auth]) is auth
    assert most_actionable([]) is None


def test_all_providers_exhausted_uses_first_error():
    attempts = [
        GenerationAttempt(
            provider_id=ProviderId.NVIDIA_SDXL,
            model_id="stabilityai/stable-diffusion-xl",
            attempt_number=1,
            started_at=datetime.now(timezone.utc),
            outcome=AttemptOutcome.PERMANENT_FAILURE,
            error_code="AUTH_ERROR",
            error_detail="NVIDIA SDXL error (401).",
        ),
    ]
    first = AuthError("NVIDIA SDXL error (401).", provider="nvidia-sdxl", status=401)
    second = ProviderUnavailable("Hugging Face error (503).", provider="huggingface", status=503)

    error = AllProvidersExhausted(attempts, [first, second])
    assert error.primary is first
    assert error.message == first.message
    assert error.http_status == 401

    body = error.to_response()
    assert body["error"] == first.message
    assert body["details"][0]["provider"] == "nvidia-sdxl"
    assert body["details"][0]["attempt"] == 1


def test_all_providers_exhausted_without_providers():
    error = AllProvidersExhausted([], [])
    assert error.primary is None
    assert error.message == "No providers are configured"
    assert error.http_status == 500


def test_no_artifacts_produced_reports_most_actionable_scene():
    result = BatchResult(2)
    result.add_error(SceneError(
        scene_index=0,
        provider_id=ProviderId.HUGGINGFACE,
        message="Hugging Face error (503).",
        status=500,
        error=ProviderUnavailable("Hugging Face error (503)."),
    ))
    result.add_error(SceneError(
        scene_index=1,
        provider_id=ProviderId.NVIDIA_SDXL,
        message="NVIDIA SDXL error (402).",
        status=402,
        error=QuotaExhausted("NVIDIA SDXL error (402)."),
    ))

    error = NoArtifactsProduced(result, media_label="image")
    assert error.http_status == 402
    assert error.message == "NVIDIA SDXL error (402)."
    body = error.to_response()
    assert [d["image"] for d in body["details"]] == [1, 2]


def test_error_handler_logs_and_counts(tmp_path):
    handler = ErrorHandler(error_dir=tmp_path / "errors")
    data = handler.log_error(RateLimited("slow down", provider="gemini"), {"path": "/api/generate-images"})

    assert data["error_code"] == "RATE_LIMITED"
    assert data["http_status"] == 429
    assert handler.summary() == [{"code": "RATE_LIMITED", "count": 1}]

    files = list((tmp_path / "errors").glob("error_*.json"))
    assert len(files) == 1
    assert json.loads(files[0].read_text())["context"]["path"] == "/api/generate-images"


def test_error_handler_shapes_unknown_errors():
    handler = ErrorHandler()
    assert handler.to_response(RuntimeError("boom")) == {"error": "boom"}
    assert handler.status_for(RuntimeError("boom")) == 500
    assert handler.status_for(InvalidRequest("bad")) == 400
