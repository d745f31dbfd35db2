"""
Tests for settings loading.
"""
import pytest

from vlogstudio.config.settings import Settings
from vlogstudio.core.errors import RateLimited
from vlogstudio.core.models import ProviderId

from utils import make_settings


def test_env_values_and_aliases(monkeypatch):
    for name in ("HUGGINGFACE_API_KEY", "HUGGINGFACEHUB_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HF_TOKEN", "hf_alias")
    monkeypatch.setenv("MAX_ATTEMPTS", "3")
    monkeypatch.setenv("POLLINATIONS_ENABLED", "false")
    monkeypatch.setenv("AI_GATEWAY_URL", "https://gw.example/v1/")

    settings = Settings()
    assert settings.HUGGINGFACE_API_KEY == "hf_alias"
    assert settings.MAX_ATTEMPTS == 3
    assert settings.POLLINATIONS_ENABLED is False
    assert settings.AI_GATEWAY_URL == "https://gw.example/v1"
    assert not settings.is_configured(ProviderId.POLLINATIONS)


def test_overrides_win_and_unknown_keys_fail():
    settings = make_settings(NVIDIA_API_KEY="")
    assert not settings.is_configured(ProviderId.NVIDIA_SDXL)
    assert settings.is_configured("gemini")

    with pytest.raises(AttributeError):
        Settings(NOT_A_SETTING=1)


def test_from_env_reads_dotenv(tmp_path, monkeypatch):
    monkeypatch.delenv("FAL_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("FAL_KEY=fal-from-file\n")

    settings = Settings.from_env(env_file)
    assert settings.get_api_key(ProviderId.FAL) == "fal-from-file"
    monkeypatch.delenv("FAL_KEY", raising=False)


def test_helpers(settings):
    assert settings.pacing_delay(ProviderId.HUGGINGFACE) == 2.0
    assert settings.pacing_delay(ProviderId.POLLINATIONS) == 0.3
    assert settings.retry_delays()[RateLimited] == 2.0
    assert settings.cors_origins() == ["*"]
    assert settings.gateway_models() == []
    assert make_settings(GATEWAY_VIDEO_MODELS="a/b, c/d").gateway_models() == ["a/b", "c/d"]
    assert settings.configured_providers() == [p.value for p in ProviderId]


def test_as_dict_masks_keys(settings):
    data = settings.as_dict()
    assert data["NVIDIA_API_KEY"] == "nvap***"
    assert data["PORT"] == settings.PORT


def test_validate(settings):
    assert settings.validate()
    assert not make_settings(MAX_ATTEMPTS=0).validate()
    assert not make_settings(POLL_INTERVAL=-1).validate()
    assert not make_settings(DEFAULT_IMAGE_COUNT=20).validate()
