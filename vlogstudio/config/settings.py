"""Application settings and configuration management."""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from dotenv import load_dotenv

from ..core.errors import GenerationTimeout, ProviderUnavailable, RateLimited
from ..core.models import ProviderId
from ..utils.logging_config import DEFAULT_FORMAT

HUGGINGFACE_KEY_ALIASES = ("HUGGINGFACE_API_KEY", "HF_TOKEN", "HUGGINGFACEHUB_API_TOKEN")

DEFAULT_GATEWAY_URL = "https://ai-gateway.vercel.sh/v1"
DEFAULT_FAL_QUEUE_URL = "https://queue.fal.run"


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _first_env(names) -> str:
    for name in names:
        value = _env(name)
        if value:
            return value
    return ""


class Settings:
    """
    Application settings management.

    Values come from the process environment; keyword overrides win.
    Instances are passed explicitly to whatever needs them.
    """

    def __init__(self, **overrides: Any):
        # API Keys and Credentials
        self.NVIDIA_API_KEY: str = _env("NVIDIA_API_KEY")
        self.GEMINI_API_KEY: str = _env("GEMINI_API_KEY")
        self.HUGGINGFACE_API_KEY: str = _first_env(HUGGINGFACE_KEY_ALIASES)
        self.AI_GATEWAY_API_KEY: str = _env("AI_GATEWAY_API_KEY")
        self.FAL_KEY: str = _env("FAL_KEY")
        self.POLLINATIONS_ENABLED: bool = _env_bool("POLLINATIONS_ENABLED", True)

        # Endpoints
        self.AI_GATEWAY_URL: str = _env("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL).rstrip("/")
        self.GATEWAY_VIDEO_MODELS: str = _env("GATEWAY_VIDEO_MODELS")
        self.FAL_QUEUE_URL: str = _env("FAL_QUEUE_URL", DEFAULT_FAL_QUEUE_URL).rstrip("/")

        # Retry Settings
        self.MAX_ATTEMPTS: int = int(_env("MAX_ATTEMPTS", "2"))
        self.RATE_LIMIT_RETRY_DELAY: float = float(_env("RATE_LIMIT_RETRY_DELAY", "2.0"))
        self.TIMEOUT_RETRY_DELAY: float = float(_env("TIMEOUT_RETRY_DELAY", "1.2"))
        self.UNAVAILABLE_RETRY_DELAY: float = float(_env("UNAVAILABLE_RETRY_DELAY", "1.2"))

        # Pacing Settings (seconds between sequential scenes)
        self.NVIDIA_PACING_DELAY: float = float(_env("NVIDIA_PACING_DELAY", "0.3"))
        self.GEMINI_PACING_DELAY: float = float(_env("GEMINI_PACING_DELAY", "0.5"))
        self.HUGGINGFACE_PACING_DELAY: float = float(_env("HUGGINGFACE_PACING_DELAY", "2.0"))
        self.DEFAULT_PACING_DELAY: float = float(_env("DEFAULT_PACING_DELAY", "0.3"))
        self.POLLINATIONS_CONCURRENCY: int = int(_env("POLLINATIONS_CONCURRENCY", "3"))

        # Async Job Settings
        self.POLL_INTERVAL: float = float(_env("POLL_INTERVAL", "2.0"))
        self.POLL_MAX_ATTEMPTS: int = int(_env("POLL_MAX_ATTEMPTS", "60"))

        # Batch Settings
        self.BATCH_TIMEOUT: float = float(_env("BATCH_TIMEOUT", "600"))
        self.DEFAULT_IMAGE_COUNT: int = int(_env("DEFAULT_IMAGE_COUNT", "6"))
        self.MAX_IMAGE_COUNT: int = int(_env("MAX_IMAGE_COUNT", "12"))
        self.DEFAULT_VIDEO_DURATION: int = int(_env("DEFAULT_VIDEO_DURATION", "5"))

        # Text Generation Settings
        self.TEXT_MODEL: str = _env("TEXT_MODEL", "gemini-2.5-flash")

        # Server Settings
        self.HOST: str = _env("HOST", "0.0.0.0")
        self.PORT: int = int(_env("PORT", "3001"))
        self.CORS_ORIGINS: str = _env("CORS_ORIGINS", "*")

        # Logging Settings
        self.LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")
        self.LOG_FORMAT: str = _env("LOG_FORMAT", DEFAULT_FORMAT)
        self.LOG_FILE: str = _env("LOG_FILE")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @classmethod
    def from_env(cls, dotenv_path: Optional[Union[str, Path]] = None, **overrides: Any) -> "Settings":
        """Load a .env file into the environment, then build settings from it."""
        load_dotenv(dotenv_path)
        return cls(**overrides)

    def get_api_key(self, provider: Union[str, ProviderId]) -> Optional[str]:
        """Get API key for a specific provider.

        Args:
            provider: Provider id or name.

        Returns:
            API key if available, None otherwise.
        """
        key_map = {
            ProviderId.NVIDIA_SDXL.value: self.NVIDIA_API_KEY,
            ProviderId.GEMINI.value: self.GEMINI_API_KEY,
            ProviderId.HUGGINGFACE.value: self.HUGGINGFACE_API_KEY,
            ProviderId.GATEWAY.value: self.AI_GATEWAY_API_KEY,
            ProviderId.FAL.value: self.FAL_KEY,
        }
        name = provider.value if isinstance(provider, ProviderId) else str(provider).lower()
        return key_map.get(name) or None

    def is_configured(self, provider: Union[str, ProviderId]) -> bool:
        if ProviderId(provider) is ProviderId.POLLINATIONS:
            return bool(self.POLLINATIONS_ENABLED)
        return bool(self.get_api_key(provider))

    def configured_providers(self) -> List[str]:
        return [p.value for p in ProviderId if self.is_configured(p)]

    def pacing_delay(self, provider: Union[str, ProviderId]) -> float:
        """Delay between sequential scenes when this provider heads the chain."""
        delays = {
            ProviderId.NVIDIA_SDXL: self.NVIDIA_PACING_DELAY,
            ProviderId.GEMINI: self.GEMINI_PACING_DELAY,
            ProviderId.HUGGINGFACE: self.HUGGINGFACE_PACING_DELAY,
        }
        return delays.get(ProviderId(provider), self.DEFAULT_PACING_DELAY)

    def retry_delays(self) -> Mapping[Type[BaseException], float]:
        return {
            RateLimited: self.RATE_LIMIT_RETRY_DELAY,
            GenerationTimeout: self.TIMEOUT_RETRY_DELAY,
            ProviderUnavailable: self.UNAVAILABLE_RETRY_DELAY,
        }

    def gateway_models(self) -> List[str]:
        """Comma-separated gateway model override, empty when unset."""
        return [m.strip() for m in self.GATEWAY_VIDEO_MODELS.split(",") if m.strip()]

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or ["*"]

    def as_dict(self) -> Dict[str, Any]:
        """Get all settings as a dictionary, with credentials masked.

        Returns:
            Dictionary of all settings.
        """
        data = {}
        for key, value in self.__dict__.items():
            if key.startswith("_") or not key.isupper():
                continue
            if key.endswith("_KEY") and value:
                value = f"{value[:4]}***"
            data[key] = value
        return data

    def validate(self) -> bool:
        """Validate tunables are in range.

        Returns:
            True if all settings are usable, False otherwise.
        """
        positive = [
            "MAX_ATTEMPTS",
            "POLLINATIONS_CONCURRENCY",
            "POLL_MAX_ATTEMPTS",
            "MAX_IMAGE_COUNT",
        ]
        for setting in positive:
            if getattr(self, setting, 0) < 1:
                return False
        non_negative = [
            "RATE_LIMIT_RETRY_DELAY",
            "TIMEOUT_RETRY_DELAY",
            "UNAVAILABLE_RETRY_DELAY",
            "POLL_INTERVAL",
            "BATCH_TIMEOUT",
        ]
        for setting in non_negative:
            if getattr(self, setting, -1) < 0:
                return False
        return 1 <= self.DEFAULT_IMAGE_COUNT <= self.MAX_IMAGE_COUNT
