import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_str(name: str, default: str):
    return lambda: os.getenv(name, default)


def _env_int(name: str, default: int):
    return lambda: int(os.getenv(name, str(default)))


def _env_float(name: str, default: float):
    return lambda: float(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool):
    return lambda: os.getenv(name, "true" if default else "false").lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Gateway settings loaded from environment variables.

    Every field reads the environment when the instance is created, so a
    fresh ``Settings()`` always reflects the current configuration.
    """

    # Server
    host: str = field(default_factory=_env_str("GATEX_HOST", "127.0.0.1"))
    port: int = field(default_factory=_env_int("GATEX_PORT", 0))  # 0 = auto-select
    log_level: str = field(default_factory=_env_str("GATEX_LOG_LEVEL", "INFO"))

    # Requests
    timeout: float = field(default_factory=_env_float("GATEX_TIMEOUT", 300))  # seconds
    max_retries: int = field(default_factory=_env_int("GATEX_MAX_RETRIES", 3))
    max_concurrent_requests: int = field(default_factory=_env_int("GATEX_MAX_CONCURRENT", 5))

    # Response cache
    cache_enabled: bool = field(default_factory=_env_bool("GATEX_CACHE_ENABLED", True))
    cache_max_age: float = field(default_factory=_env_float("GATEX_CACHE_MAX_AGE", 300))  # seconds
    cache_max_size: int = field(
        default_factory=_env_int("GATEX_CACHE_MAX_SIZE", 50 * 1024 * 1024)
    )  # bytes

    # Models
    model_cache_ttl: float = field(default_factory=_env_float("GATEX_MODEL_CACHE_TTL", 30))

    # Ollama
    ollama_base_url: str = field(
        default_factory=_env_str("OLLAMA_BASE_URL", "http://localhost:11434")
    )

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.timeout <= 0:
            raise ValueError("GATEX_TIMEOUT must be greater than 0")

        if self.max_retries < 0:
            raise ValueError("GATEX_MAX_RETRIES must not be negative")

        if self.max_concurrent_requests < 1:
            raise ValueError("GATEX_MAX_CONCURRENT must be at least 1")

        if self.cache_max_age <= 0:
            raise ValueError("GATEX_CACHE_MAX_AGE must be greater than 0")

        if not 0 <= self.port <= 65535:
            raise ValueError(f"GATEX_PORT must be between 0 and 65535, got {self.port}")


def get_settings() -> Settings:
    """Build a settings instance from the current environment.

    Not cached: the gateway calls this once per request so configuration
    changes apply to the next request.
    """
    return Settings()
