"""Environment-driven settings for the proxy worker."""
from dataclasses import dataclass
from functools import lru_cache
import os
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_UPSTREAM_URL = "https://api.deepseek.com/chat/completions"
DEFAULT_SUPPORTED_MODELS = ("deepseek-chat", "deepseek-reasoner")


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    upstream_api_key: Optional[str] = None
    proxy_key: Optional[str] = None
    upstream_url: str = DEFAULT_UPSTREAM_URL
    max_body_size: int = 1024 * 1024
    request_timeout: float = 30.0
    validate_request_body: bool = False
    default_model: str = "deepseek-chat"
    supported_models: Tuple[str, ...] = DEFAULT_SUPPORTED_MODELS
    service_name: str = "AI Proxy Worker"
    user_agent: str = "AI-Proxy-Worker/1.0"
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    port: int = 8787


@lru_cache
def get_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        upstream_api_key=_env_optional("DEEPSEEK_API_KEY"),
        proxy_key=_env_optional("PROXY_KEY"),
        upstream_url=os.getenv("UPSTREAM_API_URL", DEFAULT_UPSTREAM_URL),
        max_body_size=int(os.getenv("MAX_BODY_SIZE", str(1024 * 1024))),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        validate_request_body=_env_flag("VALIDATE_REQUEST_BODY"),
        default_model=os.getenv("DEFAULT_MODEL", "deepseek-chat"),
        supported_models=_env_list("SUPPORTED_MODELS", DEFAULT_SUPPORTED_MODELS),
        user_agent=os.getenv("UPSTREAM_USER_AGENT", "AI-Proxy-Worker/1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=_env_optional("LOG_DIR"),
        port=int(os.getenv("PORT", "8787")),
    )
