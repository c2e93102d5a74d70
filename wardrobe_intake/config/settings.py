"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

FOUNDER_USER_ID = "00000000-0000-0000-0000-000000000001"


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return default


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    environment: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./data/app.db"
    founder_user_id: str = FOUNDER_USER_ID

    supabase_url: str = ""
    supabase_service_role_key: str = ""

    qstash_url: str = "https://qstash.upstash.io"
    qstash_token: str = ""
    process_worker_url: str = ""
    queue_retries: int = 3
    queue_timeout_seconds: int = 300
    auto_process_on_create: bool = False

    signed_url_concurrency: int = 8
    internal_api_token: str = ""

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    vision_model: str = "gpt-4.1-mini"

    request_timeout: float = 30.0

    @property
    def queue_configured(self) -> bool:
        """Queue publishing needs both a token and a destination worker URL."""

        return bool(self.qstash_token and self.process_worker_url)

    @property
    def blob_store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


def _build_settings() -> Settings:
    _load_env_file()

    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/app.db"),
        founder_user_id=os.getenv("FOUNDER_USER_ID", FOUNDER_USER_ID),
        supabase_url=_first_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "SUPABASE_PROJECT_URL"),
        supabase_service_role_key=_first_env(
            "SUPABASE_SERVICE_ROLE_KEY",
            "SUPABASE_SERVICE_KEY",
            "SUPABASE_SERVICE_ROLE",
        ),
        qstash_url=os.getenv("QSTASH_URL", "https://qstash.upstash.io"),
        qstash_token=os.getenv("QSTASH_TOKEN", ""),
        process_worker_url=os.getenv("PROCESS_WORKER_URL", ""),
        queue_retries=int(os.getenv("QUEUE_RETRIES", "3")),
        queue_timeout_seconds=int(os.getenv("QUEUE_TIMEOUT_SECONDS", "300")),
        auto_process_on_create=_env_flag("AUTO_PROCESS_ON_CREATE"),
        signed_url_concurrency=int(os.getenv("SIGNED_URL_CONCURRENCY", "8")),
        internal_api_token=os.getenv("INTERNAL_API_TOKEN", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        vision_model=os.getenv("VISION_MODEL", "gpt-4.1-mini"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
