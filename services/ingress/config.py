from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


_load_repo_env()


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number") from exc


MAILBOX_BACKENDS = ("memory", "redis")


@dataclass(frozen=True)
class IngressConfig:
    analysis_webhook_url: str | None = None
    max_upload_bytes: int = 10 * 1024 * 1024
    webhook_timeout_seconds: float = 30.0
    mailbox_backend: str = "memory"
    mailbox_capacity: int = 100
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_mailbox_key: str = "ingress:notifications"
    airtable_api_key: str | None = None
    airtable_base_id: str | None = None
    airtable_table_name: str | None = None
    airtable_api_url: str = "https://api.airtable.com/v0"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def airtable_configured(self) -> bool:
        return bool(
            self.airtable_api_key and self.airtable_base_id and self.airtable_table_name
        )


def load_config() -> IngressConfig:
    backend = (_optional_env("INGRESS_MAILBOX_BACKEND") or "memory").lower()
    if backend not in MAILBOX_BACKENDS:
        raise ValueError(
            "Environment variable INGRESS_MAILBOX_BACKEND must be one of "
            + ", ".join(MAILBOX_BACKENDS)
        )
    return IngressConfig(
        analysis_webhook_url=_optional_env("INGRESS_ANALYSIS_WEBHOOK_URL"),
        max_upload_bytes=_env_int("INGRESS_MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
        webhook_timeout_seconds=_env_float("INGRESS_WEBHOOK_TIMEOUT_SECONDS", 30.0),
        mailbox_backend=backend,
        mailbox_capacity=_env_int("INGRESS_MAILBOX_CAPACITY", 100),
        redis_host=os.getenv("INGRESS_REDIS_HOST", "localhost"),
        redis_port=_env_int("INGRESS_REDIS_PORT", 6379),
        redis_db=_env_int("INGRESS_REDIS_DB", 0),
        redis_mailbox_key=os.getenv("INGRESS_REDIS_MAILBOX_KEY", "ingress:notifications"),
        airtable_api_key=_optional_env("INGRESS_AIRTABLE_API_KEY"),
        airtable_base_id=_optional_env("INGRESS_AIRTABLE_BASE_ID"),
        airtable_table_name=_optional_env("INGRESS_AIRTABLE_TABLE_NAME"),
        airtable_api_url=os.getenv(
            "INGRESS_AIRTABLE_API_URL", "https://api.airtable.com/v0"
        ),
        log_level=os.getenv("INGRESS_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("INGRESS_HOST", "0.0.0.0"),
        port=_env_int("INGRESS_PORT", 8000),
    )
