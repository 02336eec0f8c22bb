from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

MEGABYTE = 1024 * 1024


def _load_repo_env() -> None:
    """Load the nearest .env starting from the working directory upward."""
    current = Path.cwd().resolve()
    for candidate in [current, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or value == "":
        raise ValueError(f"Environment variable {name} is required")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number") from exc


def _env_device(name: str, default: int) -> int | str:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw) if raw.isdigit() else raw


@dataclass(frozen=True)
class IntakeConfig:
    upload_endpoint_url: str
    ingress_url: str
    max_file_bytes: int = 25 * MEGABYTE
    poll_interval_seconds: float = 5.0
    burst_interval_seconds: float = 2.0
    burst_linger_seconds: float = 30.0
    upload_timeout_seconds: float = 30.0
    notifications_path: Path = Path("~/.cv_intake/notifications.json")
    camera_device: int | str = 0
    camera_width: int = 1920
    camera_height: int = 1080
    capture_quality: float = 0.9
    decode_timeout_seconds: float = 10.0


def load_config() -> IntakeConfig:
    _load_repo_env()
    return IntakeConfig(
        upload_endpoint_url=_require_env("CV_INTAKE_UPLOAD_ENDPOINT_URL"),
        ingress_url=_require_env("CV_INTAKE_INGRESS_URL"),
        max_file_bytes=_env_int("CV_INTAKE_MAX_FILE_BYTES", 25 * MEGABYTE),
        poll_interval_seconds=_env_float("CV_INTAKE_POLL_INTERVAL_SECONDS", 5.0),
        burst_interval_seconds=_env_float("CV_INTAKE_BURST_INTERVAL_SECONDS", 2.0),
        burst_linger_seconds=_env_float("CV_INTAKE_BURST_LINGER_SECONDS", 30.0),
        upload_timeout_seconds=_env_float("CV_INTAKE_UPLOAD_TIMEOUT_SECONDS", 30.0),
        notifications_path=Path(
            os.getenv("CV_INTAKE_NOTIFICATIONS_PATH", "~/.cv_intake/notifications.json")
        ),
        camera_device=_env_device("CV_INTAKE_CAMERA_DEVICE", 0),
        camera_width=_env_int("CV_INTAKE_CAMERA_WIDTH", 1920),
        camera_height=_env_int("CV_INTAKE_CAMERA_HEIGHT", 1080),
        capture_quality=_env_float("CV_INTAKE_CAPTURE_QUALITY", 0.9),
        decode_timeout_seconds=_env_float("CV_INTAKE_DECODE_TIMEOUT_SECONDS", 10.0),
    )
