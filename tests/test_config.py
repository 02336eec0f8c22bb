import os
from pathlib import Path

import pytest

from cv_intake import config as intake_config

REQUIRED = {
    "CV_INTAKE_UPLOAD_ENDPOINT_URL": "https://ingress.test/v1/uploads",
    "CV_INTAKE_INGRESS_URL": "https://ingress.test",
}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("CV_INTAKE_"):
            monkeypatch.delenv(name)


def test_defaults(monkeypatch):
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)

    cfg = intake_config.load_config()

    assert cfg.upload_endpoint_url == REQUIRED["CV_INTAKE_UPLOAD_ENDPOINT_URL"]
    assert cfg.max_file_bytes == 25 * 1024 * 1024
    assert cfg.poll_interval_seconds == 5.0
    assert cfg.burst_interval_seconds == 2.0
    assert cfg.camera_device == 0
    assert cfg.notifications_path == Path("~/.cv_intake/notifications.json")


def test_missing_required_variable(monkeypatch):
    monkeypatch.setenv("CV_INTAKE_INGRESS_URL", "https://ingress.test")
    with pytest.raises(ValueError, match="CV_INTAKE_UPLOAD_ENDPOINT_URL"):
        intake_config.load_config()


def test_invalid_integer_names_variable(monkeypatch):
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("CV_INTAKE_MAX_FILE_BYTES", "lots")
    with pytest.raises(ValueError, match="CV_INTAKE_MAX_FILE_BYTES"):
        intake_config.load_config()


def test_camera_device_accepts_index_or_path(monkeypatch):
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)

    monkeypatch.setenv("CV_INTAKE_CAMERA_DEVICE", "2")
    assert intake_config.load_config().camera_device == 2

    monkeypatch.setenv("CV_INTAKE_CAMERA_DEVICE", "/dev/video4")
    assert intake_config.load_config().camera_device == "/dev/video4"


def test_dotenv_in_working_directory_is_loaded(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text(
        "CV_INTAKE_UPLOAD_ENDPOINT_URL=https://from-dotenv.test/upload\n"
        "CV_INTAKE_INGRESS_URL=https://from-dotenv.test\n"
    )
    # Registered with monkeypatch so the values load_dotenv sets are undone afterwards.
    monkeypatch.setenv("CV_INTAKE_UPLOAD_ENDPOINT_URL", "")
    monkeypatch.setenv("CV_INTAKE_INGRESS_URL", "")
    monkeypatch.delenv("CV_INTAKE_UPLOAD_ENDPOINT_URL")
    monkeypatch.delenv("CV_INTAKE_INGRESS_URL")

    cfg = intake_config.load_config()

    assert cfg.ingress_url == "https://from-dotenv.test"
