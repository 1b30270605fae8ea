import pytest

from modules.config import AlertConfig, AppConfig
from modules.posture.session import PostureSession
from modules.posture.storage import JsonStateStore


@pytest.fixture
def cfg() -> AppConfig:
	return AppConfig(alerts=AlertConfig(cooldown_seconds=10.0))


@pytest.fixture
def store(tmp_path) -> JsonStateStore:
	return JsonStateStore(tmp_path / "state.json")


@pytest.fixture
def session(cfg) -> PostureSession:
	return PostureSession(cfg=cfg)
