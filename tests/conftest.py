import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
for _p in (REPO_ROOT, REPO_ROOT / "tools"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from vidmanager.config import IngestConfig  # noqa: E402


@pytest.fixture()
def config(tmp_path):
    """Config with thumbnails written under tmp and frame grabs disabled."""
    return IngestConfig(thumbnail_dir=tmp_path / ".thumbs", generate_thumbnails=False, concurrency=2)


@pytest.fixture
def app_module(tmp_path, monkeypatch):
    media = tmp_path / "media"
    media.mkdir()
    monkeypatch.setenv("MEDIA_ROOT", str(media))
    monkeypatch.setenv("VIDMANAGER_STATE_DIR", str(tmp_path / ".state"))
    monkeypatch.setenv("THUMBNAILS_DISABLE", "1")
    monkeypatch.delenv("VIDMANAGER_CONFIG", raising=False)
    if "app" in sys.modules:
        module = importlib.reload(sys.modules["app"])
    else:
        module = importlib.import_module("app")
    module.STATE["root"] = media
    yield module


@pytest.fixture
def client(app_module):
    with TestClient(app_module.app) as test_client:
        yield test_client
