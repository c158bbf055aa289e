import json

import pytest
from pydantic import ValidationError

from vidmanager.config import IngestConfig, load_config, normalize_exts


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "VIDEO_EXTS", "SUBTITLE_EXTS", "METADATA_EXTS", "THUMBNAIL_PRIORITY_NAMES", "SUBTITLE_FALLBACK_LANG",
        "THUMBNAIL_TIMEOUT", "THUMBNAIL_WIDTH", "THUMBNAIL_QUALITY", "THUMBNAIL_DIR", "INGEST_CONCURRENCY",
        "THUMBNAILS_DISABLE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = IngestConfig.from_env()
    assert ".mkv" in cfg.video_exts and ".rmvb" in cfg.video_exts
    assert cfg.subtitle_exts == (".srt", ".vtt", ".ass", ".ssa")
    assert cfg.priority_names == ("poster", "cover", "folder", "default")
    assert cfg.thumbnail_timeout == 5.0
    assert cfg.fallback_language == "en"
    assert cfg.generate_thumbnails is True


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDEO_EXTS", "MP4, m4v ,.mov")
    monkeypatch.setenv("THUMBNAIL_PRIORITY_NAMES", "Folder,Poster")
    monkeypatch.setenv("SUBTITLE_FALLBACK_LANG", "DE")
    monkeypatch.setenv("THUMBNAIL_TIMEOUT", "2.5")
    monkeypatch.setenv("THUMBNAIL_QUALITY", "500")
    monkeypatch.setenv("INGEST_CONCURRENCY", "junk")
    monkeypatch.setenv("THUMBNAILS_DISABLE", "yes")
    monkeypatch.setenv("THUMBNAIL_DIR", str(tmp_path / "t"))
    cfg = IngestConfig.from_env()
    assert cfg.video_exts == (".mp4", ".m4v", ".mov")
    assert cfg.priority_names == ("folder", "poster")
    assert cfg.fallback_language == "de"
    assert cfg.thumbnail_timeout == 2.5
    assert cfg.thumbnail_quality == 95
    assert cfg.concurrency == 4
    assert cfg.generate_thumbnails is False
    assert cfg.resolved_thumbnail_dir() == tmp_path / "t"


def test_load_config_overlays_json(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"subtitle_exts": ["srt"], "thumbnail_width": 160}), encoding="utf-8")
    cfg = load_config(p)
    assert cfg.subtitle_exts == (".srt",)
    assert cfg.thumbnail_width == 160
    assert load_config(tmp_path / "missing.json") == IngestConfig.from_env()


def test_load_config_rejects_non_objects(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        IngestConfig(thumbnail_timeout=0)
    with pytest.raises(ValidationError):
        IngestConfig(concurrency=0)


def test_normalize_exts():
    assert normalize_exts("MKV,.mp4,,mkv") == (".mkv", ".mp4")
    assert normalize_exts(None) == ()
