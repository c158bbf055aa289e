"""Ingestion configuration.

Extension tables and thumbnail names used to be module constants; they are
now a model handed to the classifier, resolver and thumbnail generator so
tests can run with their own sets.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

DEFAULT_VIDEO_EXTS = (".mp4", ".mkv", ".ts", ".rmvb", ".avi", ".flv", ".webm")
DEFAULT_SUBTITLE_EXTS = (".srt", ".vtt", ".ass", ".ssa")
DEFAULT_METADATA_EXTS = (".nfo",)
DEFAULT_PRIORITY_NAMES = ("poster", "cover", "folder", "default")


def _env_int(name: str, default: int) -> int:
    try:
        v = os.environ.get(name)
        return int(v) if v is not None and str(v).strip() != "" else int(default)
    except ValueError:
        return int(default)


def _env_float(name: str, default: float) -> float:
    try:
        v = os.environ.get(name)
        return float(v) if v is not None and str(v).strip() != "" else float(default)
    except ValueError:
        return float(default)


def _env_on(name: str, default: bool = False) -> bool:
    v = os.environ.get(name)
    if v is None:
        return default
    return str(v).lower() in ("1", "true", "yes")


def _split_env(name: str) -> Optional[list[str]]:
    env = os.environ.get(name)
    if not env:
        return None
    parts = [p.strip() for p in env.split(",") if p.strip()]
    return parts or None


def normalize_exts(values: Any) -> Tuple[str, ...]:
    """Lower-case, dot-prefixed, de-duplicated extensions in given order."""
    if isinstance(values, str):
        values = values.split(",")
    out: list[str] = []
    for part in values or ():
        s = str(part).strip().lower()
        if not s:
            continue
        if not s.startswith("."):
            s = "." + s
        if s not in out:
            out.append(s)
    return tuple(out)


def default_state_dir() -> Path:
    base = os.environ.get("VIDMANAGER_STATE_DIR")
    if base:
        return Path(base).expanduser()
    return Path.home() / ".vidmanager"


class IngestConfig(BaseModel):
    video_exts: Tuple[str, ...] = DEFAULT_VIDEO_EXTS
    subtitle_exts: Tuple[str, ...] = DEFAULT_SUBTITLE_EXTS
    metadata_exts: Tuple[str, ...] = DEFAULT_METADATA_EXTS
    priority_names: Tuple[str, ...] = DEFAULT_PRIORITY_NAMES
    poster_token: str = "poster"
    fallback_language: str = "en"
    thumbnail_timeout: float = Field(5.0, gt=0)
    thumbnail_width: int = Field(320, gt=0)
    thumbnail_quality: int = Field(70, ge=1, le=95)
    thumbnail_dir: Optional[Path] = None
    concurrency: int = Field(4, ge=1, le=64)
    generate_thumbnails: bool = True

    @field_validator("video_exts", "subtitle_exts", "metadata_exts", mode="before")
    @classmethod
    def _exts(cls, v: Any) -> Tuple[str, ...]:
        return normalize_exts(v)

    @field_validator("priority_names", mode="before")
    @classmethod
    def _names(cls, v: Any) -> Tuple[str, ...]:
        if isinstance(v, str):
            v = v.split(",")
        return tuple(str(n).strip().lower() for n in v if str(n).strip())

    @field_validator("poster_token", "fallback_language")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()

    def resolved_thumbnail_dir(self) -> Path:
        return self.thumbnail_dir or (default_state_dir() / "thumbnails")

    @classmethod
    def from_env(cls, **overrides: Any) -> "IngestConfig":
        values: dict[str, Any] = {}
        for field, env in (
            ("video_exts", "VIDEO_EXTS"),
            ("subtitle_exts", "SUBTITLE_EXTS"),
            ("metadata_exts", "METADATA_EXTS"),
            ("priority_names", "THUMBNAIL_PRIORITY_NAMES"),
        ):
            parts = _split_env(env)
            if parts:
                values[field] = parts
        lang = os.environ.get("SUBTITLE_FALLBACK_LANG")
        if lang:
            values["fallback_language"] = lang
        values["thumbnail_timeout"] = _env_float("THUMBNAIL_TIMEOUT", 5.0)
        values["thumbnail_width"] = _env_int("THUMBNAIL_WIDTH", 320)
        values["thumbnail_quality"] = max(1, min(95, _env_int("THUMBNAIL_QUALITY", 70)))
        values["concurrency"] = max(1, min(64, _env_int("INGEST_CONCURRENCY", 4)))
        values["generate_thumbnails"] = not _env_on("THUMBNAILS_DISABLE")
        thumb_dir = os.environ.get("THUMBNAIL_DIR")
        if thumb_dir:
            values["thumbnail_dir"] = Path(thumb_dir).expanduser()
        values.update(overrides)
        return cls(**values)


def load_config(path: Union[str, Path, None] = None) -> IngestConfig:
    """Environment defaults overlaid with an optional JSON config file."""
    base = IngestConfig.from_env()
    if path is None:
        return base
    p = Path(path).expanduser()
    if not p.exists():
        return base
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"config must be a JSON object: {p}")
    merged = base.model_dump()
    merged.update(data)
    return IngestConfig(**merged)
