"""Library data model.

Live file handles (``handle``) are plain :class:`~pathlib.Path` objects that
are only meaningful inside the session that granted them. They are excluded
from every dump and forced back to ``None`` when an index is loaded; the
relink matcher is the only thing that sets them again.
"""
from __future__ import annotations

import mimetypes
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def split_name(name: str) -> Tuple[str, str]:
    """Return ``(name without extension, extension)``; extension keeps its dot."""
    idx = name.rfind(".")
    if idx <= 0:
        return name, ""
    return name[:idx], name[idx:]


def stripped_name(name: str) -> str:
    return split_name(name)[0].lower()


def parent_dir(relative_path: str) -> str:
    parts = relative_path.split("/")
    return "/".join(parts[:-1])


def unique_tags(tags: Any) -> List[str]:
    out: List[str] = []
    for t in tags or ():
        s = str(t)
        if s and s not in out:
            out.append(s)
    return out


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileEntry(_Model):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    relative_path: str
    extension: str = ""
    size: int = 0
    kind: str = ""
    handle: Optional[Path] = Field(default=None, exclude=True)

    @classmethod
    def create(cls, relative_path: str, *, size: int = 0, handle: Optional[Path] = None) -> "FileEntry":
        rel = relative_path.replace("\\", "/")
        name = rel.split("/")[-1]
        ext = split_name(name)[1].lower()
        mime = mimetypes.guess_type(name)[0] or ""
        kind = mime if mime.startswith("image/") else ext
        return cls(name=name, relative_path=rel, extension=ext, size=size, kind=kind, handle=handle)

    @classmethod
    def from_path(cls, path: Path, relative_path: str) -> "FileEntry":
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return cls.create(relative_path, size=size, handle=path)

    @property
    def directory(self) -> str:
        return parent_dir(self.relative_path)

    @property
    def stripped_name(self) -> str:
        return stripped_name(self.name)

    @property
    def is_image(self) -> bool:
        return self.kind.startswith("image/")


class DirectoryGroup(_Model):
    model_config = ConfigDict(frozen=True)

    images: Dict[str, Tuple[FileEntry, ...]] = Field(default_factory=dict)
    subtitles: Dict[str, Tuple[FileEntry, ...]] = Field(default_factory=dict)

    def images_in(self, directory: str) -> Tuple[FileEntry, ...]:
        return self.images.get(directory, ())

    def subtitles_in(self, directory: str) -> Tuple[FileEntry, ...]:
        return self.subtitles.get(directory, ())


class VideoMetadata(_Model):
    title: str = ""
    plot: str = ""
    tags: List[str] = Field(default_factory=list)
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _unique(cls, v: Any) -> List[str]:
        return unique_tags(v)


class SubtitleTrack(_Model):
    label: str
    language: str
    relative_path: Optional[str] = None
    handle: Optional[Path] = Field(default=None, exclude=True)


class MediaAsset(_Model):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    collection_id: str
    file_name: str
    relative_path: str
    handle: Optional[Path] = Field(default=None, exclude=True)
    thumbnail_url: Optional[str] = None
    metadata: VideoMetadata = Field(default_factory=VideoMetadata)
    size: int = 0
    subtitles: List[SubtitleTrack] = Field(default_factory=list)

    @property
    def playable(self) -> bool:
        return self.handle is not None


class Collection(_Model):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    thumbnail_url: Optional[str] = None


class LibraryIndex(_Model):
    collections: List[Collection] = Field(default_factory=list)
    videos: List[MediaAsset] = Field(default_factory=list)
