"""Bucket a file batch into videos and per-directory sidecar candidates."""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from .config import IngestConfig
from .log import log
from .models import DirectoryGroup, FileEntry

VIDEO = "video"
IMAGE = "image"
SUBTITLE = "subtitle"
METADATA = "metadata"
OTHER = "other"


def classify_entry(entry: FileEntry, config: IngestConfig) -> str:
    # Extension/MIME only; never look at file contents
    if entry.is_image:
        return IMAGE
    ext = entry.extension.lower()
    if ext in config.video_exts:
        return VIDEO
    if ext in config.subtitle_exts:
        return SUBTITLE
    if ext in config.metadata_exts:
        return METADATA
    return OTHER


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    videos: Tuple[FileEntry, ...]
    groups: DirectoryGroup
    metadata: Dict[str, Tuple[FileEntry, ...]]
    dropped: Tuple[FileEntry, ...] = ()

    def metadata_in(self, directory: str) -> Tuple[FileEntry, ...]:
        return self.metadata.get(directory, ())


def classify_batch(entries: Iterable[FileEntry], config: IngestConfig) -> Classification:
    videos: List[FileEntry] = []
    dropped: List[FileEntry] = []
    images: Dict[str, List[FileEntry]] = {}
    subs: Dict[str, List[FileEntry]] = {}
    meta: Dict[str, List[FileEntry]] = {}
    for entry in entries:
        bucket = classify_entry(entry, config)
        if bucket == VIDEO:
            videos.append(entry)
        elif bucket == IMAGE:
            images.setdefault(entry.directory, []).append(entry)
        elif bucket == SUBTITLE:
            subs.setdefault(entry.directory, []).append(entry)
        elif bucket == METADATA:
            meta.setdefault(entry.directory, []).append(entry)
        else:
            dropped.append(entry)
    groups = DirectoryGroup(
        images={d: tuple(v) for d, v in images.items()},
        subtitles={d: tuple(v) for d, v in subs.items()},
    )
    log(
        "scan",
        f"classify videos={len(videos)} image_dirs={len(images)} subtitle_dirs={len(subs)} "
        f"metadata_dirs={len(meta)} dropped={len(dropped)}",
    )
    return Classification(
        videos=tuple(videos),
        groups=groups,
        metadata={d: tuple(v) for d, v in meta.items()},
        dropped=tuple(dropped),
    )
