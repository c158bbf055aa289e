"""In-memory library plus the flat JSON snapshot it is saved as."""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from .log import log
from .models import Collection, LibraryIndex, MediaAsset, VideoMetadata

_HANDLE_KEYS = ("handle", "fileHandle", "file_handle")


class IndexFormatError(ValueError):
    pass


def _strip_handles(record: Any) -> Any:
    if not isinstance(record, dict):
        return record
    clean = {k: v for k, v in record.items() if k not in _HANDLE_KEYS}
    subs = clean.get("subtitles")
    if isinstance(subs, list):
        clean["subtitles"] = [_strip_handles(s) for s in subs]
    return clean


def _migrate_legacy(data: Dict[str, Any]) -> Dict[str, Any]:
    # Indexes written before collections were introduced
    videos = []
    for v in data.get("videos") or []:
        if isinstance(v, dict):
            v = {**v, "collectionId": v.get("collectionId") or v.get("containerId"), "subtitles": []}
            v.pop("containerId", None)
        videos.append(v)
    return {"collections": data.get("containers") or [], "videos": videos}


def parse_index(data: Any) -> LibraryIndex:
    """Validate a snapshot document. Every handle in the result is absent."""
    if not isinstance(data, dict):
        raise IndexFormatError("index must be a JSON object")
    if "collections" not in data and "containers" in data:
        data = _migrate_legacy(data)
        log("index", "index legacy containers migrated")
    if not isinstance(data.get("collections"), list) or not isinstance(data.get("videos"), list):
        raise IndexFormatError("index needs 'collections' and 'videos' lists")
    doc = {
        "collections": data["collections"],
        "videos": [_strip_handles(v) for v in data["videos"]],
    }
    try:
        return LibraryIndex.model_validate(doc)
    except ValidationError as e:
        raise IndexFormatError(f"invalid index: {e}") from e


def dump_index(index: LibraryIndex) -> Dict[str, Any]:
    return index.model_dump(mode="json", by_alias=True)


def _json_dump_atomic(path: Path, data: dict) -> None:
    """
    Write JSON atomically to avoid partial files.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)


def export_index(index: LibraryIndex, path: Union[str, Path]) -> Path:
    p = Path(path)
    _json_dump_atomic(p, dump_index(index))
    log("index", f"index saved path={p} collections={len(index.collections)} videos={len(index.videos)}")
    return p


def load_index(path: Union[str, Path]) -> LibraryIndex:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise IndexFormatError(f"index is not valid JSON: {e}") from e
    index = parse_index(data)
    log("index", f"index loaded path={p} collections={len(index.collections)} videos={len(index.videos)}")
    return index


class Library:
    """
    Collections and videos of one session.

    Mutations go through a lock so API handlers running on the threadpool
    see consistent lists; readers get copies.
    """

    def __init__(self, index: Optional[LibraryIndex] = None):
        index = index or LibraryIndex()
        self._collections: List[Collection] = list(index.collections)
        self._videos: List[MediaAsset] = list(index.videos)
        self._lock = threading.Lock()

    @property
    def collections(self) -> List[Collection]:
        with self._lock:
            return list(self._collections)

    @property
    def videos(self) -> List[MediaAsset]:
        with self._lock:
            return list(self._videos)

    def snapshot(self) -> LibraryIndex:
        with self._lock:
            return LibraryIndex(collections=list(self._collections), videos=list(self._videos))

    def replace(self, index: LibraryIndex) -> None:
        with self._lock:
            self._collections = list(index.collections)
            self._videos = list(index.videos)

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        with self._lock:
            return next((c for c in self._collections if c.id == collection_id), None)

    def add_collection(self, name: str) -> Collection:
        col = Collection(name=name)
        with self._lock:
            self._collections.append(col)
        return col

    def remove_collection(self, collection_id: str) -> int:
        """Drop a collection and its videos; returns how many videos went with it."""
        with self._lock:
            before = len(self._videos)
            self._collections = [c for c in self._collections if c.id != collection_id]
            self._videos = [v for v in self._videos if v.collection_id != collection_id]
            return before - len(self._videos)

    def add_videos(self, videos: Sequence[MediaAsset]) -> None:
        with self._lock:
            self._videos.extend(videos)
            touched = {v.collection_id for v in videos}
            updated = []
            for col in self._collections:
                if col.id in touched and not col.thumbnail_url:
                    first = next((v for v in videos if v.collection_id == col.id and v.thumbnail_url), None)
                    if first is not None:
                        col = col.model_copy(update={"thumbnail_url": first.thumbnail_url})
                updated.append(col)
            self._collections = updated

    def get_video(self, video_id: str) -> Optional[MediaAsset]:
        with self._lock:
            return next((v for v in self._videos if v.id == video_id), None)

    def remove_video(self, video_id: str) -> bool:
        with self._lock:
            before = len(self._videos)
            self._videos = [v for v in self._videos if v.id != video_id]
            return len(self._videos) != before

    def update_metadata(self, video_id: str, **fields: Any) -> Optional[MediaAsset]:
        allowed = {k: v for k, v in fields.items() if k in ("title", "plot", "tags") and v is not None}
        with self._lock:
            for i, v in enumerate(self._videos):
                if v.id != video_id:
                    continue
                meta = VideoMetadata(**{**v.metadata.model_dump(), **allowed})
                self._videos[i] = v.model_copy(update={"metadata": meta})
                return self._videos[i]
        return None

    def set_videos(self, videos: Iterable[MediaAsset]) -> None:
        with self._lock:
            self._videos = list(videos)

    def videos_in(self, collection_id: Optional[str] = None, tags: Optional[Iterable[str]] = None) -> List[MediaAsset]:
        wanted = [t for t in (tags or []) if t]
        out = []
        for v in self.videos:
            if collection_id and v.collection_id != collection_id:
                continue
            if wanted and not all(t in v.metadata.tags for t in wanted):
                continue
            out.append(v)
        return out

    def tags(self, collection_id: Optional[str] = None) -> List[str]:
        found = set()
        for v in self.videos_in(collection_id):
            found.update(v.metadata.tags)
        return sorted(found)
