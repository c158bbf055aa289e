"""Re-bind live file handles to a library loaded from a saved index."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .log import log
from .models import FileEntry, MediaAsset, SubtitleTrack

EXACT = "exact"
FALLBACK = "fallback"


class RelinkResult(NamedTuple):
    videos: List[MediaAsset]
    unresolved: int
    matched_exact: int
    matched_fallback: int


def build_lookup(entries: Iterable[FileEntry]) -> Dict[str, Path]:
    lookup: Dict[str, Path] = {}
    for entry in entries:
        if entry.handle is None:
            continue
        lookup.setdefault(entry.relative_path or entry.name, entry.handle)
    return lookup


def match_path(relative_path: str, lookup: Dict[str, Path]) -> Tuple[Optional[Path], Optional[str]]:
    """
    Exact path first; otherwise the first path (in batch order) whose last
    segment is the stored file name. With duplicate file names in different
    folders the earliest one wins.
    """
    handle = lookup.get(relative_path)
    if handle is not None:
        return handle, EXACT
    file_name = relative_path.split("/")[-1]
    if not file_name:
        return None, None
    suffix = "/" + file_name
    for path, candidate in lookup.items():
        if path == file_name or path.endswith(suffix):
            return candidate, FALLBACK
    return None, None


def _relink_tracks(tracks: List[SubtitleTrack], lookup: Dict[str, Path]) -> List[SubtitleTrack]:
    out = []
    for track in tracks:
        handle = None
        if track.relative_path:
            handle, _ = match_path(track.relative_path, lookup)
        out.append(track.model_copy(update={"handle": handle}))
    return out


def relink(videos: Iterable[MediaAsset], entries: Iterable[FileEntry], *, subtitles: bool = False) -> RelinkResult:
    """
    Return copies of ``videos`` with handles restored from a fresh grant.

    Metadata, tags and thumbnails are never touched. Subtitle handles are
    only restored when ``subtitles`` is set and the track has a stored path.
    Videos with no match come back without a handle, whatever they held
    before. The output keeps the input order.
    """
    lookup = build_lookup(entries)
    result: List[MediaAsset] = []
    unresolved = exact = fallback = 0
    for video in videos:
        handle, how = match_path(video.relative_path, lookup)
        update: dict = {}
        if handle is not None:
            update["handle"] = handle
            if how == EXACT:
                exact += 1
            else:
                fallback += 1
        else:
            update["handle"] = None
            unresolved += 1
        if subtitles and video.subtitles:
            update["subtitles"] = _relink_tracks(video.subtitles, lookup)
        result.append(video.model_copy(update=update))
    log("relink", f"relink videos={len(result)} exact={exact} fallback={fallback} unresolved={unresolved} lookup={len(lookup)}")
    return RelinkResult(result, unresolved, exact, fallback)
