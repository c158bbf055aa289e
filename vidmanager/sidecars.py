"""
Pick the sidecar files that belong to one video.

Thumbnail selection is an ordered list of strategies; the first one that
returns an image wins and anything after it is never consulted:

1. an image named exactly like one of ``config.priority_names``
   (``poster.jpg``, ``cover.png``, ...)
2. an image whose name contains ``config.poster_token``
3. an image named like the video itself (``movie.jpg`` for ``movie.mkv``)

When none match the caller falls back to generating a frame grab.
Candidates only ever come from the video's own directory.
"""
from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .config import IngestConfig
from .log import log
from .models import DirectoryGroup, FileEntry, SubtitleTrack, VideoMetadata, split_name

ThumbnailStrategy = Callable[[Sequence[FileEntry], str, IngestConfig], Optional[FileEntry]]


def match_priority_name(images: Sequence[FileEntry], base_name: str, config: IngestConfig) -> Optional[FileEntry]:
    names = set(config.priority_names)
    return next((img for img in images if img.stripped_name in names), None)


def match_poster_token(images: Sequence[FileEntry], base_name: str, config: IngestConfig) -> Optional[FileEntry]:
    token = config.poster_token
    if not token:
        return None
    return next((img for img in images if token in img.stripped_name), None)


def match_exact_name(images: Sequence[FileEntry], base_name: str, config: IngestConfig) -> Optional[FileEntry]:
    return next((img for img in images if img.stripped_name == base_name), None)


THUMBNAIL_STRATEGIES: Tuple[ThumbnailStrategy, ...] = (
    match_priority_name,
    match_poster_token,
    match_exact_name,
)


def infer_language(file_name: str, fallback: str) -> str:
    """Guess a subtitle language from ``name.xx.ext``; anything else is ``fallback``."""
    parts = file_name.lower().split(".")
    if len(parts) > 2:
        candidate = parts[-2]
        if len(candidate) == 2:
            return candidate
    return fallback


def default_metadata(video: FileEntry) -> VideoMetadata:
    return VideoMetadata(title=split_name(video.name)[0], plot="", tags=[])


def merge_metadata(base: VideoMetadata, title: Optional[str] = None, plot: Optional[str] = None,
                   tags: Optional[Iterable[str]] = None) -> VideoMetadata:
    """Overlay parsed sidecar fields on ``base``; each field is replaced whole or left alone."""
    update: dict = {}
    if title is not None:
        update["title"] = title
    if plot is not None:
        update["plot"] = plot
    if tags is not None:
        update["tags"] = list(tags)
    if not update:
        return base
    return VideoMetadata(**{**base.model_dump(), **update})


class SidecarResolver:
    def __init__(self, config: IngestConfig, strategies: Optional[Sequence[ThumbnailStrategy]] = None):
        self.config = config
        self.thumbnail_strategies: Tuple[ThumbnailStrategy, ...] = tuple(strategies or THUMBNAIL_STRATEGIES)

    def select_thumbnail(self, video: FileEntry, groups: DirectoryGroup) -> Optional[FileEntry]:
        images = groups.images_in(video.directory)
        if not images:
            return None
        base = video.stripped_name
        for strategy in self.thumbnail_strategies:
            found = strategy(images, base, self.config)
            if found is not None:
                log("sidecar", f"thumbnail match video={video.relative_path} image={found.name} via={strategy.__name__}")
                return found
        return None

    def select_subtitles(self, video: FileEntry, groups: DirectoryGroup) -> List[FileEntry]:
        base = video.stripped_name
        return [s for s in groups.subtitles_in(video.directory) if s.stripped_name.startswith(base)]

    def subtitle_tracks(self, video: FileEntry, groups: DirectoryGroup) -> List[SubtitleTrack]:
        tracks = []
        for sub in self.select_subtitles(video, groups):
            tracks.append(SubtitleTrack(
                label=sub.name,
                language=infer_language(sub.name, self.config.fallback_language),
                relative_path=sub.relative_path,
                handle=sub.handle,
            ))
        return tracks

    def find_metadata_sidecar(self, video: FileEntry, candidates: Sequence[FileEntry]) -> Optional[FileEntry]:
        directory = video.directory.lower()
        # "Movie.nfo" beats "Movie Sequel.nfo" for Movie.mkv
        exact = next((m for m in candidates
                      if m.stripped_name == video.stripped_name and m.directory.lower() == directory), None)
        if exact is not None:
            return exact
        prefix = f"{directory}/{video.stripped_name}" if directory else video.stripped_name
        return next((m for m in candidates if m.relative_path.lower().startswith(prefix)), None)
