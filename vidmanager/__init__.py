"""Ingestion, sidecar matching and relinking for a personal video library."""
from __future__ import annotations

from .classify import Classification, classify_batch
from .config import IngestConfig, load_config
from .index import IndexFormatError, Library, export_index, load_index, parse_index
from .ingest import IngestResult, Ingestor
from .models import Collection, DirectoryGroup, FileEntry, LibraryIndex, MediaAsset, SubtitleTrack, VideoMetadata
from .nfo import generate_nfo, parse_nfo
from .relink import RelinkResult, relink
from .scan import scan_folder
from .sidecars import SidecarResolver
from .subtitles import ass_to_vtt, srt_to_vtt, to_vtt
from .thumbnails import ThumbnailGenerator

__all__ = [
    "Classification",
    "classify_batch",
    "IngestConfig",
    "load_config",
    "IndexFormatError",
    "Library",
    "export_index",
    "load_index",
    "parse_index",
    "IngestResult",
    "Ingestor",
    "Collection",
    "DirectoryGroup",
    "FileEntry",
    "LibraryIndex",
    "MediaAsset",
    "SubtitleTrack",
    "VideoMetadata",
    "generate_nfo",
    "parse_nfo",
    "RelinkResult",
    "relink",
    "scan_folder",
    "SidecarResolver",
    "ass_to_vtt",
    "srt_to_vtt",
    "to_vtt",
    "ThumbnailGenerator",
]
