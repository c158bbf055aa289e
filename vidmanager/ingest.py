"""One ingestion pass: file batch in, finished library entries out."""
from __future__ import annotations

import concurrent.futures as cf
import traceback
from typing import Iterable, List, NamedTuple, Optional

from .classify import Classification, classify_batch
from .config import IngestConfig
from .log import log, warn
from .models import FileEntry, MediaAsset
from .nfo import read_nfo
from .sidecars import SidecarResolver, default_metadata, merge_metadata
from .thumbnails import ThumbnailGenerator


class IngestResult(NamedTuple):
    videos: List[MediaAsset]
    failed: List[str]
    generated: int


class Ingestor:
    """
    Resolve every video of a batch against its directory's sidecars.

    Videos are independent of each other, so they are resolved on a thread
    pool; the shared :class:`Classification` is read-only. A video that
    raises is logged and left out of the result without affecting the rest.
    """

    def __init__(self, config: IngestConfig, thumbnailer: Optional[ThumbnailGenerator] = None,
                 resolver: Optional[SidecarResolver] = None):
        self.config = config
        self.resolver = resolver or SidecarResolver(config)
        self.thumbnailer = thumbnailer or ThumbnailGenerator(config)

    def resolve(self, video: FileEntry, classification: Classification, collection_id: str) -> tuple[MediaAsset, bool]:
        generated = False
        thumb_url: Optional[str] = None
        image = self.resolver.select_thumbnail(video, classification.groups)
        if image is not None and image.handle is not None:
            thumb_url = image.handle.resolve().as_uri()
        elif self.config.generate_thumbnails:
            thumb_url = self.thumbnailer.generate(video)
            generated = thumb_url is not None

        metadata = default_metadata(video)
        sidecar = self.resolver.find_metadata_sidecar(video, classification.metadata_in(video.directory))
        if sidecar is not None and sidecar.handle is not None:
            fields = read_nfo(sidecar.handle)
            metadata = merge_metadata(metadata, fields.title, fields.plot, fields.tags)

        asset = MediaAsset(
            collection_id=collection_id,
            file_name=video.name,
            relative_path=video.relative_path,
            handle=video.handle,
            thumbnail_url=thumb_url,
            metadata=metadata,
            size=video.size,
            subtitles=self.resolver.subtitle_tracks(video, classification.groups),
        )
        return asset, generated

    def ingest(self, entries: Iterable[FileEntry], collection_id: str) -> IngestResult:
        classification = classify_batch(list(entries), self.config)
        videos = classification.videos
        results: List[Optional[MediaAsset]] = [None] * len(videos)
        failed: List[str] = []
        generated = 0
        with cf.ThreadPoolExecutor(max_workers=self.config.concurrency) as ex:
            futures = {
                ex.submit(self.resolve, video, classification, collection_id): i
                for i, video in enumerate(videos)
            }
            for fut in cf.as_completed(futures):
                i = futures[fut]
                try:
                    asset, made = fut.result()
                except Exception as e:  # noqa: BLE001
                    failed.append(videos[i].relative_path)
                    warn("ingest", f"ingest fail path={videos[i].relative_path} err={e}\n"
                         + "".join(traceback.format_exception(e))[:1500])
                    continue
                results[i] = asset
                generated += int(made)
        done = [a for a in results if a is not None]
        log("ingest", f"ingest done collection={collection_id} videos={len(done)} failed={len(failed)} generated_thumbs={generated}")
        return IngestResult(done, failed, generated)
