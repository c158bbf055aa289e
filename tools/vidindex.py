#!/usr/bin/env python3
"""
CLI to build and maintain a library index without running the server.

Commands:
- scan:   ingest a folder into an index file (creating the collection)
- relink: check which indexed videos can be found again under a folder
- vtt:    print a subtitle sidecar converted to WebVTT
- nfo:    print the NFO document for one indexed video

Usage:
    python vidindex.py scan /path/to/Movies --index library.json [--collection Movies]
    python vidindex.py relink library.json /path/to/Movies [--subtitles]
    python vidindex.py vtt movie.en.ass
    python vidindex.py nfo library.json <video-id>

Notes:
- Respects the same environment variables as the server (VIDEO_EXTS,
  THUMBNAIL_TIMEOUT, THUMBNAILS_DISABLE, ...) and VIDMANAGER_CONFIG.
- Thumbnail generation needs ffmpeg/ffprobe on PATH; without them videos
  simply get no generated thumbnail.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional


def _ensure_project_on_path() -> None:
    """
    Make ``vidmanager`` importable when running this file as a script, where
    sys.path[0] is the tools directory instead of the project root.
    """
    root = Path(__file__).resolve().parents[1]
    sroot = str(root)
    if sroot not in sys.path:
        sys.path.insert(0, sroot)


_ensure_project_on_path()

from vidmanager.config import load_config  # noqa: E402
from vidmanager.index import IndexFormatError, Library, export_index, load_index  # noqa: E402
from vidmanager.ingest import Ingestor  # noqa: E402
from vidmanager.nfo import generate_nfo  # noqa: E402
from vidmanager.relink import relink  # noqa: E402
from vidmanager.scan import scan_folder  # noqa: E402
from vidmanager.subtitles import read_subtitle, to_vtt  # noqa: E402


def _open_library(index_path: Path) -> Library:
    if index_path.exists():
        return Library(load_index(index_path))
    return Library()


def cmd_scan(args: argparse.Namespace) -> int:
    root = Path(args.root).expanduser().resolve()
    index_path = Path(args.index).expanduser()
    cfg = load_config(args.config)
    if args.no_thumbs:
        cfg = cfg.model_copy(update={"generate_thumbnails": False})
    if args.concurrency:
        cfg = cfg.model_copy(update={"concurrency": max(1, int(args.concurrency))})
    lib = _open_library(index_path)
    name = args.collection or root.name
    col = next((c for c in lib.collections if c.name == name), None) or lib.add_collection(name)
    entries = scan_folder(root)
    result = Ingestor(cfg).ingest(entries, col.id)
    lib.add_videos(result.videos)
    export_index(lib.snapshot(), index_path)
    print(f"[scan] collection={col.name} files={len(entries)} added={len(result.videos)} "
          f"failed={len(result.failed)} thumbs={result.generated} index={index_path}")
    for rel in result.failed:
        print(f"[scan] failed {rel}", file=sys.stderr)
    return 0 if not result.failed else 1


def cmd_relink(args: argparse.Namespace) -> int:
    lib = Library(load_index(Path(args.index).expanduser()))
    entries = scan_folder(Path(args.root).expanduser().resolve())
    result = relink(lib.videos, entries, subtitles=args.subtitles)
    print(f"[relink] total={len(result.videos)} exact={result.matched_exact} "
          f"fallback={result.matched_fallback} unresolved={result.unresolved}")
    for v in result.videos:
        if v.handle is None:
            print(f"[relink] missing {v.relative_path}")
    return 0 if result.unresolved == 0 else 2


def cmd_vtt(args: argparse.Namespace) -> int:
    p = Path(args.file).expanduser()
    sys.stdout.write(to_vtt(p.name, read_subtitle(p)))
    return 0


def cmd_nfo(args: argparse.Namespace) -> int:
    lib = Library(load_index(Path(args.index).expanduser()))
    v = lib.get_video(args.video_id)
    if v is None:
        print(f"[nfo] no video with id {args.video_id}", file=sys.stderr)
        return 1
    sys.stdout.write(generate_nfo(v.metadata))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Build and relink a video library index")
    ap.add_argument("--config", default=os.environ.get("VIDMANAGER_CONFIG"), help="JSON config file overriding env defaults")
    ap.add_argument("--verbose", action="store_true", help="Show engine log lines")
    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("scan", help="Ingest a folder into an index")
    sp.add_argument("root", help="Folder to ingest")
    sp.add_argument("--index", default="vidmanager_index.json", help="Index file to create or extend")
    sp.add_argument("--collection", default=None, help="Collection name (default: folder name)")
    sp.add_argument("--no-thumbs", action="store_true", help="Skip frame-grab thumbnails")
    sp.add_argument("--concurrency", type=int, default=0, help="Parallel videos (default: config)")
    sp.set_defaults(func=cmd_scan)

    rp = sub.add_parser("relink", help="Match indexed videos against a folder")
    rp.add_argument("index", help="Index file")
    rp.add_argument("root", help="Folder granting access to the files")
    rp.add_argument("--subtitles", action="store_true", help="Also relink subtitle tracks with stored paths")
    rp.set_defaults(func=cmd_relink)

    vp = sub.add_parser("vtt", help="Convert a subtitle sidecar to WebVTT")
    vp.add_argument("file", help="Subtitle file (.srt, .ass, .ssa, .vtt)")
    vp.set_defaults(func=cmd_vtt)

    np_ = sub.add_parser("nfo", help="Print the NFO for an indexed video")
    np_.add_argument("index", help="Index file")
    np_.add_argument("video_id", help="Video id")
    np_.set_defaults(func=cmd_nfo)
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")
    try:
        return int(args.func(args))
    except IndexFormatError as e:
        print(f"[{args.command}] invalid index: {e}", file=sys.stderr)
        return 1
    except (NotADirectoryError, FileNotFoundError) as e:
        print(f"[{args.command}] not found: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
