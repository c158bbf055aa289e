from __future__ import annotations
import os
import sys
import mimetypes
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, Field

from fastapi import FastAPI, APIRouter, HTTPException, Query, Body, Request
from fastapi.responses import JSONResponse, FileResponse
from starlette.responses import Response

from vidmanager.config import IngestConfig, load_config
from vidmanager.index import IndexFormatError, Library, dump_index, export_index, load_index, parse_index
from vidmanager.ingest import Ingestor
from vidmanager.log import log as _log, warn as _warn
from vidmanager.models import MediaAsset, split_name
from vidmanager.nfo import generate_nfo
from vidmanager.relink import relink
from vidmanager.scan import scan_folder
from vidmanager.subtitles import track_to_vtt
from vidmanager.thumbnails import ffmpeg_available

# Global server state and library lock
STATE: Dict[str, Any] = {}
STATE["root"] = Path(os.environ.get("MEDIA_ROOT", ".")).expanduser().resolve()
STATE.setdefault("config", load_config(os.environ.get("VIDMANAGER_CONFIG")))
STATE.setdefault("library", Library())
_LIBRARY_LOCK = threading.Lock()


def _state_dir() -> Path:
    """
    Directory holding library.json and generated thumbnails.
    Defaults to VIDMANAGER_STATE_DIR, else <root>/.vidmanager.
    """
    base = os.environ.get("VIDMANAGER_STATE_DIR")
    d = Path(base).expanduser() if base else Path(STATE["root"]) / ".vidmanager"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _library_path() -> Path:
    return _state_dir() / "library.json"


def _effective_config() -> IngestConfig:
    cfg: IngestConfig = STATE["config"]
    if cfg.thumbnail_dir is None:
        cfg = cfg.model_copy(update={"thumbnail_dir": _state_dir() / "thumbnails"})
    return cfg


def _library() -> Library:
    return STATE["library"]


def _save_library() -> None:
    try:
        export_index(_library().snapshot(), _library_path())
    except OSError as e:
        _warn("index", f"[library] save failed path={_library_path()} err={e}")


def _load_library() -> None:
    """Load library.json if present. Handles stay absent until a relink."""
    p = _library_path()
    if not p.exists():
        STATE["library"] = Library()
        return
    try:
        STATE["library"] = Library(load_index(p))
    except (IndexFormatError, OSError) as e:
        _warn("index", f"[library] load failed path={p} err={e}")
        STATE["library"] = Library()


def api_success(data=None, message: str = "OK", status_code: int = 200):
    return JSONResponse({"status": "success", "message": message, "data": data}, status_code=status_code)


def raise_api_error(message: str, status_code: int = 400, data=None):
    raise HTTPException(status_code=status_code, detail={"status": "error", "message": message, "data": data})


def safe_join(root: Path, rel: str) -> Path:
    p = (root / rel).resolve()
    root = root.resolve()
    try:
        p.relative_to(root)
    except ValueError:
        raise_api_error("Invalid path", status_code=400)
    return p


def _video_dict(v: MediaAsset) -> dict:
    d = v.model_dump(mode="json", by_alias=True)
    d["playable"] = v.playable
    return d


def _require_video(video_id: str) -> MediaAsset:
    v = _library().get_video(video_id)
    if v is None:
        raise_api_error("video not found", status_code=404)
    return v


def _require_dir(path: str) -> Path:
    base = safe_join(STATE["root"], path) if path else Path(STATE["root"])
    if not base.exists() or not base.is_dir():
        raise_api_error("Not found", status_code=404)
    return base


@asynccontextmanager
async def lifespan(app_obj: FastAPI):  # type: ignore[override]
    # Startup
    _log("api", f"[startup] MEDIA_ROOT={STATE.get('root')}")
    _load_library()
    yield


app = FastAPI(title="VidManager", version="1.0", lifespan=lifespan)
api = APIRouter(prefix="/api")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict) and exc.detail.get("status") == "error":
        return JSONResponse(exc.detail, status_code=exc.status_code)
    return JSONResponse({"status": "error", "message": str(exc.detail)}, status_code=exc.status_code)


@app.get("/config")
def config_info():
    cfg = _effective_config()
    return {
        "root": str(STATE["root"]),
        "state_dir": str(_state_dir()),
        "ffmpeg": ffmpeg_available(),
        "ingest": cfg.model_dump(mode="json"),
    }


@api.get("/health")
def health():
    return {"ok": True, "root": str(STATE["root"]), "ffmpeg": ffmpeg_available()}


@api.post("/setroot")
def set_root(root: str = Query(...)):
    p = Path(root).expanduser()
    if not p.exists() or not p.is_dir():
        raise_api_error("Root not found", status_code=404)
    STATE["root"] = p.resolve()
    _load_library()
    return api_success({"root": str(STATE["root"])})


class CollectionCreate(BaseModel):  # type: ignore
    name: str = Field(..., min_length=1)


@api.get("/collections")
def list_collections():
    cols = [c.model_dump(mode="json", by_alias=True) for c in _library().collections]
    return api_success({"collections": cols, "total": len(cols)})


@api.post("/collections")
def create_collection(req: CollectionCreate):
    with _LIBRARY_LOCK:
        col = _library().add_collection(req.name.strip())
        _save_library()
    return api_success(col.model_dump(mode="json", by_alias=True), message="created")


@api.delete("/collections/{collection_id}")
def delete_collection(collection_id: str):
    if _library().get_collection(collection_id) is None:
        raise_api_error("collection not found", status_code=404)
    with _LIBRARY_LOCK:
        removed = _library().remove_collection(collection_id)
        _save_library()
    return api_success({"deleted": collection_id, "videos_removed": removed})


class IngestRequest(BaseModel):  # type: ignore
    collection_id: str
    path: str = ""


@api.post("/ingest")
def ingest_folder(req: IngestRequest):
    if _library().get_collection(req.collection_id) is None:
        raise_api_error("collection not found", status_code=404)
    base = _require_dir(req.path)
    entries = scan_folder(base)
    result = Ingestor(_effective_config()).ingest(entries, req.collection_id)
    with _LIBRARY_LOCK:
        _library().add_videos(result.videos)
        _save_library()
    _log("api", f"[ingest] path={base} files={len(entries)} added={len(result.videos)} failed={len(result.failed)}")
    return api_success({
        "added": len(result.videos),
        "failed": result.failed,
        "generated_thumbnails": result.generated,
        "videos": [_video_dict(v) for v in result.videos],
    })


@api.get("/videos")
def list_videos(collection_id: Optional[str] = Query(default=None), tags: Optional[str] = Query(default=None)):
    wanted = [t.strip() for t in tags.split(",")] if tags else []
    vids = _library().videos_in(collection_id, wanted)
    return api_success({
        "videos": [_video_dict(v) for v in vids],
        "total": len(vids),
        "unplayable": sum(1 for v in vids if not v.playable),
    })


@api.get("/tags")
def list_tags(collection_id: Optional[str] = Query(default=None)):
    return api_success({"tags": _library().tags(collection_id)})


class MetadataUpdate(BaseModel):  # type: ignore
    title: Optional[str] = None
    plot: Optional[str] = None
    tags: Optional[List[str]] = None


@api.patch("/videos/{video_id}/metadata")
def update_metadata(video_id: str, req: MetadataUpdate):
    _require_video(video_id)
    with _LIBRARY_LOCK:
        v = _library().update_metadata(video_id, **req.model_dump(exclude_unset=True))
        _save_library()
    return api_success(_video_dict(v))


@api.delete("/videos/{video_id}")
def delete_video(video_id: str):
    with _LIBRARY_LOCK:
        if not _library().remove_video(video_id):
            raise_api_error("video not found", status_code=404)
        _save_library()
    return api_success({"deleted": video_id})


class RelinkRequest(BaseModel):  # type: ignore
    path: str = ""
    subtitles: bool = False


@api.post("/relink")
def relink_library(req: RelinkRequest):
    base = _require_dir(req.path)
    entries = scan_folder(base)
    with _LIBRARY_LOCK:
        result = relink(_library().videos, entries, subtitles=req.subtitles)
        _library().set_videos(result.videos)
    return api_success({
        "total": len(result.videos),
        "exact": result.matched_exact,
        "fallback": result.matched_fallback,
        "unresolved": result.unresolved,
    }, message="Paths updated. Please verify playback.")


@api.get("/index/export")
def index_export():
    doc = dump_index(_library().snapshot())
    return JSONResponse(doc, headers={"Content-Disposition": 'attachment; filename="vidmanager_index.json"'})


@api.post("/index/import")
def index_import(payload: dict = Body(...)):
    try:
        index = parse_index(payload)
    except IndexFormatError as e:
        raise_api_error(str(e), status_code=400)
    with _LIBRARY_LOCK:
        _library().replace(index)
        _save_library()
    return api_success(
        {"collections": len(index.collections), "videos": len(index.videos), "unresolved": len(index.videos)},
        message="Index loaded. Relink to restore playback.",
    )


def _handle_or_relink(handle: Optional[Path]) -> Path:
    if handle is None or not handle.exists():
        raise_api_error("file not available; relink the library", status_code=409, data={"relink": True})
    return handle


@api.get("/videos/{video_id}/stream")
def stream_video(video_id: str):
    v = _require_video(video_id)
    p = _handle_or_relink(v.handle)
    mt = mimetypes.guess_type(str(p))[0] or "application/octet-stream"
    return FileResponse(str(p), media_type=mt)


@api.get("/videos/{video_id}/thumbnail")
def video_thumbnail(video_id: str):
    v = _require_video(video_id)
    url = v.thumbnail_url or ""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise_api_error("thumbnail not found", status_code=404)
    p = Path(unquote(parsed.path))
    if not p.exists():
        raise_api_error("thumbnail not found", status_code=404)
    mt = mimetypes.guess_type(str(p))[0] or "image/jpeg"
    return FileResponse(str(p), media_type=mt)


@api.get("/videos/{video_id}/subtitles")
def list_subtitles(video_id: str):
    v = _require_video(video_id)
    tracks = [
        {"index": i, "label": t.label, "language": t.language, "available": t.handle is not None}
        for i, t in enumerate(v.subtitles)
    ]
    return api_success({"tracks": tracks})


@api.get("/videos/{video_id}/subtitles/{index}")
def get_subtitle(video_id: str, index: int):
    v = _require_video(video_id)
    if index < 0 or index >= len(v.subtitles):
        raise_api_error("subtitle track not found", status_code=404)
    track = v.subtitles[index]
    _handle_or_relink(track.handle)
    text = track_to_vtt(track)
    if text is None:
        raise_api_error("subtitle not readable", status_code=409, data={"relink": True})
    return Response(content=text, media_type="text/vtt; charset=utf-8")


@api.get("/videos/{video_id}/nfo")
def export_nfo(video_id: str):
    v = _require_video(video_id)
    stem = split_name(v.file_name)[0] or v.file_name
    return Response(
        content=generate_nfo(v.metadata),
        media_type="application/xml",
        headers={"Content-Disposition": f'attachment; filename="{stem}.nfo"'},
    )


app.include_router(api)


if __name__ == "__main__":  # pragma: no cover
    try:
        import uvicorn  # type: ignore
    except ImportError:
        sys.stderr.write("[app] Missing dependency: uvicorn. Install with: pip install uvicorn\n")
        sys.exit(1)
    # Require an explicit opt-in to start the server when running this file directly
    run_flag = os.environ.get("RUN_SERVER") or os.environ.get("RUN_STANDALONE")
    if str(run_flag).strip().lower() not in {"1", "true", "yes", "y"}:
        sys.stderr.write(
            "[app] Not starting server. To run directly, set RUN_SERVER=1 (or RUN_STANDALONE=1).\n"
        )
        sys.exit(0)
    host = os.environ.get("HOST", "127.0.0.1")
    try:
        port = int(os.environ.get("PORT", "9999") or 9999)
    except ValueError:
        port = 9999
    uvicorn.run("app:app", host=host, port=port)
