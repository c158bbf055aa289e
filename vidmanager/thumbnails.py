"""Frame-grab thumbnails for videos that have no sidecar image."""
from __future__ import annotations

import hashlib
import io
import os
import random
import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError

from .config import IngestConfig
from .log import log, warn
from .models import FileEntry

SUFFIX_THUMBNAIL_JPG = ".thumbnail.jpg"

Runner = Callable[[list, float], subprocess.CompletedProcess]


def _run(cmd: list, timeout: float) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, capture_output=True, timeout=timeout)


def ffmpeg_bin() -> str:
    return os.environ.get("FFMPEG") or "ffmpeg"


def ffprobe_bin() -> str:
    return os.environ.get("FFPROBE") or "ffprobe"


def ffmpeg_available() -> bool:
    return bool(shutil.which(ffmpeg_bin())) and bool(shutil.which(ffprobe_bin()))


def thumbnail_path(out_dir: Path, relative_path: str) -> Path:
    digest = hashlib.md5(relative_path.encode("utf-8")).hexdigest()
    return out_dir / f"{digest}{SUFFIX_THUMBNAIL_JPG}"


class ThumbnailTimeout(Exception):
    pass


class ThumbnailGenerator:
    """
    Seek to a random point between 10% and 90% of the video and save that
    frame as a JPEG.

    The whole operation (probe + grab + encode) shares a single wall-clock
    budget of ``config.thumbnail_timeout`` seconds. Any failure, including
    running out of time, yields ``None``; a missing thumbnail never fails
    the ingestion of its video.
    """

    def __init__(self, config: IngestConfig, rng: Optional[random.Random] = None,
                 run: Optional[Runner] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.rng = rng or random.Random()
        self._run = run or _run
        self._custom_runner = run is not None
        self._clock = clock

    def available(self) -> bool:
        return self._custom_runner or ffmpeg_available()

    def probe_duration(self, video: Path, timeout: float) -> Optional[float]:
        cmd = [
            ffprobe_bin(), "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(video),
        ]
        proc = self._run(cmd, timeout)
        if proc.returncode != 0:
            return None
        out = proc.stdout.decode("utf-8", errors="ignore") if isinstance(proc.stdout, bytes) else str(proc.stdout or "")
        try:
            duration = float(out.strip().splitlines()[0])
        except (ValueError, IndexError):
            return None
        return duration if duration > 0 else None

    def grab_frame(self, video: Path, at: float, timeout: float) -> Optional[bytes]:
        cmd = [
            ffmpeg_bin(), "-hide_banner", "-loglevel", "error", "-nostdin",
            "-ss", f"{at:.3f}",
            "-i", str(video),
            "-frames:v", "1",
            "-f", "image2pipe", "-vcodec", "png",
            "pipe:1",
        ]
        proc = self._run(cmd, timeout)
        if proc.returncode != 0 or not proc.stdout:
            return None
        return proc.stdout

    def encode(self, frame: bytes, out: Path) -> None:
        with Image.open(io.BytesIO(frame)) as im:
            img = im.convert("RGB")
        width = self.config.thumbnail_width
        if img.width > width:
            height = max(1, round(img.height * width / img.width))
            img = img.resize((width, height), Image.Resampling.BILINEAR)
        out.parent.mkdir(parents=True, exist_ok=True)
        tmp = out.with_suffix(out.suffix + ".tmp")
        img.save(tmp, format="JPEG", quality=self.config.thumbnail_quality)
        tmp.replace(out)

    def _remaining(self, deadline: float) -> float:
        left = deadline - self._clock()
        if left <= 0:
            raise ThumbnailTimeout()
        return left

    def generate(self, entry: FileEntry) -> Optional[str]:
        """Return a ``file://`` URI of the generated JPEG, or ``None`` when unavailable."""
        if entry.handle is None:
            return None
        if not self.available():
            warn("thumbnail", f"thumbnail skip path={entry.relative_path} reason=ffmpeg-missing")
            return None
        deadline = self._clock() + self.config.thumbnail_timeout
        out = thumbnail_path(self.config.resolved_thumbnail_dir(), entry.relative_path)
        try:
            duration = self.probe_duration(entry.handle, self._remaining(deadline))
            if not duration:
                log("thumbnail", f"thumbnail skip path={entry.relative_path} reason=no-duration")
                return None
            at = self.rng.uniform(duration * 0.1, duration * 0.9)
            frame = self.grab_frame(entry.handle, at, self._remaining(deadline))
            if frame is None:
                log("thumbnail", f"thumbnail fail path={entry.relative_path} reason=decode at={at:.3f}")
                return None
            self._remaining(deadline)
            self.encode(frame, out)
        except (ThumbnailTimeout, subprocess.TimeoutExpired):
            warn("thumbnail", f"thumbnail fail path={entry.relative_path} reason=timeout limit={self.config.thumbnail_timeout}s")
            return None
        except (OSError, UnidentifiedImageError) as e:
            warn("thumbnail", f"thumbnail fail path={entry.relative_path} reason=error err={e}")
            return None
        log("thumbnail", f"thumbnail ok path={entry.relative_path} at={at:.3f}s out={out}")
        return out.resolve().as_uri()
