"""
Convert subtitle sidecars to WebVTT, the only format the player renders.

- SubRip (``.srt``): purely syntactic; ``,`` becomes ``.`` in timestamps and
  the header is prepended. Cue numbers and malformed blocks pass through.
- SubStation Alpha (``.ass``/``.ssa``): ``Dialogue:`` records are rebuilt
  as cues; everything else in the script is ignored.
- WebVTT (``.vtt``): passed through with normalized line endings.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from .log import log, warn
from .models import SubtitleTrack

VTT_HEADER = "WEBVTT\n\n"

_SRT_TIMESTAMP = re.compile(r"(\d{2}:\d{2}:\d{2}),(\d{3})")
_ASS_OVERRIDE = re.compile(r"\{[^}]*\}")
_ASS_FIELDS = 10  # layer, start, end, style, name, marginL, marginR, marginV, effect, text


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def srt_to_vtt(text: str) -> str:
    body = _SRT_TIMESTAMP.sub(r"\1.\2", _normalize_newlines(text.lstrip("\ufeff")))
    return VTT_HEADER + body


def ass_time_to_vtt(value: str) -> Optional[str]:
    """``H:MM:SS.cc`` -> ``HH:MM:SS.mmm``; ``None`` if the value is not a timestamp."""
    value = value.strip()
    hms, _, frac = value.partition(".")
    parts = hms.split(":")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    frac = frac or "00"
    if not frac.isdigit():
        return None
    h, m, s = parts
    return f"{h.zfill(2)}:{m.zfill(2)}:{s.zfill(2)}.{frac[:3].ljust(3, '0')}"


def ass_to_vtt(text: str) -> str:
    cues: List[str] = []
    skipped = 0
    for line in re.split(r"\r?\n", text.lstrip("\ufeff")):
        if not line.startswith("Dialogue:"):
            continue
        fields = line[len("Dialogue:"):].split(",", _ASS_FIELDS - 1)
        if len(fields) < _ASS_FIELDS:
            skipped += 1
            continue
        start = ass_time_to_vtt(fields[1])
        end = ass_time_to_vtt(fields[2])
        if start is None or end is None:
            skipped += 1
            continue
        # the text field keeps its own commas
        body = _ASS_OVERRIDE.sub("", fields[9])
        body = body.replace("\\N", "\n").replace("\\n", "\n")
        cues.append(f"{start} --> {end}\n{body}\n\n")
    if skipped:
        log("subtitle", f"ass records skipped={skipped} kept={len(cues)}")
    return VTT_HEADER + "".join(cues)


def vtt_passthrough(text: str) -> str:
    body = _normalize_newlines(text)
    if body.lstrip("\ufeff").startswith("WEBVTT"):
        return body.lstrip("\ufeff")
    return VTT_HEADER + body


def to_vtt(file_name: str, text: str) -> str:
    name = file_name.lower()
    if name.endswith(".srt"):
        return srt_to_vtt(text)
    if name.endswith(".ass") or name.endswith(".ssa"):
        return ass_to_vtt(text)
    return vtt_passthrough(text)


def read_subtitle(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8-sig", errors="replace")


def track_to_vtt(track: SubtitleTrack) -> Optional[str]:
    """WebVTT text for a track, or ``None`` when its file handle is not live."""
    if track.handle is None:
        return None
    try:
        text = read_subtitle(track.handle)
    except OSError as e:
        warn("subtitle", f"subtitle read failed path={track.handle} err={e}")
        return None
    return to_vtt(track.label, text)
