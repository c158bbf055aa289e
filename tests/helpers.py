import io
from pathlib import Path
from typing import Dict, Union

from PIL import Image

from vidmanager.models import FileEntry


def entry(relative_path: str, size: int = 0, handle: Path = None) -> FileEntry:
    return FileEntry.create(relative_path, size=size, handle=handle or Path("/grant") / relative_path)


def batch(*paths: str) -> list:
    return [entry(p) for p in paths]


def png_bytes(width: int = 640, height: int = 360, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


def make_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")
    return root


NFO_SAMPLE = """<?xml version="1.0" encoding="UTF-8" standalone="yes" ?>
<movie>
  <title>The Real Title</title>
  <plot>Someone goes somewhere.</plot>
  <genre>Drama</genre>
  <genre>Action</genre>
  <tag>favorites</tag>
  <tag>Drama</tag>
</movie>
"""

SRT_SAMPLE = "1\r\n00:00:01,000 --> 00:00:02,500\r\nHello there\r\n\r\n2\r\n00:00:03,000 --> 00:00:04,000\r\nGeneral Kenobi\r\n"

ASS_SAMPLE = """[Script Info]
Title: sample

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:05.00,0:00:07.00,Default,,0,0,0,,Hello, world
Dialogue: 0,0:01:02.5,0:01:04.25,Default,,0,0,0,,{\\an8}Top line\\Nsecond line
"""
