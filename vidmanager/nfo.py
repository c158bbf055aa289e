"""Read and write Kodi-style ``.nfo`` metadata sidecars."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, NamedTuple, Optional

from .log import log, warn
from .models import VideoMetadata, unique_tags

TAG_ELEMENTS = ("genre", "tag")


class NfoFields(NamedTuple):
    title: Optional[str] = None
    plot: Optional[str] = None
    tags: Optional[List[str]] = None


def _first_text(root: ET.Element, name: str) -> Optional[str]:
    el = root if root.tag == name else root.find(f".//{name}")
    if el is None:
        return None
    return (el.text or "").strip()


def parse_nfo(text: str) -> NfoFields:
    """
    Extract title, plot and tags from an NFO document.

    Fields absent from the document come back as ``None`` so a merge keeps
    its defaults for them. ``plot`` falls back to ``outline``; tags collect
    every ``genre`` element followed by every ``tag`` element.
    A document that does not parse yields an empty result.
    """
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as e:
        warn("nfo", f"nfo parse failed err={e}")
        return NfoFields()
    title = _first_text(root, "title")
    plot = _first_text(root, "plot")
    if not plot:
        plot = _first_text(root, "outline") or plot
    tags: List[str] = []
    for name in TAG_ELEMENTS:
        for el in root.iter(name):
            value = (el.text or "").strip()
            if value:
                tags.append(value)
    return NfoFields(title=title or None, plot=plot, tags=unique_tags(tags) if tags else None)


def read_nfo(path: Path) -> NfoFields:
    try:
        text = Path(path).read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        warn("nfo", f"nfo read failed path={path} err={e}")
        return NfoFields()
    fields = parse_nfo(text)
    log("nfo", f"nfo parsed path={path} title={fields.title!r} tags={len(fields.tags or [])}")
    return fields


def generate_nfo(metadata: VideoMetadata) -> str:
    movie = ET.Element("movie")
    ET.SubElement(movie, "title").text = metadata.title
    ET.SubElement(movie, "plot").text = metadata.plot
    for tag in metadata.tags:
        ET.SubElement(movie, "genre").text = tag
    ET.indent(movie, space="  ")
    body = ET.tostring(movie, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8" standalone="yes" ?>\n' + body + "\n"
