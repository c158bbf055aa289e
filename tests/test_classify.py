from helpers import batch, entry

from vidmanager.classify import IMAGE, METADATA, OTHER, SUBTITLE, VIDEO, classify_batch, classify_entry
from vidmanager.config import IngestConfig


def test_classification_is_a_partition(config):
    entries = batch(
        "Movies/a.mp4",
        "Movies/a.srt",
        "Movies/a.nfo",
        "Movies/poster.jpg",
        "Movies/notes.txt",
        "Movies/Sub/b.mkv",
        "Movies/Sub/b.en.ass",
        "Movies/Sub/folder.png",
    )
    c = classify_batch(entries, config)
    buckets = [
        list(c.videos),
        [e for group in c.groups.images.values() for e in group],
        [e for group in c.groups.subtitles.values() for e in group],
        [e for group in c.metadata.values() for e in group],
        list(c.dropped),
    ]
    seen = [e.relative_path for bucket in buckets for e in bucket]
    assert sorted(seen) == sorted(e.relative_path for e in entries)
    assert len(seen) == len(set(seen))


def test_groups_are_per_directory_and_keep_batch_order(config):
    c = classify_batch(batch("M/x.jpg", "M/S/y.jpg", "M/a.jpg", "M/z.srt"), config)
    assert [e.name for e in c.groups.images_in("M")] == ["x.jpg", "a.jpg"]
    assert [e.name for e in c.groups.images_in("M/S")] == ["y.jpg"]
    assert [e.name for e in c.groups.subtitles_in("M")] == ["z.srt"]
    assert c.groups.subtitles_in("M/S") == ()


def test_extension_matching_is_case_insensitive(config):
    assert classify_entry(entry("M/FILM.MKV"), config) == VIDEO
    assert classify_entry(entry("M/FILM.SRT"), config) == SUBTITLE
    assert classify_entry(entry("M/FILM.NFO"), config) == METADATA
    assert classify_entry(entry("M/COVER.JPG"), config) == IMAGE


def test_unrecognized_entries_are_dropped(config):
    c = classify_batch(batch("M/readme.txt", "M/archive.zip", "M/noext"), config)
    assert c.videos == ()
    assert c.groups.images == {}
    assert c.metadata == {}
    assert len(c.dropped) == 3
    assert classify_entry(entry("M/readme.txt"), config) == OTHER


def test_custom_extension_sets(tmp_path):
    cfg = IngestConfig(video_exts=["m4v"], subtitle_exts=".SUB", thumbnail_dir=tmp_path)
    c = classify_batch(batch("M/a.m4v", "M/a.mp4", "M/a.sub", "M/a.srt"), cfg)
    assert [e.name for e in c.videos] == ["a.m4v"]
    assert [e.name for e in c.groups.subtitles_in("M")] == ["a.sub"]
    assert {e.name for e in c.dropped} == {"a.mp4", "a.srt"}


def test_image_kind_comes_from_mime_type():
    e = entry("M/cover.jpeg")
    assert e.kind == "image/jpeg"
    assert e.is_image
    v = entry("M/film.mkv")
    assert v.kind == ".mkv"
    assert not v.is_image
