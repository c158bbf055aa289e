import random
from pathlib import Path

from helpers import ASS_SAMPLE, NFO_SAMPLE, SRT_SAMPLE, batch, make_tree, png_bytes

from vidmanager.ingest import Ingestor
from vidmanager.scan import scan_folder
from vidmanager.sidecars import SidecarResolver
from vidmanager.thumbnails import ThumbnailGenerator


class StubThumbnailer:
    def __init__(self, result="file:///thumbs/generated.jpg"):
        self.result = result
        self.seen = []

    def generate(self, entry):
        self.seen.append(entry.relative_path)
        return self.result


def _tree(tmp_path):
    return make_tree(tmp_path / "Movies", {
        "Heat.mkv": b"\x00" * 16,
        "heat.en.srt": SRT_SAMPLE,
        "heat.nfo": NFO_SAMPLE,
        "poster.jpg": png_bytes(10, 10),
        "Action/Ronin.mp4": b"\x00" * 8,
        "Action/ronin.fr.ass": ASS_SAMPLE,
        "Action/notes.txt": "ignored",
        ".hidden/secret.mp4": b"",
    })


def test_ingest_real_folder(tmp_path, config):
    root = _tree(tmp_path)
    stub = StubThumbnailer()
    ingestor = Ingestor(config.model_copy(update={"generate_thumbnails": True}), thumbnailer=stub)
    result = ingestor.ingest(scan_folder(root), "col-1")

    assert result.failed == []
    assert [v.relative_path for v in result.videos] == ["Movies/Heat.mkv", "Movies/Action/Ronin.mp4"]
    heat, ronin = result.videos

    assert heat.collection_id == "col-1"
    assert heat.size == 16
    assert heat.playable
    assert heat.thumbnail_url == (root / "poster.jpg").resolve().as_uri()
    assert heat.metadata.title == "The Real Title"
    assert heat.metadata.tags == ["Drama", "Action", "favorites"]
    assert [(t.label, t.language) for t in heat.subtitles] == [("heat.en.srt", "en")]

    # no image next to Ronin, so a frame grab is requested
    assert ronin.thumbnail_url == "file:///thumbs/generated.jpg"
    assert stub.seen == ["Movies/Action/Ronin.mp4"]
    assert result.generated == 1
    assert ronin.metadata.title == "Ronin"
    assert ronin.metadata.plot == ""
    assert [(t.label, t.language) for t in ronin.subtitles] == [("ronin.fr.ass", "fr")]


def test_disabled_generation_leaves_thumbnail_empty(tmp_path, config):
    root = _tree(tmp_path)
    stub = StubThumbnailer()
    result = Ingestor(config, thumbnailer=stub).ingest(scan_folder(root), "c")
    assert result.videos[1].thumbnail_url is None
    assert stub.seen == []
    assert result.generated == 0


def test_failed_generation_is_not_a_failed_video(config):
    ingestor = Ingestor(config.model_copy(update={"generate_thumbnails": True}), thumbnailer=StubThumbnailer(None))
    result = ingestor.ingest(batch("M/a.mp4"), "c")
    assert len(result.videos) == 1
    assert result.videos[0].thumbnail_url is None
    assert result.generated == 0


def test_one_failing_video_does_not_stop_the_batch(config):
    class Flaky(SidecarResolver):
        def select_thumbnail(self, video, groups):
            if video.name == "bad.mkv":
                raise RuntimeError("boom")
            return super().select_thumbnail(video, groups)

    entries = batch("M/a.mkv", "M/bad.mkv", "M/c.mkv")
    result = Ingestor(config, resolver=Flaky(config)).ingest(entries, "c")
    assert [v.file_name for v in result.videos] == ["a.mkv", "c.mkv"]
    assert result.failed == ["M/bad.mkv"]


def test_order_follows_batch_with_many_workers(config):
    names = [f"M/{i:03d}.mp4" for i in range(40)]
    cfg = config.model_copy(update={"concurrency": 8})
    result = Ingestor(cfg).ingest(batch(*reversed(names)), "c")
    assert [v.relative_path for v in result.videos] == list(reversed(names))
    assert len({v.id for v in result.videos}) == 40


def test_entries_without_handles_still_ingest(config):
    entries = [e.model_copy(update={"handle": None}) for e in batch("M/a.mp4", "M/poster.jpg", "M/a.nfo")]
    cfg = config.model_copy(update={"generate_thumbnails": True})
    gen = ThumbnailGenerator(cfg, rng=random.Random(0), run=lambda cmd, timeout: None)
    result = Ingestor(cfg, thumbnailer=gen).ingest(entries, "c")
    v = result.videos[0]
    assert not v.playable
    assert v.thumbnail_url is None
    assert v.metadata.title == "a"
    assert isinstance(v.relative_path, str) and Path(v.relative_path).name == "a.mp4"


def test_sibling_videos_sharing_a_prefix_get_their_own_nfo(tmp_path, config):
    root = make_tree(tmp_path / "M", {
        "Movie.mkv": b"v",
        "Movie Sequel.mkv": b"v",
        "Movie Sequel.nfo": "<movie><title>Movie Sequel</title></movie>",
        "Movie.nfo": NFO_SAMPLE,
    })
    result = Ingestor(config).ingest(scan_folder(root), "c")
    titles = {v.file_name: v.metadata.title for v in result.videos}
    assert titles == {"Movie.mkv": "The Real Title", "Movie Sequel.mkv": "Movie Sequel"}
