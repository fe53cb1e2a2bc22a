import pytest

from playlist_curator.services import youtube_service
from playlist_curator.services.youtube_service import YouTubeService
from playlist_curator.utils import retry
from playlist_curator.utils.retry import NetworkError


class FakeYoutubeDL:
    info = None
    error = None
    calls = 0

    def __init__(self, opts):
        self.opts = opts

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        FakeYoutubeDL.calls += 1
        if FakeYoutubeDL.error is not None:
            raise FakeYoutubeDL.error
        return FakeYoutubeDL.info


@pytest.fixture
def fake_ydl(monkeypatch):
    FakeYoutubeDL.info = None
    FakeYoutubeDL.error = None
    FakeYoutubeDL.calls = 0
    monkeypatch.setattr(youtube_service.yt_dlp, "YoutubeDL", FakeYoutubeDL)
    monkeypatch.setattr(retry.time, "sleep", lambda seconds: None)
    return FakeYoutubeDL


def test_playlist_entries_become_items(fake_ydl) -> None:
    fake_ydl.info = {
        "entries": [
            {"id": "abc", "title": "First", "duration": 61.0, "channel": "Chan",
             "thumbnails": [{"url": "small"}, {"url": "large"}]},
            None,
            {"title": "No id"},
            {"id": "def", "uploader": "Uploader"},
        ]
    }

    items = YouTubeService().fetch_playlist("https://www.youtube.com/playlist?list=PL1")

    assert [item.url for item in items] == [
        "https://www.youtube.com/watch?v=abc",
        "https://www.youtube.com/watch?v=def",
    ]
    assert items[0].duration_seconds == 61
    assert items[0].thumbnail_ref == "large"
    assert items[1].title == "Unknown Title"
    assert items[1].channel_name == "Uploader"


def test_single_video_url(fake_ydl) -> None:
    fake_ydl.info = {"id": "xyz", "title": "Solo", "thumbnail": "thumb"}

    corpus = YouTubeService().fetch_corpus("https://youtu.be/xyz", category="Watch/Later")

    assert corpus.ordering == ["WatchLater"]
    assert corpus.all_items()[0].title == "Solo"


def test_network_errors_are_retried(fake_ydl) -> None:
    fake_ydl.error = Exception("Connection reset by peer")

    with pytest.raises(NetworkError):
        YouTubeService().fetch_playlist("https://www.youtube.com/playlist?list=PL1")
    assert fake_ydl.calls == 4


def test_other_errors_propagate_immediately(fake_ydl) -> None:
    fake_ydl.error = RuntimeError("unsupported url")

    with pytest.raises(RuntimeError):
        YouTubeService().fetch_playlist("ftp://nowhere")
    assert fake_ydl.calls == 1
