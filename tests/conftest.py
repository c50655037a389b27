"""Shared fixtures: a scripted metadata provider and an API client."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from reel_downloader.main import app, get_provider


def make_info(video_id="dQw4w9WgXcQ", **overrides):
    """A trimmed yt-dlp info dict with formats ordered worst to best."""
    info = {
        "id": video_id,
        "title": "Never Gonna Give You Up!",
        "uploader": "Rick Astley",
        "duration": 212,
        "view_count": 1500000000,
        "upload_date": "20091025",
        "description": "The official video.",
        "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        "formats": [
            {"format_id": "139", "ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.5",
             "url": "https://media.example.com/audio-low"},
            {"format_id": "18", "ext": "mp4", "vcodec": "avc1.42001E", "acodec": "mp4a.40.2",
             "format_note": "360p", "height": 360, "filesize": 5242880,
             "url": "https://media.example.com/360.mp4"},
            {"format_id": "137", "ext": "mp4", "vcodec": "avc1.640028", "acodec": "none",
             "format_note": "1080p", "height": 1080, "url": "https://media.example.com/1080-video-only"},
        ],
    }
    info.update(overrides)
    return info


class FakeProvider:
    """Stands in for yt-dlp: answers from canned data, optionally slowly or with an error."""

    def __init__(self, info=None, valid=True, error=None, delay=0.0):
        self.info = info if info is not None else make_info()
        self.valid = valid
        self.error = error
        self.delay = delay
        self.requested = []
        self.validated = []

    async def validate_url(self, url):
        self.validated.append(url)
        return self.valid

    async def fetch_info(self, url):
        self.requested.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.info


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_provider] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
