"""Tests for GET/OPTIONS /api/stream."""

import gzip
import io
import time
from unittest.mock import MagicMock, patch

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from urllib3 import HTTPResponse

from reel_downloader.config import settings
from reel_downloader.streamer import ORIGIN_REQUEST_HEADERS, content_disposition, sanitize_download_filename

MEDIA_URL = "https://media.example.com/360.mp4"


def origin_response(status=200, reason="OK", headers=None, chunks=(b"abc", b"def")):
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    response.ok = 200 <= status < 400
    response.headers = CaseInsensitiveDict(headers if headers is not None else {
        "Content-Type": "video/mp4", "Content-Length": "6",
    })
    response.raw.stream.return_value = iter(chunks)
    return response


class TestStreamValidation:
    """Query parameter validation."""

    def test_url_required(self, client):
        response = client.get("/api/stream")
        assert response.status_code == 400
        assert response.json() == {"error": "Download URL is required"}

    def test_empty_url(self, client):
        response = client.get("/api/stream", params={"url": ""})
        assert response.status_code == 400
        assert response.json() == {"error": "Download URL is required"}

    def test_invalid_url(self, client):
        response = client.get("/api/stream", params={"url": "not-a-url"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid download URL format"}


class TestStreamSuccess:
    """Successful proxying."""

    def test_passthrough(self, client):
        origin = origin_response()
        with patch("reel_downloader.streamer.requests.get", return_value=origin) as mock_get:
            response = client.get("/api/stream", params={"url": MEDIA_URL, "filename": "clip_dQw4w9WgXcQ.mp4"})

        assert response.status_code == 200
        assert response.content == b"abcdef"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-length"] == "6"
        assert response.headers["content-disposition"] == 'attachment; filename="clip_dQw4w9WgXcQ.mp4"'
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"

        args, kwargs = mock_get.call_args
        assert args == (MEDIA_URL,)
        assert kwargs["stream"] is True
        assert kwargs["headers"] == ORIGIN_REQUEST_HEADERS
        origin.close.assert_called()

    def test_download_url_alias(self, client):
        with patch("reel_downloader.streamer.requests.get", return_value=origin_response()) as mock_get:
            response = client.get("/api/stream", params={"downloadUrl": MEDIA_URL})

        assert response.status_code == 200
        assert mock_get.call_args[0] == (MEDIA_URL,)

    def test_defaults(self, client):
        with patch("reel_downloader.streamer.requests.get", return_value=origin_response(headers={})):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-disposition"] == 'attachment; filename="video.mp4"'

    def test_encoded_origin_is_forwarded_as_sent(self, client):
        body = gzip.compress(b"\x00\x01video-bytes" * 500)
        headers = {"Content-Type": "video/mp4", "Content-Encoding": "gzip", "Content-Length": str(len(body))}
        origin = requests.Response()
        origin.status_code = 200
        origin.reason = "OK"
        origin.headers = CaseInsensitiveDict(headers)
        origin.raw = HTTPResponse(body=io.BytesIO(body), headers=headers, status=200, preload_content=False)

        with patch("reel_downloader.streamer.requests.get", return_value=origin):
            with client.stream("GET", "/api/stream", params={"url": MEDIA_URL}) as response:
                received = b"".join(response.iter_raw())

        assert response.status_code == 200
        assert received == body
        assert response.headers["content-length"] == str(len(body))
        assert response.headers["content-encoding"] == "gzip"


class TestStreamFailures:
    """Origin failures mapped to statuses."""

    def test_origin_status_propagates(self, client):
        origin = origin_response(status=403, reason="Forbidden")
        with patch("reel_downloader.streamer.requests.get", return_value=origin):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 403
        assert response.json() == {"error": "Failed to fetch video content: 403 Forbidden"}
        origin.close.assert_called_once()

    def test_deadline(self, client, monkeypatch):
        monkeypatch.setattr(settings, "STREAM_TIMEOUT_SECONDS", 0.05)

        def slow_get(*args, **kwargs):
            time.sleep(0.5)
            return origin_response()

        with patch("reel_downloader.streamer.requests.get", side_effect=slow_get):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 408
        assert response.json() == {"error": "Download request timed out. Please try again."}

    def test_socket_timeout(self, client):
        with patch("reel_downloader.streamer.requests.get", side_effect=requests.ReadTimeout("read timed out")):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 408
        assert response.json() == {"error": "Download request was cancelled or timed out."}

    def test_connection_failure(self, client):
        with patch("reel_downloader.streamer.requests.get", side_effect=requests.ConnectionError("Name or service not known")):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 503
        assert response.json() == {"error": "Network error. Please check your connection and try again."}

    def test_unexpected_failure(self, client):
        with patch("reel_downloader.streamer.requests.get", side_effect=ValueError("bad")):
            response = client.get("/api/stream", params={"url": MEDIA_URL})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to stream video content. Please try again."}


class TestPreflight:
    """OPTIONS /api/stream."""

    def test_options(self, client):
        response = client.options("/api/stream")
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"


class TestResolveThenStream:
    """The resolver's downloadUrl/filename drive the proxy."""

    def test_filename_round_trip(self, client):
        resolved = client.post("/api/download", json={
            "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ", "platform": "YouTube",
        }).json()

        with patch("reel_downloader.streamer.requests.get", return_value=origin_response()) as mock_get:
            response = client.get("/api/stream", params={
                "url": resolved["downloadUrl"], "filename": resolved["filename"],
            })

        assert response.status_code == 200
        assert mock_get.call_args[0] == (resolved["downloadUrl"],)
        assert response.headers["content-disposition"] == f'attachment; filename="{resolved["filename"]}"'


class TestFilenameHelpers:
    """Tests for sanitize_download_filename() and content_disposition()."""

    @pytest.mark.parametrize("raw,expected", [
        (None, "video.mp4"),
        ("", "video.mp4"),
        ('my "clip".mp4', "my clip.mp4"),
        ("../../etc/passwd", "....etcpasswd"),
        ("a\r\nb.mp4", "ab.mp4"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_download_filename(raw) == expected

    def test_non_ascii_uses_rfc2231(self):
        header = content_disposition("vidéo.mp4")
        assert header == "attachment; filename=\"video.mp4\"; filename*=UTF-8''vid%C3%A9o.mp4"
