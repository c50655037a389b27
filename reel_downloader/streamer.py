"""Proxy media bytes from an origin URL to the caller as a file download."""

import re
import logging
from typing import Dict, Optional
from urllib.parse import quote

import requests
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from .config import settings
from .deadline import run_with_timeout
from .errors import (
    InputError,
    InternalError,
    OriginError,
    UpstreamTimeout,
    UpstreamUnavailable,
    VideoFetchError,
)
from .url_classifier import is_valid_url

logger = logging.getLogger("uvicorn")

DEFAULT_FILENAME = "video.mp4"
DEFAULT_CONTENT_TYPE = "video/mp4"

# Browser-like request headers; some origins reject bare clients.
# An origin may still encode the body; it is then forwarded encoded.
ORIGIN_REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "video/webm,video/ogg,video/*;q=0.9,application/ogg;q=0.7,audio/*;q=0.6,*/*;q=0.5",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "identity",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def sanitize_download_filename(filename: Optional[str]) -> str:
    """Strip characters that would break a Content-Disposition header or a path."""
    if not filename:
        return DEFAULT_FILENAME
    cleaned = re.sub(r'[\x00-\x1f\x7f"\\/]', '', filename)
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()
    return cleaned[:200] or DEFAULT_FILENAME


def content_disposition(filename: str) -> str:
    """Build an attachment Content-Disposition, RFC 2231 encoded when non-ASCII."""
    try:
        filename.encode('ascii')
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded_filename = quote(filename.encode('utf-8'))
        return f"attachment; filename=\"{DEFAULT_FILENAME}\"; filename*=UTF-8''{encoded_filename}"


def download_headers(origin_headers, filename: str) -> Dict[str, str]:
    """Response headers for a proxied download."""
    headers = {
        "Content-Type": origin_headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
        "Content-Disposition": content_disposition(filename),
        **NO_CACHE_HEADERS,
        **CORS_HEADERS,
    }
    # Body bytes are forwarded undecoded, so length and encoding describe them as-is
    for name in ("Content-Length", "Content-Encoding"):
        value = origin_headers.get(name)
        if value:
            headers[name] = value
    return headers


def validate_download_url(download_url: Optional[str]) -> str:
    if not download_url:
        raise InputError("Download URL is required")
    if not is_valid_url(download_url):
        raise InputError("Invalid download URL format")
    return download_url


async def open_origin(download_url: str) -> requests.Response:
    """
    Start fetching ``download_url`` and return once the origin has answered.

    The body is left unread (``stream=True``) so it can be forwarded in chunks.

    Raises:
        OriginError: Origin answered with a non-success status
        UpstreamTimeout: No answer within STREAM_TIMEOUT_SECONDS
        UpstreamUnavailable: DNS or connection failure
        InternalError: Anything else
    """
    timeout = settings.STREAM_TIMEOUT_SECONDS
    try:
        response = await run_with_timeout(
            requests.get,
            timeout,
            "Download request timed out. Please try again.",
            download_url,
            headers=ORIGIN_REQUEST_HEADERS,
            stream=True,
            timeout=timeout,
            on_late_result=_close_late_response,
        )
    except VideoFetchError:
        raise
    except requests.Timeout as e:
        logger.warning(f"Origin timed out for stream: {e}")
        raise UpstreamTimeout("Download request was cancelled or timed out.") from e
    except requests.ConnectionError as e:
        logger.warning(f"Origin unreachable for stream: {e}")
        raise UpstreamUnavailable("Network error. Please check your connection and try again.") from e
    except Exception as e:
        logger.error(f"Stream error: {e}")
        raise InternalError("Failed to stream video content. Please try again.") from e

    if not response.ok:
        logger.error(f"Stream fetch error: {response.status_code} {response.reason}")
        response.close()
        raise OriginError(
            response.status_code,
            f"Failed to fetch video content: {response.status_code} {response.reason}",
        )

    return response


def _close_late_response(response: requests.Response) -> None:
    logger.info(f"Closing origin response that arrived after the deadline ({response.status_code})")
    response.close()


def iter_body(response: requests.Response):
    """Yield the origin body exactly as sent, closing the response when done."""
    try:
        for chunk in response.raw.stream(settings.STREAM_CHUNK_SIZE, decode_content=False):
            if chunk:
                yield chunk
    except (requests.RequestException, Urllib3HTTPError) as e:
        logger.error(f"Stream interrupted: {e}")
        raise
    finally:
        response.close()
