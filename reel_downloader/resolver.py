"""Turn a source URL into video metadata and a direct media URL."""

import re
import socket
import logging
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from .config import settings
from .deadline import with_timeout
from .errors import (
    ClassificationError,
    InputError,
    InternalError,
    ResourceExhausted,
    UnimplementedPlatform,
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
    VideoFetchError,
)
from .models import DownloadRequest, VideoMetadata
from .url_classifier import Platform, YOUTUBE_ID_LENGTH, is_valid_url, match_youtube_url

logger = logging.getLogger("uvicorn")

TIMEOUT_MESSAGE = (
    "Request timed out. This might be due to server limitations. "
    "Please try again or use a different video."
)

NETWORK_ERROR_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "connection refused",
    "network is unreachable",
)


def sanitize_title(title: str) -> str:
    """
    Reduce a video title to characters that are safe in a filename.

    Args:
        title: The original video title

    Returns:
        ASCII letters, digits, spaces, hyphens and underscores only
    """
    sanitized = re.sub(r'[^a-zA-Z0-9\s\-_]', '', title or '')

    # Replace multiple spaces with single space
    sanitized = re.sub(r'\s+', ' ', sanitized)

    # Trim and limit length to 100 characters
    sanitized = sanitized.strip()[:100].strip()

    if not sanitized:
        sanitized = "video"

    return sanitized


def format_duration(seconds: int) -> str:
    """Format seconds as M:SS."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_file_size(size_bytes: Optional[int]) -> str:
    if not size_bytes:
        return "Unknown"
    return f"{size_bytes / 1024 / 1024:.1f} MB"


def _has_audio_and_video(fmt: Dict) -> bool:
    return fmt.get('vcodec') not in (None, 'none') and fmt.get('acodec') not in (None, 'none')


def select_format(formats: List[Dict]) -> Optional[Dict]:
    """
    Choose the format to offer for download.

    yt-dlp lists formats from worst to best. Prefer the best format carrying
    both audio and video, else the best format of any kind. Formats without a
    direct URL are never chosen.
    """
    candidates = [fmt for fmt in formats or [] if fmt.get('url')]
    combined = [fmt for fmt in candidates if _has_audio_and_video(fmt)]
    if combined:
        return combined[-1]
    if candidates:
        return candidates[-1]
    return None


def _quality_label(fmt: Dict) -> str:
    if fmt.get('format_note'):
        return fmt['format_note']
    if fmt.get('height'):
        return f"{fmt['height']}p"
    return fmt.get('quality_label') or "Unknown"


def _publish_date(upload_date: Optional[str]) -> Optional[str]:
    # yt-dlp reports YYYYMMDD
    if upload_date and len(upload_date) == 8 and upload_date.isdigit():
        return f"{upload_date[:4]}-{upload_date[4:6]}-{upload_date[6:]}"
    return upload_date


def _thumbnail(info: Dict) -> Optional[str]:
    if info.get('thumbnail'):
        return info['thumbnail']
    thumbnails = info.get('thumbnails') or []
    if thumbnails:
        return thumbnails[0].get('url')
    return None


def _description_preview(description: Optional[str]) -> str:
    if not description:
        return ""
    limit = settings.DESCRIPTION_PREVIEW_LENGTH
    if len(description) <= limit:
        return description
    return description[:limit] + "..."


def build_metadata(info: Dict, video_id: str, fmt: Dict) -> VideoMetadata:
    """Assemble the response payload from a yt-dlp info dict and the chosen format."""
    title = info.get('title') or f"YouTube Video {video_id}"
    container = fmt.get('ext') or "mp4"
    duration_seconds = int(info.get('duration') or 0)

    return VideoMetadata(
        title=title,
        author=info.get('uploader') or info.get('channel') or "Unknown",
        duration=format_duration(duration_seconds),
        duration_seconds=duration_seconds,
        quality=_quality_label(fmt),
        video_id=video_id,
        download_url=fmt['url'],
        filename=f"{sanitize_title(title)}_{video_id}.{container}",
        file_size=format_file_size(fmt.get('filesize') or fmt.get('filesize_approx')),
        container=container,
        view_count=info.get('view_count'),
        publish_date=_publish_date(info.get('upload_date')),
        description=_description_preview(info.get('description')),
        thumbnail=_thumbnail(info),
    )


def map_provider_error(exc: BaseException) -> VideoFetchError:
    """Translate a metadata provider failure into an API error."""
    if isinstance(exc, VideoFetchError):
        return exc

    message = str(exc)
    lowered = message.lower()

    if "timed out" in lowered:
        return UpstreamTimeout(TIMEOUT_MESSAGE)

    if "Video unavailable" in message:
        return UpstreamRejected("Video is unavailable. It may be private, deleted, or geo-restricted.")

    if "Sign in to confirm your age" in message or "age-restricted" in lowered:
        return UpstreamRejected("This video is age-restricted and cannot be downloaded.")

    if "Private video" in message:
        return UpstreamRejected("This is a private video and cannot be downloaded.")

    if isinstance(exc, (socket.gaierror, ConnectionError)) or any(
        marker in lowered for marker in NETWORK_ERROR_MARKERS
    ):
        return UpstreamUnavailable("Network error. Please check your connection and try again.")

    if isinstance(exc, MemoryError) or "memory" in lowered or "heap" in lowered:
        return ResourceExhausted(
            "Server resource limit reached. Please try with a shorter video or try again later."
        )

    return InternalError("Failed to process YouTube video. Please try again later.")


def without_playlist(url: str) -> str:
    """Drop the ``list`` query parameter so a watch URL inside a playlist checks as a single video."""
    parts = urlparse(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != 'list']
    return urlunparse(parts._replace(query=urlencode(query)))


class PlatformResolver:
    """Resolve a URL already known to belong to ``platform``."""

    platform: Platform

    async def resolve(self, url: str) -> VideoMetadata:
        raise NotImplementedError


class YouTubeResolver(PlatformResolver):
    """Resolve YouTube URLs through the metadata provider."""

    platform = Platform.YOUTUBE

    def __init__(self, provider):
        self.provider = provider

    async def resolve(self, url: str) -> VideoMetadata:
        token = match_youtube_url(url)
        if token is None:
            raise ClassificationError(
                "Invalid YouTube URL format. Please provide a valid YouTube video URL."
            )
        if len(token) != YOUTUBE_ID_LENGTH:
            raise ClassificationError("Unable to extract valid video ID from YouTube URL")

        video_id = token
        watch_url = f"https://www.youtube.com/watch?v={video_id}"

        try:
            is_valid = await with_timeout(
                self.provider.validate_url(without_playlist(url)),
                settings.METADATA_CHECK_TIMEOUT_SECONDS,
                TIMEOUT_MESSAGE,
            )
            if not is_valid:
                raise UpstreamRejected(
                    "Invalid YouTube URL. Video may be private, unavailable, or restricted."
                )

            info = await with_timeout(
                self.provider.fetch_info(watch_url),
                settings.METADATA_FETCH_TIMEOUT_SECONDS,
                TIMEOUT_MESSAGE,
            )
        except VideoFetchError:
            raise
        except Exception as e:
            error = map_provider_error(e)
            logger.warning(f"YouTube processing error for {video_id}: {e} -> {error.status_code}")
            raise error from e

        fmt = select_format(info.get('formats') or [])
        if fmt is None:
            raise UpstreamRejected("No downloadable formats available for this video.")

        metadata = build_metadata(info, video_id, fmt)
        logger.info(f"✓ Resolved {video_id}: {metadata.title} ({metadata.quality}, {metadata.container})")
        return metadata


class PlaceholderResolver(PlatformResolver):
    """A platform that is recognised but always answers 'not supported yet'."""

    def __init__(self, platform: Platform):
        self.platform = platform

    async def resolve(self, url: str) -> VideoMetadata:
        raise UnimplementedPlatform(
            f"{self.platform.value} downloads require additional setup. "
            "Please check the documentation."
        )


def get_resolver(platform: Optional[str], provider) -> PlatformResolver:
    """Pick the resolver for a declared platform name."""
    if platform == Platform.YOUTUBE.value:
        return YouTubeResolver(provider)
    if platform == Platform.INSTAGRAM.value:
        return PlaceholderResolver(Platform.INSTAGRAM)
    if platform == Platform.FACEBOOK.value:
        return PlaceholderResolver(Platform.FACEBOOK)
    raise InputError("Unsupported platform")


async def resolve_video(request: DownloadRequest, provider) -> VideoMetadata:
    """
    Validate a resolve request and hand it to the platform's resolver.

    Args:
        request: Parsed request body
        provider: Metadata provider used for YouTube lookups

    Returns:
        Metadata for the requested video

    Raises:
        VideoFetchError: Any failure, already carrying its HTTP status
    """
    url = (request.url or "").strip()
    if not url:
        raise InputError("URL is required")

    if len(url) > settings.MAX_URL_LENGTH or not is_valid_url(url):
        raise InputError("Invalid URL format")

    resolver = get_resolver(request.platform, provider)
    return await resolver.resolve(url)
