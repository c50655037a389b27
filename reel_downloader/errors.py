"""Error taxonomy shared by the resolver and the streaming proxy.

Every failure a route can produce is a ``VideoFetchError``; the routes turn
it into ``{"error": message}`` with the class's status code.
"""

from typing import Optional


class VideoFetchError(Exception):
    """Base class for failures reported to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InputError(VideoFetchError):
    """Missing or malformed request input."""

    status_code = 400


class ClassificationError(VideoFetchError):
    """URL does not have the shape its declared platform expects."""

    status_code = 400


class UpstreamRejected(VideoFetchError):
    """The provider refused the video (private, age-restricted, deleted)."""

    status_code = 400


class UnimplementedPlatform(VideoFetchError):
    """Platform is recognised but has no extractor wired in."""

    status_code = 501


class UpstreamTimeout(VideoFetchError):
    status_code = 408
    default_message = "Request timed out. Please try again."


class UpstreamUnavailable(VideoFetchError):
    status_code = 503
    default_message = "Network error. Please check your connection and try again."


class ResourceExhausted(VideoFetchError):
    status_code = 413
    default_message = (
        "Server resource limit reached. Please try with a shorter video or try again later."
    )


class OriginError(VideoFetchError):
    """Origin server answered the proxied fetch with a non-success status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class InternalError(VideoFetchError):
    status_code = 500


class MetadataProviderError(Exception):
    """yt-dlp exited with an error; ``stderr`` holds its diagnostic output."""

    def __init__(self, stderr: str):
        self.stderr = stderr
        super().__init__(stderr)


class DownloadClientError(Exception):
    """Raised by the Python client with a message fit for end users."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
