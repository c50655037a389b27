"""HTTP client for the resolve and stream endpoints."""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode

import requests

from .errors import DownloadClientError
from .models import VideoMetadata
from .url_classifier import classify, is_acceptable

logger = logging.getLogger(__name__)

# Friendlier wording for statuses the server reports in generic terms
STATUS_MESSAGES = {
    408: "Request timed out. Please try again with a shorter video or try later.",
    413: "Video is too large for processing. Please try with a shorter video.",
    503: "Service temporarily unavailable. Please try again in a few minutes.",
}


class VideoDownloaderClient:
    """Resolve a video through the API, then download it through the stream proxy."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 30):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_info(self, url: str) -> VideoMetadata:
        """
        Ask the resolver for metadata about ``url``.

        Args:
            url: Source video URL as typed by the user

        Returns:
            Resolved video metadata

        Raises:
            DownloadClientError: URL rejected locally, or the server returned an error
        """
        url = (url or "").strip()
        if not url:
            raise DownloadClientError("Please enter a valid URL")

        if not is_acceptable(url):
            raise DownloadClientError(
                "Unsupported platform. Please use YouTube, Instagram, or Facebook URLs."
            )

        platform = classify(url)

        try:
            response = self.session.post(
                f"{self.base_url}/api/download",
                json={"url": url, "platform": platform.value},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise DownloadClientError("Request timed out. Please try again with a shorter video.") from e
        except requests.ConnectionError as e:
            raise DownloadClientError("Network error. Please check your connection and try again.") from e

        if not response.ok:
            raise DownloadClientError(self._error_message(response), response.status_code)

        info = VideoMetadata.model_validate(response.json())
        logger.info(f"Video from {platform.value} is ready for download: {info.filename}")
        return info

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        if response.status_code in STATUS_MESSAGES:
            return STATUS_MESSAGES[response.status_code]
        try:
            return response.json().get("error") or "Failed to process video"
        except ValueError:
            return "Failed to process video"

    def stream_url(self, info: VideoMetadata) -> str:
        """URL of the stream proxy for a resolved video."""
        if not info.download_url or info.download_url == "#":
            raise DownloadClientError("No download URL available for this video.")
        query = urlencode({"url": info.download_url, "filename": info.filename})
        return f"{self.base_url}/api/stream?{query}"

    def download(self, info: VideoMetadata, dest_dir: Union[str, Path] = ".", chunk_size: int = 64 * 1024) -> Path:
        """
        Stream a resolved video to ``dest_dir/<filename>``.

        Returns:
            Path of the written file
        """
        target = Path(dest_dir) / Path(info.filename).name
        try:
            with self.session.get(self.stream_url(info), stream=True, timeout=self.timeout) as response:
                if not response.ok:
                    raise DownloadClientError(self._error_message(response), response.status_code)
                with open(target, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=chunk_size):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            target.unlink(missing_ok=True)
            raise DownloadClientError("Failed to download video. Please try again.") from e

        logger.info(f"Download complete: {target}")
        return target
