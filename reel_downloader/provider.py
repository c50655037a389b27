"""Video metadata provider backed by yt-dlp."""

import json
import asyncio
import logging
from typing import Dict, Optional

from yt_dlp.extractor import get_info_extractor

from .config import settings
from .errors import MetadataProviderError

logger = logging.getLogger("uvicorn")


class YtDlpProvider:
    """Look up YouTube video metadata using yt-dlp."""

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or settings.YTDLP_BINARY

    async def validate_url(self, url: str) -> bool:
        """Whether yt-dlp's YouTube extractor recognises the URL. No network access."""
        return bool(get_info_extractor("Youtube").suitable(url))

    async def fetch_info(self, url: str) -> Dict:
        """
        Fetch full video metadata, including the list of formats.

        Args:
            url: Video URL

        Returns:
            yt-dlp info dict (title, duration, formats, ...)

        Raises:
            MetadataProviderError: yt-dlp exited with an error
        """
        cmd = [
            self.binary,
            "--dump-single-json",
            "--skip-download",
            "--no-playlist",
            "--no-warnings",
            url
        ]

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Deadline hit while yt-dlp was still running
            if process.returncode is None:
                process.kill()
            raise

        if process.returncode != 0:
            error_msg = stderr.decode('utf-8', errors='replace').strip()
            logger.error(f"yt-dlp failed for {url}: {error_msg}")
            raise MetadataProviderError(error_msg)

        return json.loads(stdout.decode('utf-8'))
