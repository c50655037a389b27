"""Platform classification and YouTube identifier extraction.

Pure functions only: nothing here touches the network, so the same checks
can gate a request on the client and validate it on the server.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError


class Platform(str, Enum):
    YOUTUBE = "YouTube"
    INSTAGRAM = "Instagram"
    FACEBOOK = "Facebook"
    UNKNOWN = "Unknown"


YOUTUBE_ID_LENGTH = 11

# Group 1: youtube.com shapes (watch?v=, embed/, v/, shorts/)
# Group 2: youtu.be short links
# The token is captured greedily over the identifier alphabet so an id
# running into further id characters comes out over-length and is rejected.
YOUTUBE_URL_PATTERN = re.compile(
    r"youtube\.com/(?:watch\?v=|embed/|v/|shorts/)([A-Za-z0-9_-]+)"
    r"|youtu\.be/([A-Za-z0-9_-]+)"
)

_url_adapter = TypeAdapter(AnyUrl)


def classify(url: str) -> Platform:
    """Detect the platform a URL belongs to by substring match."""
    if not isinstance(url, str):
        return Platform.UNKNOWN

    if "youtube.com" in url or "youtu.be" in url:
        return Platform.YOUTUBE
    if "instagram.com" in url:
        return Platform.INSTAGRAM
    if "facebook.com" in url or "fb.watch" in url:
        return Platform.FACEBOOK
    return Platform.UNKNOWN


def match_youtube_url(url: str) -> Optional[str]:
    """
    Return the token following a recognised YouTube URL shape.

    Supported patterns:
    - youtube.com/watch?v=VIDEO_ID
    - youtube.com/embed/VIDEO_ID
    - youtube.com/v/VIDEO_ID
    - youtube.com/shorts/VIDEO_ID
    - youtu.be/VIDEO_ID

    The token is returned whatever its length; None means no shape matched.
    """
    match = YOUTUBE_URL_PATTERN.search(url)
    if not match:
        return None
    return match.group(1) or match.group(2)


def extract_youtube_id(url: str) -> Optional[str]:
    """Extract an 11-character YouTube video ID, or None."""
    token = match_youtube_url(url)
    if token and len(token) == YOUTUBE_ID_LENGTH:
        return token
    return None


def is_valid_url(url: str) -> bool:
    """Check that ``url`` parses as an absolute URL."""
    if not isinstance(url, str) or not url:
        return False
    try:
        _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return True


def is_acceptable(url: str) -> bool:
    """A URL worth submitting: syntactically valid and from a known platform."""
    return is_valid_url(url) and classify(url) is not Platform.UNKNOWN
