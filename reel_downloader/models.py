"""Pydantic models for request and response validation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional


class DownloadRequest(BaseModel):
    """Request body for the resolve endpoint."""
    url: Optional[str] = None
    platform: Optional[str] = None

    @field_validator('platform', mode='before')
    @classmethod
    def ignore_non_string_platform(cls, v: Any) -> Optional[str]:
        """A platform that is not a string names no supported platform."""
        return v if isinstance(v, str) else None


class VideoMetadata(BaseModel):
    """Resolved video description returned by the resolve endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    author: Optional[str] = "Unknown"
    duration: str
    duration_seconds: int = Field(alias="durationSeconds")
    quality: str = "Unknown"
    video_id: str = Field(alias="videoId")
    download_url: str = Field(alias="downloadUrl")
    filename: str
    file_size: Optional[str] = Field(default="Unknown", alias="fileSize")
    container: Optional[str] = None
    view_count: Optional[int] = Field(default=None, alias="viewCount")
    publish_date: Optional[str] = Field(default=None, alias="publishDate")
    description: str = ""
    thumbnail: Optional[str] = None
    success: bool = True


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint."""
    error: str
