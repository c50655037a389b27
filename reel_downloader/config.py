"""Application configuration settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "info"

    # Security
    MAX_URL_LENGTH: int = 2000

    # Metadata provider deadlines
    METADATA_CHECK_TIMEOUT_SECONDS: float = 3.0
    METADATA_FETCH_TIMEOUT_SECONDS: float = 8.0
    YTDLP_BINARY: str = "yt-dlp"

    # Streaming proxy
    STREAM_TIMEOUT_SECONDS: float = 15.0
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # Response shaping
    DESCRIPTION_PREVIEW_LENGTH: int = 200

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
