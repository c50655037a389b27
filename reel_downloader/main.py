"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from . import __version__
from .errors import InputError, InternalError, VideoFetchError
from .models import DownloadRequest, ErrorResponse, VideoMetadata
from .provider import YtDlpProvider
from .resolver import resolve_video
from .streamer import (
    CORS_HEADERS,
    download_headers,
    iter_body,
    open_origin,
    sanitize_download_filename,
    validate_download_url,
)

# Configure logging to use uvicorn's logger
logger = logging.getLogger("uvicorn")


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Reel Downloader application...")
    yield
    logger.info("Reel Downloader application shutdown complete")


app = FastAPI(
    title="Reel Downloader",
    description="Resolve YouTube, Instagram and Facebook video URLs and stream the media",
    version=__version__,
    lifespan=lifespan
)

# Initialize services
metadata_provider = YtDlpProvider()


def get_provider() -> YtDlpProvider:
    return metadata_provider


def error_response(error: VideoFetchError) -> JSONResponse:
    """Render an API error as ``{"error": message}``."""
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(error=error.message).model_dump(),
        headers=CORS_HEADERS,
    )


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    """Public API: every response is readable cross-origin."""
    response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/api/download", response_model=VideoMetadata)
async def download_video(request: Request, provider: YtDlpProvider = Depends(get_provider)):
    """
    Resolve a source URL into video metadata and a direct download URL.
    """
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")
    except Exception as e:
        logger.error(f"API error: {e}")
        return error_response(InternalError("Internal server error"))

    try:
        try:
            video_request = DownloadRequest.model_validate(payload)
        except ValidationError:
            raise InputError("Invalid URL format")

        logger.info(f"Resolve request: {video_request.platform} {video_request.url}")
        metadata = await resolve_video(video_request, provider)
    except VideoFetchError as e:
        logger.info(f"Resolve rejected ({e.status_code}): {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"API error: {e}")
        return error_response(InternalError("Internal server error"))

    return JSONResponse(content=metadata.model_dump(by_alias=True), headers=CORS_HEADERS)


@app.get("/api/stream")
async def stream_video(
    url: Optional[str] = None,
    download_url: Optional[str] = Query(None, alias="downloadUrl"),
    filename: Optional[str] = None,
):
    """
    Proxy the media behind a direct download URL as a file attachment.
    """
    try:
        target = validate_download_url(url or download_url)
        origin = await open_origin(target)
    except VideoFetchError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"Stream error: {e}")
        return error_response(InternalError("Failed to stream video content. Please try again."))

    safe_name = sanitize_download_filename(filename)
    logger.info(f"Streaming {safe_name} ({origin.headers.get('Content-Length', 'unknown')} bytes)")

    return StreamingResponse(
        iter_body(origin),
        status_code=200,
        headers=download_headers(origin.headers, safe_name),
    )


@app.options("/api/stream")
@app.options("/api/download")
async def preflight():
    """CORS pre-flight."""
    return Response(status_code=200, headers=CORS_HEADERS)
