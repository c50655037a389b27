"""Run the API with uvicorn: ``python -m reel_downloader``."""

import uvicorn

from .config import settings


def main():
    uvicorn.run(
        "reel_downloader.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
