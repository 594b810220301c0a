"""
BookNet - Main entry point.

Runs the HTTP API with uvicorn:

    python -m booknet.main
"""

from __future__ import annotations

import uvicorn

from booknet.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "booknet.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
