"""Application entry point for the relay server."""

from __future__ import annotations

import os

import uvicorn

from tube_relay.config.settings import AppConfig


def main() -> None:
    """Start the relay server."""
    config = AppConfig()
    reload = os.getenv("TUBERELAY_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "tube_relay.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
