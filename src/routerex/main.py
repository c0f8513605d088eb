"""Main entry point - runs the API server."""

import logging

import uvicorn

from routerex.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info("Starting Routerex...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Quote families: {settings.allowed_families}")

    uvicorn.run(
        "routerex.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
