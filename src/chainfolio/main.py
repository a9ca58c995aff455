"""Main entry point - runs the API server."""

import logging

import uvicorn

from chainfolio.api.app import create_app
from chainfolio.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool, level: str = "INFO") -> None:
    """Configure root logging for the process."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.debug, settings.log_level)

    logger.info("Starting Chainfolio...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Starting API server on {settings.api_host}:{settings.api_port}")

    try:
        uvicorn.run(
            create_app(),
            host=settings.api_host,
            port=settings.api_port,
            log_level="debug" if settings.debug else "info",
        )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


if __name__ == "__main__":
    main()
