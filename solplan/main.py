"""Application entrypoint."""

from __future__ import annotations

import uvicorn

from solplan.api import create_app
from solplan.config import load_settings
from solplan.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    app = create_app(settings)
    logger.info("server_starting", host=settings.host, port=settings.port)
    # structlog owns logging configuration
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
