import logging
import sys

import uvicorn

from tokenwatch.app import create_app
from tokenwatch.config import load_settings, setup_logging
from tokenwatch.errors import ConfigError
from tokenwatch.scanner import TokenScanner

logger = logging.getLogger("tokenwatch")


def main():
    try:
        settings = load_settings()
    except ConfigError as e:
        setup_logging()
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    setup_logging(settings.log_level)
    app = create_app(TokenScanner(settings))
    # a provider that cannot be built fails startup and ends the process
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
