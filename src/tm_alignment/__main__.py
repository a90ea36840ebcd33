"""Run the alignment service: ``python -m tm_alignment``."""

import logging
import sys

import uvicorn

from .api.app import create_app
from .config.config_manager import Configuration
from .config.models import ConfigurationError
from .service import AlignmentService


logger = logging.getLogger("tm_alignment")


def main() -> int:
    try:
        config = Configuration()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Cannot load configuration: {e.message}")
        return 1

    logging.basicConfig(
        level=getattr(logging, config.logging_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    result = config.validate()
    for warning in result.warnings:
        logger.warning(warning)
    if not result.is_valid:
        for error in result.errors:
            logger.error(error)
        return 1

    server = config.server
    try:
        service = AlignmentService(config)
    except Exception:
        logger.exception("Service startup failed")
        return 1

    logger.info(f"Listening on {server.bind_address}:{server.port}")
    try:
        uvicorn.run(create_app(service), **server.uvicorn_options())
    finally:
        service.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
