"""Process entry point: configures logging and serves the API."""

import logging

import uvicorn

from interlis_worker.api import create_app
from interlis_worker.common.log_utils import configure_logging
from interlis_worker.config import ApiServerConfig

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    config = ApiServerConfig()

    logger.info(f"Starting INTERLIS validation worker on {config.host}:{config.port}")
    # log_config=None keeps the dictConfig applied above
    uvicorn.run(create_app(), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
