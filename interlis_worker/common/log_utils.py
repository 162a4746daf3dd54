"""Logging setup and filters for structured (ECS style) logging.

Provides:
- configure_logging: loads logging.json or logging-dev.json via dictConfig
- ExtraFieldsFilter: adds the request trace id and HTTP details to records
- EndpointFilter: hides access log lines of noisy endpoints such as /health
"""

import json
import logging
import logging.config
import os
from pathlib import Path

from interlis_worker.common.tracing import ctx_request

logger = logging.getLogger(__name__)

LOG_FORMAT_ENV = "LOG_FORMAT"


def configure_logging(config_dir: Path | None = None) -> None:
    """Configure logging based on environment.

    LOG_FORMAT=json (the default in containers) uses logging.json with
    structured output; anything else uses logging-dev.json with a plain text
    format for readability.

    Args:
        config_dir: Directory holding the logging config files, defaults to
            the repository root
    """
    config_dir = config_dir or Path(__file__).parent.parent.parent
    use_json = os.environ.get(LOG_FORMAT_ENV, "text").lower() == "json"
    config_path = config_dir / ("logging.json" if use_json else "logging-dev.json")

    if config_path.exists():
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    else:
        # Fallback to basic config if file not found
        logging.basicConfig(
            level=logging.INFO,
            format=(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"logger": "%(name)s", "message": "%(message)s"}'
            ),
            datefmt="%Y-%m-%dT%H:%M:%S",
        )


class ExtraFieldsFilter(logging.Filter):
    """Adds ECS-compatible fields of the current request to log records.

    Enhances log records with:
    - trace.id: request trace id, unless the record already carries one
    - url.full: Full request URL
    - http.request.method: HTTP method
    - http.response.status_code: Response status code, once known
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = ctx_request.get()
        if context is None:
            return True

        if not hasattr(record, "trace"):
            record.trace = {"id": context.trace_id}

        record.url = {"full": context.url}
        record.http = {"request": {"method": context.method}}
        if context.status_code is not None:
            record.http["response"] = {"status_code": context.status_code}

        return True


class EndpointFilter(logging.Filter):
    """Filters out log messages mentioning a specific endpoint.

    Args:
        path: The endpoint path to filter (e.g., "/health")
    """

    def __init__(self, path: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._path = path

    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().find(self._path) == -1
