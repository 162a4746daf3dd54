"""Proxy configuration utilities for the ilitools."""

import logging
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def mask_proxy(value: str) -> str:
    """Mask credentials if present in a proxy URL (user:pass@host)."""
    if "@" in value:
        return "***@" + value.split("@")[-1]
    return value


def parse_proxy(proxy: str | None) -> tuple[str | None, int | None]:
    """Split a configured proxy URL into host and port.

    Each part is returned independently; a part that is missing or cannot be
    parsed is returned as None so callers can emit only what is present.

    Args:
        proxy: Proxy URL, e.g. "http://proxy.example.com:8080"

    Returns:
        Tuple of (host, port)
    """
    if not proxy:
        return None, None

    try:
        parts = urlsplit(proxy)
    except ValueError as e:
        logger.warning(f"Failed to parse proxy configuration {mask_proxy(proxy)}: {e}")
        return None, None

    host = parts.hostname or None

    try:
        port = parts.port
    except ValueError as e:
        logger.warning(f"Failed to parse proxy port of {mask_proxy(proxy)}: {e}")
        port = None

    return host, port


def log_proxy_settings(proxy: str | None) -> None:
    """Log the proxy handed to the ilitools for debugging connectivity issues."""
    if not proxy:
        logger.info("No proxy configured for ilitools")
        return

    logger.info(f"ilitools proxy={mask_proxy(proxy)}")
