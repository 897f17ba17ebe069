"""
Logging configuration for the similar-links tools.

Library chatter (httpx request lines) is suppressed unless verbose.
"""

import logging
import sys


def configure_logging(verbose: bool = False) -> None:
    """
    Send log records to stderr.

    Args:
        verbose: If True, log at DEBUG (per-id detail and HTTP requests).
                 Otherwise INFO for this package and WARNING for libraries.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
