"""Logging configuration for the provcheck CLI."""

import logging
import os
import sys

LOG_LEVEL_ENV = "PROVCHECK_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

EXTERNAL_LOGGERS = {
    "urllib3": logging.WARNING,
    "requests": logging.WARNING,
}


def setup_logging(log_level: str | None = None) -> None:
    """Configure root logging once for a CLI invocation.

    Log records go to stderr so they never interleave with report output on stdout.
    """
    if log_level is None:
        log_level = os.getenv(LOG_LEVEL_ENV, "WARNING")

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    for logger_name, external_level in EXTERNAL_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(max(level, external_level))
