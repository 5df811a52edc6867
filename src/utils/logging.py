"""Logging helper for the road geometry packages.

Wraps Python's standard logging module so that every package (curve
baking, lane matching, mesh building, segment orchestration) reports
warnings with the same format.  Non-fatal conditions such as invalid
lane configurations or endpoints that are not yet ready end up here
rather than as raised exceptions.
"""

import logging


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Return a configured logger with a preset format."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='[%(asctime)s] [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger
