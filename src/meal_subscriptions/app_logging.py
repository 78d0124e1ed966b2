"""Logging configuration helpers."""

import logging

LOGGER_NAME = "meal_subscriptions"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# APScheduler logs every job execution at INFO.
QUIET_LOGGERS = ("apscheduler",)


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to a single timestamped stream handler.

    Repeated calls only adjust the level, so every app built in one process
    shares the handler without duplicating output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
