"""Tests for logging configuration."""

import logging

import pytest

from meal_subscriptions.app_logging import LOG_FORMAT, LOGGER_NAME, configure_logging


@pytest.fixture
def package_logger():
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    yield logger
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_configure_logging_idempotent(package_logger) -> None:
    configure_logging()
    first_count = len(package_logger.handlers)

    configure_logging()
    second_count = len(package_logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert not package_logger.propagate


def test_configure_logging_applies_level(package_logger) -> None:
    configure_logging("debug")
    assert package_logger.level == logging.DEBUG

    configure_logging("WARNING")
    assert package_logger.level == logging.WARNING
    assert len(package_logger.handlers) == 1


def test_configure_logging_uses_timestamped_format(package_logger) -> None:
    configure_logging()

    assert package_logger.handlers[0].formatter._fmt == LOG_FORMAT
    assert "%(asctime)s" in LOG_FORMAT


def test_configure_logging_quiets_scheduler(package_logger) -> None:
    configure_logging()

    assert logging.getLogger("apscheduler").level == logging.WARNING
