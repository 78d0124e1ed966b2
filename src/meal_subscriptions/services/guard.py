"""Conversion of engine exceptions into result values."""

import logging
from collections.abc import Callable
from typing import TypeVar

from meal_subscriptions.domain.errors import SubscriptionError
from meal_subscriptions.domain.results import EngineError, OperationResult

T = TypeVar("T")


def run_guarded(
    logger: logging.Logger, description: str, operation: Callable[[], T]
) -> OperationResult[T]:
    """Run ``operation`` and wrap its value or failure in an ``OperationResult``.

    Engine errors keep their kind and message. Anything else is logged with
    its traceback and reported with a generic message only.
    """
    try:
        return OperationResult.ok(operation())
    except SubscriptionError as exc:
        logger.warning("Could not %s: %s", description, exc)
        return OperationResult.fail(EngineError.from_exception(exc))
    except Exception:
        logger.exception("Failed to %s", description)
        return OperationResult.fail(EngineError.internal())
