"""Error taxonomy for the subscription engine."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Categories of failures surfaced across the service boundary."""

    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    CONSISTENCY = "consistency_error"
    INTERNAL = "internal_error"


class SubscriptionError(Exception):
    """Base class for engine errors."""

    kind = ErrorKind.INTERNAL


class NotFoundError(SubscriptionError):
    """Unknown subscription, plan or cycle id."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(SubscriptionError):
    """Requested state is not reachable from the current state."""

    kind = ErrorKind.INVALID_TRANSITION


class ValidationError(SubscriptionError):
    """Malformed input."""

    kind = ErrorKind.VALIDATION


class ConflictError(SubscriptionError):
    """The subscription changed between read and write."""

    kind = ErrorKind.CONFLICT


class ConsistencyError(SubscriptionError):
    """Status and history disagree."""

    kind = ErrorKind.CONSISTENCY
