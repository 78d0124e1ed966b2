"""Result values returned by the engine's public operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from meal_subscriptions.domain.errors import ErrorKind, SubscriptionError

T = TypeVar("T")

GENERIC_FAILURE_MESSAGE = "Unexpected internal error"


@dataclass(frozen=True)
class EngineError:
    """Error payload of a failed operation."""

    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, exc: SubscriptionError) -> "EngineError":
        return cls(kind=exc.kind, message=str(exc))

    @classmethod
    def internal(cls) -> "EngineError":
        return cls(kind=ErrorKind.INTERNAL, message=GENERIC_FAILURE_MESSAGE)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Either a successful value or an error, never both."""

    success: bool
    data: T | None = None
    error: EngineError | None = None

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: EngineError) -> "OperationResult[T]":
        return cls(success=False, error=error)
