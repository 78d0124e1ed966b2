"""Domain models for subscriptions and their status history."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from meal_subscriptions.domain.errors import ValidationError


class SubscriptionStatus(StrEnum):
    """Canonical subscription states."""

    PENDING_PAYMENT = "pending_payment"
    PENDING_APPROVAL = "Pending_Approval"
    NEW_JOINER = "New_Joiner"
    CURIOUS = "Curious"
    ACTIVE = "Active"
    FROZEN = "Frozen"
    EXITING = "Exiting"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED}
)

# Legacy spellings still sent by older callers. Anything not listed is rejected.
_STATUS_ALIASES = {
    "New": SubscriptionStatus.NEW_JOINER,
    "active": SubscriptionStatus.ACTIVE,
    "frozen": SubscriptionStatus.FROZEN,
    "exiting": SubscriptionStatus.EXITING,
    "curious": SubscriptionStatus.CURIOUS,
    "Cancelled": SubscriptionStatus.CANCELLED,
    "Expired": SubscriptionStatus.EXPIRED,
    "pending_approval": SubscriptionStatus.PENDING_APPROVAL,
}


def parse_status(raw: object) -> SubscriptionStatus:
    """Normalize a status name or legacy alias to its canonical value."""
    if isinstance(raw, SubscriptionStatus):
        return raw
    if isinstance(raw, str):
        cleaned = raw.strip()
        try:
            return SubscriptionStatus(cleaned)
        except ValueError:
            alias = _STATUS_ALIASES.get(cleaned)
            if alias is not None:
                return alias
    raise ValidationError(f"Unknown subscription status: {raw!r}")


class PaymentMethod(StrEnum):
    """How a subscription is paid for."""

    CREDIT_CARD = "credit_card"
    WIRE_TRANSFER = "wire_transfer"
    OTHER = "other"


@dataclass(frozen=True)
class SubscriptionRecord:
    """Represents a persisted subscription."""

    id: UUID
    user_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: date
    end_date: date
    price_charged: float
    payment_method: PaymentMethod
    auto_renewal: bool
    completed_cycles: int
    has_successful_payment: bool
    created_at: datetime
    updated_at: datetime
    notes: str | None = None


@dataclass(frozen=True)
class StateHistoryEntry:
    """Immutable audit row for one status change."""

    id: int
    subscription_id: UUID
    previous_state: SubscriptionStatus | None
    new_state: SubscriptionStatus
    reason: str | None
    changed_by: str | None
    created_at: datetime


@dataclass(frozen=True)
class NewSubscription:
    """Fully resolved values for inserting a subscription row."""

    user_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: date
    end_date: date
    price_charged: float
    payment_method: PaymentMethod
    auto_renewal: bool
    notes: str | None = None


class SubscriptionDraft(BaseModel):
    """Caller-supplied data for creating a subscription."""

    user_id: UUID
    plan_id: UUID
    start_date: date
    end_date: date
    status: SubscriptionStatus | None = None
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    auto_renewal: bool = True
    price_charged: float | None = Field(default=None, ge=0)
    notes: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        if value is None:
            return None
        try:
            return parse_status(value)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc

    @model_validator(mode="after")
    def _check_period(self) -> "SubscriptionDraft":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
