"""Subscription status state machine with an append-only history."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol, TypeVar
from uuid import UUID

import pydantic

from meal_subscriptions.domain.errors import (
    ConflictError,
    ConsistencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from meal_subscriptions.domain.results import OperationResult
from meal_subscriptions.domain.subscriptions import (
    NewSubscription,
    PaymentMethod,
    StateHistoryEntry,
    SubscriptionDraft,
    SubscriptionRecord,
    SubscriptionStatus,
    parse_status,
)
from meal_subscriptions.services.catalog import CatalogRepository
from meal_subscriptions.services.guard import run_guarded

_logger = logging.getLogger(__name__)

T = TypeVar("T")

S = SubscriptionStatus

ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    S.PENDING_PAYMENT: frozenset({S.PENDING_APPROVAL, S.CANCELLED}),
    S.PENDING_APPROVAL: frozenset({S.ACTIVE, S.CANCELLED}),
    S.NEW_JOINER: frozenset({S.ACTIVE, S.FROZEN, S.EXITING, S.CANCELLED}),
    S.CURIOUS: frozenset({S.ACTIVE, S.FROZEN, S.EXITING, S.CANCELLED}),
    S.ACTIVE: frozenset({S.FROZEN, S.EXITING, S.CANCELLED}),
    S.FROZEN: frozenset({S.ACTIVE, S.EXITING, S.CANCELLED}),
    S.EXITING: frozenset({S.CANCELLED, S.ACTIVE}),
    S.CANCELLED: frozenset(),
    S.EXPIRED: frozenset(),
}

NEW_JOINER_REQUIRED_CYCLES = 2
SYSTEM_ACTOR = "system"
CREATION_REASON = "Initial subscription creation"


class SubscriptionRepository(Protocol):
    """Persistence interface for subscriptions and their history."""

    def get_subscription(self, subscription_id: UUID) -> SubscriptionRecord | None:
        """Return a subscription by id, if present."""

    def list_subscriptions(
        self, statuses: Iterable[SubscriptionStatus] | None = None
    ) -> list[SubscriptionRecord]:
        """Return subscriptions, optionally restricted to some statuses."""

    def list_new_joiners_ready(self, min_cycles: int) -> list[SubscriptionRecord]:
        """Return New_Joiner subscriptions with at least ``min_cycles`` cycles."""

    def list_exiting_ended(self, before: date) -> list[SubscriptionRecord]:
        """Return Exiting subscriptions whose end date is before ``before``."""

    def create_with_history(
        self,
        subscription: NewSubscription,
        reason: str,
        changed_by: str,
        created_at: datetime,
    ) -> SubscriptionRecord:
        """Insert a subscription and its creation history entry atomically."""

    def apply_transition(  # noqa: PLR0913
        self,
        subscription_id: UUID,
        expected_status: SubscriptionStatus,
        new_status: SubscriptionStatus,
        reason: str | None,
        changed_by: str | None,
        changed_at: datetime,
    ) -> SubscriptionRecord | None:
        """Write the status and append history atomically.

        Returns ``None`` without writing anything when the stored status is
        no longer ``expected_status``.
        """

    def record_successful_payment(  # noqa: PLR0913
        self,
        subscription_id: UUID,
        expected_status: SubscriptionStatus,
        expected_cycles: int,
        new_status: SubscriptionStatus | None,
        reason: str | None,
        changed_by: str | None,
        paid_at: datetime,
    ) -> SubscriptionRecord | None:
        """Count a paid cycle and apply ``new_status``, if any, atomically.

        A status change appends a history row in the same unit. Returns
        ``None`` without writing anything when the stored status or cycle
        count no longer matches what the caller read.
        """

    def list_history(self, subscription_id: UUID) -> list[StateHistoryEntry]:
        """Return history entries oldest first."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    """Return whether ``target`` is reachable from ``current`` in one step."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def allowed_targets(current: SubscriptionStatus) -> list[SubscriptionStatus]:
    """Return reachable states in declaration order."""
    reachable = ALLOWED_TRANSITIONS.get(current, frozenset())
    return [status for status in SubscriptionStatus if status in reachable]


def determine_initial_state(
    payment_method: PaymentMethod, auto_renewal: bool
) -> SubscriptionStatus:
    """Pick the starting status for a new signup."""
    if payment_method == PaymentMethod.CREDIT_CARD:
        return S.NEW_JOINER if auto_renewal else S.CURIOUS
    return S.PENDING_APPROVAL


@dataclass
class SubscriptionStateService:
    """Validates and applies subscription status transitions."""

    repository: SubscriptionRepository
    catalog: CatalogRepository
    clock: Callable[[], datetime] = field(default=_utc_now)

    def execute_transition(
        self,
        subscription_id: UUID,
        new_state: SubscriptionStatus | str,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> OperationResult[SubscriptionRecord]:
        """Move a subscription to ``new_state`` and record the change."""
        return self._guarded(
            "transition",
            subscription_id,
            lambda: self._transition(subscription_id, new_state, reason, changed_by),
        )

    def bulk_transition(
        self,
        subscription_ids: Iterable[UUID],
        new_state: SubscriptionStatus | str,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> dict[UUID, OperationResult[SubscriptionRecord]]:
        """Apply the same transition to many subscriptions independently."""
        return {
            subscription_id: self.execute_transition(
                subscription_id, new_state, reason, changed_by
            )
            for subscription_id in subscription_ids
        }

    def create_subscription_with_state(
        self,
        data: Mapping[str, object] | SubscriptionDraft,
        changed_by: str | None = None,
    ) -> OperationResult[SubscriptionRecord]:
        """Create a subscription together with its creation history entry."""
        return self._guarded(
            "create", None, lambda: self._create(data, changed_by or SYSTEM_ACTOR)
        )

    def get_state_history(
        self, subscription_id: UUID
    ) -> OperationResult[list[StateHistoryEntry]]:
        """Return the audit trail of a subscription."""

        def load() -> list[StateHistoryEntry]:
            self._require(subscription_id)
            return self.repository.list_history(subscription_id)

        return self._guarded("load history for", subscription_id, load)

    def get_allowed_targets(
        self, subscription_id: UUID
    ) -> OperationResult[list[SubscriptionStatus]]:
        """Return the states the subscription may move to next."""
        return self._guarded(
            "list transitions for",
            subscription_id,
            lambda: allowed_targets(self._require(subscription_id).status),
        )

    def process_payment_success(
        self, subscription_id: UUID
    ) -> OperationResult[SubscriptionRecord]:
        """Count a successful payment cycle and promote the status if due."""
        return self._guarded(
            "record payment for",
            subscription_id,
            lambda: self._payment_success(subscription_id),
        )

    def process_payment_failure(
        self, subscription_id: UUID
    ) -> OperationResult[SubscriptionRecord]:
        """Cancel a subscription whose payment failed."""

        def fail() -> SubscriptionRecord:
            subscription = self._require(subscription_id)
            if subscription.status.is_terminal:
                raise InvalidTransitionError(
                    f"Cannot process payment failure for {subscription.status} "
                    "subscription"
                )
            return self._transition(
                subscription_id, S.CANCELLED, "Payment failure", SYSTEM_ACTOR
            )

        return self._guarded("record payment failure for", subscription_id, fail)

    def _transition(
        self,
        subscription_id: UUID,
        new_state: SubscriptionStatus | str,
        reason: str | None,
        changed_by: str | None,
    ) -> SubscriptionRecord:
        target = parse_status(new_state)
        subscription = self._require(subscription_id)
        if not can_transition(subscription.status, target):
            raise InvalidTransitionError(
                f"Invalid transition from {subscription.status} to {target}"
            )
        updated = self.repository.apply_transition(
            subscription_id=subscription_id,
            expected_status=subscription.status,
            new_status=target,
            reason=reason,
            changed_by=changed_by,
            changed_at=self.clock(),
        )
        if updated is None:
            raise ConflictError(
                f"Subscription {subscription_id} changed status concurrently"
            )
        if updated.status != target:
            raise ConsistencyError(
                f"Subscription {subscription_id} stored {updated.status}, "
                f"expected {target}"
            )
        _logger.info(
            "Subscription %s: %s -> %s by %s (%s)",
            subscription_id,
            subscription.status,
            target,
            changed_by,
            reason,
        )
        return updated

    def _create(
        self, data: Mapping[str, object] | SubscriptionDraft, changed_by: str
    ) -> SubscriptionRecord:
        try:
            draft = SubscriptionDraft.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ValidationError(_describe_validation_error(exc)) from exc
        plan = self.catalog.get_plan(draft.plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {draft.plan_id} not found")
        status = draft.status or determine_initial_state(
            draft.payment_method, draft.auto_renewal
        )
        price = draft.price_charged
        record = self.repository.create_with_history(
            NewSubscription(
                user_id=draft.user_id,
                plan_id=draft.plan_id,
                status=status,
                start_date=draft.start_date,
                end_date=draft.end_date,
                price_charged=plan.list_price if price is None else price,
                payment_method=draft.payment_method,
                auto_renewal=draft.auto_renewal,
                notes=draft.notes,
            ),
            reason=CREATION_REASON,
            changed_by=changed_by,
            created_at=self.clock(),
        )
        _logger.info(
            "Subscription %s created on plan %s as %s", record.id, plan.code, status
        )
        return record

    def _payment_success(self, subscription_id: UUID) -> SubscriptionRecord:
        subscription = self._require(subscription_id)
        if subscription.status.is_terminal:
            raise InvalidTransitionError(
                f"Cannot record payment for {subscription.status} subscription"
            )
        promotion = _promotion_after_payment(
            subscription.status, subscription.completed_cycles + 1
        )
        target, reason = promotion or (None, None)
        if target is not None and not can_transition(subscription.status, target):
            raise ConsistencyError(
                f"Payment promotion {subscription.status} -> {target} is not allowed"
            )
        updated = self.repository.record_successful_payment(
            subscription_id=subscription_id,
            expected_status=subscription.status,
            expected_cycles=subscription.completed_cycles,
            new_status=target,
            reason=reason,
            changed_by=SYSTEM_ACTOR,
            paid_at=self.clock(),
        )
        if updated is None:
            raise ConflictError(
                f"Subscription {subscription_id} changed before the payment "
                "was recorded"
            )
        _logger.info(
            "Subscription %s: payment recorded, cycles=%s status=%s",
            subscription_id,
            updated.completed_cycles,
            updated.status,
        )
        return updated

    def _require(self, subscription_id: UUID) -> SubscriptionRecord:
        subscription = self.repository.get_subscription(subscription_id)
        if subscription is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    @staticmethod
    def _guarded(
        action: str, subscription_id: UUID | None, operation: Callable[[], T]
    ) -> OperationResult[T]:
        description = f"{action} subscription"
        if subscription_id is not None:
            description = f"{description} {subscription_id}"
        return run_guarded(_logger, description, operation)


def _promotion_after_payment(
    status: SubscriptionStatus, completed_cycles: int
) -> tuple[SubscriptionStatus, str] | None:
    if status == S.PENDING_PAYMENT:
        return S.PENDING_APPROVAL, "Payment received, awaiting approval"
    if status == S.PENDING_APPROVAL:
        return S.ACTIVE, "Payment confirmed"
    if status == S.NEW_JOINER and completed_cycles >= NEW_JOINER_REQUIRED_CYCLES:
        return S.ACTIVE, "Completed required payment cycles"
    return None


def _describe_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
