"""Supabase-backed subscription repository."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from meal_subscriptions.adapters.supabase_rows import (
    HISTORY_COLUMNS,
    SUBSCRIPTION_COLUMNS,
    first_row,
    parse_history,
    parse_subscription,
)
from meal_subscriptions.domain.subscriptions import (
    NewSubscription,
    StateHistoryEntry,
    SubscriptionRecord,
    SubscriptionStatus,
)
from meal_subscriptions.services.state_machine import SubscriptionRepository


@dataclass
class SupabaseSubscriptionRepository(SubscriptionRepository):
    """Supabase implementation for subscriptions and their history.

    Writes that touch both the status and the history go through Postgres
    functions so each one runs in a single transaction.
    """

    client: Client

    def get_subscription(self, subscription_id: UUID) -> SubscriptionRecord | None:
        """Return a subscription by id, if present."""
        response = (
            self.client.table("subscriptions")
            .select(SUBSCRIPTION_COLUMNS)
            .eq("id", str(subscription_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_subscription(response.data[0])

    def list_subscriptions(
        self, statuses: Iterable[SubscriptionStatus] | None = None
    ) -> list[SubscriptionRecord]:
        """Return subscriptions, optionally restricted to some statuses."""
        query = self.client.table("subscriptions").select(SUBSCRIPTION_COLUMNS)
        if statuses is not None:
            query = query.in_("status", [str(status) for status in statuses])
        response = query.order("created_at", desc=False).execute()
        return [parse_subscription(row) for row in response.data or []]

    def list_new_joiners_ready(self, min_cycles: int) -> list[SubscriptionRecord]:
        """Return New_Joiner subscriptions with enough completed cycles."""
        response = (
            self.client.table("subscriptions")
            .select(SUBSCRIPTION_COLUMNS)
            .eq("status", str(SubscriptionStatus.NEW_JOINER))
            .gte("completed_cycles", min_cycles)
            .order("created_at", desc=False)
            .execute()
        )
        return [parse_subscription(row) for row in response.data or []]

    def list_exiting_ended(self, before: date) -> list[SubscriptionRecord]:
        """Return Exiting subscriptions that ended before ``before``."""
        response = (
            self.client.table("subscriptions")
            .select(SUBSCRIPTION_COLUMNS)
            .eq("status", str(SubscriptionStatus.EXITING))
            .lt("end_date", before.isoformat())
            .order("end_date", desc=False)
            .execute()
        )
        return [parse_subscription(row) for row in response.data or []]

    def create_with_history(
        self,
        subscription: NewSubscription,
        reason: str,
        changed_by: str,
        created_at: datetime,
    ) -> SubscriptionRecord:
        """Insert the subscription and its creation history entry."""
        response = self.client.rpc(
            "create_subscription_with_history",
            {
                "p_user_id": str(subscription.user_id),
                "p_plan_id": str(subscription.plan_id),
                "p_status": str(subscription.status),
                "p_start_date": subscription.start_date.isoformat(),
                "p_end_date": subscription.end_date.isoformat(),
                "p_price_charged": subscription.price_charged,
                "p_payment_method": str(subscription.payment_method),
                "p_auto_renewal": subscription.auto_renewal,
                "p_notes": subscription.notes,
                "p_reason": reason,
                "p_changed_by": changed_by,
                "p_created_at": created_at.isoformat(),
            },
        ).execute()
        row = first_row(response.data)
        if row is None:
            raise RuntimeError("Failed to create subscription")
        return parse_subscription(row)

    def apply_transition(  # noqa: PLR0913
        self,
        subscription_id: UUID,
        expected_status: SubscriptionStatus,
        new_status: SubscriptionStatus,
        reason: str | None,
        changed_by: str | None,
        changed_at: datetime,
    ) -> SubscriptionRecord | None:
        """Compare-and-set the status and append a history row."""
        response = self.client.rpc(
            "apply_subscription_transition",
            {
                "p_subscription_id": str(subscription_id),
                "p_expected_status": str(expected_status),
                "p_new_status": str(new_status),
                "p_reason": reason,
                "p_changed_by": changed_by,
                "p_changed_at": changed_at.isoformat(),
            },
        ).execute()
        row = first_row(response.data)
        return parse_subscription(row) if row else None

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
        """Count a paid cycle and apply an optional promotion in one call."""
        response = self.client.rpc(
            "record_subscription_payment",
            {
                "p_subscription_id": str(subscription_id),
                "p_expected_status": str(expected_status),
                "p_expected_cycles": expected_cycles,
                "p_new_status": str(new_status) if new_status else None,
                "p_reason": reason,
                "p_changed_by": changed_by,
                "p_paid_at": paid_at.isoformat(),
            },
        ).execute()
        row = first_row(response.data)
        return parse_subscription(row) if row else None

    def list_history(self, subscription_id: UUID) -> list[StateHistoryEntry]:
        """Return history entries in insertion order."""
        response = (
            self.client.table("subscription_state_history")
            .select(HISTORY_COLUMNS)
            .eq("subscription_id", str(subscription_id))
            .order("id", desc=False)
            .execute()
        )
        return [parse_history(row) for row in response.data or []]
