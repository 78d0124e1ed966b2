"""Customer pipeline summary for the admin dashboard."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from meal_subscriptions.domain.catalog import PlanRecord
from meal_subscriptions.domain.results import OperationResult
from meal_subscriptions.domain.subscriptions import (
    SubscriptionRecord,
    SubscriptionStatus,
)
from meal_subscriptions.services.catalog import CatalogRepository
from meal_subscriptions.services.guard import run_guarded
from meal_subscriptions.services.state_machine import SubscriptionRepository

_logger = logging.getLogger(__name__)

PIPELINE_STATUSES = (
    SubscriptionStatus.PENDING_APPROVAL,
    SubscriptionStatus.NEW_JOINER,
    SubscriptionStatus.CURIOUS,
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.FROZEN,
    SubscriptionStatus.EXITING,
    SubscriptionStatus.CANCELLED,
)
RECENT_CANCELLATION_DAYS = 30


@dataclass(frozen=True)
class PlanBucket:
    """Pipeline figures for one plan within a status."""

    plan_id: UUID
    plan_code: str
    count: int
    revenue: float


@dataclass(frozen=True)
class PipelineBucket:
    """Pipeline figures for one status."""

    status: SubscriptionStatus
    count: int
    revenue: float
    by_plan: list[PlanBucket]


@dataclass
class PipelineService:
    """Groups subscriptions by status and plan."""

    subscriptions: SubscriptionRepository
    catalog: CatalogRepository

    def summarize(self, today: date) -> OperationResult[list[PipelineBucket]]:
        """Return counts and revenue per pipeline status.

        Cancelled subscriptions only count when they ended in the last 30 days.
        """

        def compute() -> list[PipelineBucket]:
            plans = sorted(self.catalog.list_plans(), key=lambda plan: plan.code)
            plans_by_id = {plan.id: plan for plan in plans}
            rows = self.subscriptions.list_subscriptions(PIPELINE_STATUSES)
            cancelled_since = today - timedelta(days=RECENT_CANCELLATION_DAYS)

            buckets = []
            for status in PIPELINE_STATUSES:
                members = [row for row in rows if row.status == status]
                if status == SubscriptionStatus.CANCELLED:
                    members = [
                        row for row in members if row.end_date >= cancelled_since
                    ]
                buckets.append(_bucket(status, members, plans, plans_by_id))
            return buckets

        return run_guarded(_logger, f"summarize pipeline for {today}", compute)


def _revenue(row: SubscriptionRecord, plans_by_id: dict[UUID, PlanRecord]) -> float:
    if row.price_charged:
        return row.price_charged
    plan = plans_by_id.get(row.plan_id)
    return plan.base_price if plan else 0.0


def _bucket(
    status: SubscriptionStatus,
    members: list[SubscriptionRecord],
    plans: list[PlanRecord],
    plans_by_id: dict[UUID, PlanRecord],
) -> PipelineBucket:
    by_plan = []
    for plan in plans:
        plan_rows = [row for row in members if row.plan_id == plan.id]
        by_plan.append(
            PlanBucket(
                plan_id=plan.id,
                plan_code=plan.code,
                count=len(plan_rows),
                revenue=sum(_revenue(row, plans_by_id) for row in plan_rows),
            )
        )
    return PipelineBucket(
        status=status,
        count=len(members),
        revenue=sum(_revenue(row, plans_by_id) for row in members),
        by_plan=by_plan,
    )
