"""JSON serialization of engine results."""

from typing import TypeVar

from fastapi import HTTPException, status

from meal_subscriptions.domain.catalog import PlanRecord
from meal_subscriptions.domain.demand import CalendarCell, DailyDemand
from meal_subscriptions.domain.errors import ErrorKind
from meal_subscriptions.domain.results import (
    GENERIC_FAILURE_MESSAGE,
    EngineError,
    OperationResult,
)
from meal_subscriptions.domain.subscriptions import (
    StateHistoryEntry,
    SubscriptionRecord,
)
from meal_subscriptions.services.pipeline import PipelineBucket

T = TypeVar("T")

_STATUS_CODES = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def error_payload(error: EngineError | None) -> dict[str, object]:
    """Client-facing error body; internal details never leave the server."""
    if error is None or error.kind not in _STATUS_CODES:
        return {"kind": str(ErrorKind.INTERNAL), "message": GENERIC_FAILURE_MESSAGE}
    return {"kind": str(error.kind), "message": error.message}


def unwrap(result: OperationResult[T]) -> T:
    """Return the result value or raise the matching HTTP error."""
    if result.success:
        return result.data  # type: ignore[return-value]
    kind = result.error.kind if result.error else ErrorKind.INTERNAL
    raise HTTPException(
        status_code=_STATUS_CODES.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error_payload(result.error),
    )


def serialize_subscription(subscription: SubscriptionRecord) -> dict[str, object]:
    return {
        "id": str(subscription.id),
        "userId": str(subscription.user_id),
        "planId": str(subscription.plan_id),
        "status": str(subscription.status),
        "startDate": subscription.start_date.isoformat(),
        "endDate": subscription.end_date.isoformat(),
        "priceCharged": subscription.price_charged,
        "paymentMethod": str(subscription.payment_method),
        "autoRenewal": subscription.auto_renewal,
        "completedCycles": subscription.completed_cycles,
        "hasSuccessfulPayment": subscription.has_successful_payment,
        "notes": subscription.notes,
        "createdAt": subscription.created_at.isoformat(),
        "updatedAt": subscription.updated_at.isoformat(),
    }


def serialize_history(entry: StateHistoryEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "subscriptionId": str(entry.subscription_id),
        "previousState": str(entry.previous_state) if entry.previous_state else None,
        "newState": str(entry.new_state),
        "reason": entry.reason,
        "changedBy": entry.changed_by,
        "createdAt": entry.created_at.isoformat(),
    }


def serialize_daily_demand(demand: DailyDemand) -> dict[str, object]:
    return {
        "date": demand.date.isoformat(),
        "dayName": demand.day_name,
        "dayNumber": demand.day_number,
        "lunchCount": demand.lunch_count,
        "dinnerCount": demand.dinner_count,
        "totalMeals": demand.total_meals,
        "mealsToPrepare": [
            {"mealName": meal.meal_name, "count": meal.count}
            for meal in demand.meals_to_prepare
        ],
        "rawMaterials": [
            {"name": item.name, "quantity": item.quantity, "unit": item.unit}
            for item in demand.raw_materials
        ],
    }


def serialize_calendar_cell(cell: CalendarCell) -> dict[str, object]:
    return {
        "date": cell.date.isoformat(),
        "dayName": cell.day_name,
        "dayNumber": cell.day_number,
        "lunchCount": cell.lunch_count,
        "dinnerCount": cell.dinner_count,
        "totalMeals": cell.total_meals,
        "isCurrentMonth": cell.is_current_month,
    }


def serialize_pipeline(buckets: list[PipelineBucket]) -> dict[str, object]:
    return {
        str(bucket.status): {
            "count": bucket.count,
            "revenue": bucket.revenue,
            "byPlan": [
                {
                    "planId": str(item.plan_id),
                    "planCode": item.plan_code,
                    "count": item.count,
                    "revenue": item.revenue,
                }
                for item in bucket.by_plan
            ],
        }
        for bucket in buckets
    }


def serialize_plan(plan: PlanRecord) -> dict[str, object]:
    return {
        "id": str(plan.id),
        "code": plan.code,
        "nameEn": plan.name_en,
        "nameAr": plan.name_ar,
        "mealsPerDay": plan.meals_per_day,
        "deliveryPattern": sorted(plan.delivery_pattern),
        "basePrice": plan.base_price,
        "discountedPrice": plan.discounted_price,
        "status": str(plan.status),
    }
