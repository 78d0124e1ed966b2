"""Row parsers shared by the Supabase repositories."""

from datetime import date, datetime
from uuid import UUID

from meal_subscriptions.domain.catalog import (
    IngredientRecord,
    MealIngredientRecord,
    MealRecord,
    PlanRecord,
    PlanStatus,
    parse_delivery_pattern,
)
from meal_subscriptions.domain.menus import MealSlot, MenuCycleDay, MenuDayAssignment
from meal_subscriptions.domain.subscriptions import (
    PaymentMethod,
    StateHistoryEntry,
    SubscriptionRecord,
    parse_status,
)

SUBSCRIPTION_COLUMNS = (
    "id, user_id, plan_id, status, start_date, end_date, price_charged, "
    "payment_method, auto_renewal, completed_cycles, has_successful_payment, "
    "notes, created_at, updated_at"
)
HISTORY_COLUMNS = (
    "id, subscription_id, previous_state, new_state, reason, changed_by, created_at"
)
PLAN_COLUMNS = (
    "id, code, name_en, name_ar, meals_per_day, delivery_pattern, "
    "base_price, discounted_price, status"
)


def _date(value: object) -> date:
    return date.fromisoformat(str(value)[:10])


def _datetime(value: object) -> datetime:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.min


def _optional_float(value: object) -> float | None:
    return float(value) if value is not None else None


def parse_subscription(row: dict[str, object]) -> SubscriptionRecord:
    """Build a subscription from a ``subscriptions`` row."""
    return SubscriptionRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        plan_id=UUID(str(row["plan_id"])),
        status=parse_status(row["status"]),
        start_date=_date(row["start_date"]),
        end_date=_date(row["end_date"]),
        price_charged=float(row.get("price_charged") or 0.0),
        payment_method=PaymentMethod(row.get("payment_method") or "credit_card"),
        auto_renewal=bool(row.get("auto_renewal", True)),
        completed_cycles=int(row.get("completed_cycles") or 0),
        has_successful_payment=bool(row.get("has_successful_payment", False)),
        created_at=_datetime(row.get("created_at")),
        updated_at=_datetime(row.get("updated_at")),
        notes=row.get("notes"),
    )


def parse_history(row: dict[str, object]) -> StateHistoryEntry:
    """Build a history entry from a ``subscription_state_history`` row."""
    previous = row.get("previous_state")
    return StateHistoryEntry(
        id=int(row["id"]),
        subscription_id=UUID(str(row["subscription_id"])),
        previous_state=parse_status(previous) if previous else None,
        new_state=parse_status(row["new_state"]),
        reason=row.get("reason"),
        changed_by=row.get("changed_by"),
        created_at=_datetime(row.get("created_at")),
    )


def parse_plan(row: dict[str, object]) -> PlanRecord:
    """Build a plan from a ``plans`` row."""
    code = str(row.get("code") or "")
    return PlanRecord(
        id=UUID(str(row["id"])),
        code=code,
        meals_per_day=int(row.get("meals_per_day") or 1),
        delivery_pattern=parse_delivery_pattern(row.get("delivery_pattern"), code),
        base_price=float(row.get("base_price") or 0.0),
        discounted_price=_optional_float(row.get("discounted_price")),
        status=PlanStatus(row.get("status") or "active"),
        name_en=row.get("name_en"),
        name_ar=row.get("name_ar"),
    )


def parse_meal(row: dict[str, object]) -> MealRecord:
    """Build a meal from a ``meals`` row."""
    return MealRecord(
        id=UUID(str(row["id"])),
        name_en=row.get("name_en"),
        name_ar=row.get("name_ar"),
        is_active=bool(row.get("is_active", True)),
    )


def parse_ingredient(row: dict[str, object]) -> IngredientRecord:
    """Build an ingredient from an ``ingredients`` row."""
    return IngredientRecord(
        id=UUID(str(row["id"])),
        name_en=row.get("name_en"),
        name_ar=row.get("name_ar"),
        unit_base=str(row.get("unit_base") or "g"),
        per100_calories=float(row.get("per100_calories") or 0.0),
        per100_protein_g=float(row.get("per100_protein_g") or 0.0),
        per100_carbs_g=float(row.get("per100_carbs_g") or 0.0),
        per100_fat_g=float(row.get("per100_fat_g") or 0.0),
    )


def parse_meal_ingredient(row: dict[str, object]) -> MealIngredientRecord:
    """Build a meal/ingredient link from a ``meal_ingredients`` row."""
    return MealIngredientRecord(
        meal_id=UUID(str(row["meal_id"])),
        ingredient_id=UUID(str(row["ingredient_id"])),
        weight_g=float(row.get("weight_g") or 0.0),
    )


def parse_cycle_day(row: dict[str, object]) -> MenuCycleDay:
    """Build a cycle day from a ``menu_cycle_days`` row."""
    return MenuCycleDay(
        id=UUID(str(row["id"])),
        cycle_id=UUID(str(row["cycle_id"])),
        day_index=int(row["day_index"]),
        label=row.get("label"),
    )


def parse_assignment(row: dict[str, object]) -> MenuDayAssignment:
    """Build an assignment from a ``menu_day_assignments`` row."""
    return MenuDayAssignment(
        id=UUID(str(row["id"])),
        cycle_day_id=UUID(str(row["cycle_day_id"])),
        meal_id=UUID(str(row["meal_id"])),
        slot=MealSlot(row["slot"]),
    )


def first_row(data: object) -> dict[str, object] | None:
    """Return the single row of an RPC response, if any."""
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None
