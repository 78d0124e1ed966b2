"""Daily meal demand derived from subscriptions, plans and the menu cycle.

The aggregation functions are pure: they read only the snapshot and the
target date they are given. ``DemandService`` loads one snapshot per call
and reuses it for every date it reports on.
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Protocol
from uuid import UUID

from meal_subscriptions.domain.catalog import MealIngredientRecord, PlanRecord
from meal_subscriptions.domain.demand import (
    CalendarCell,
    DailyDemand,
    DemandSnapshot,
    MealDemand,
    RawMaterial,
)
from meal_subscriptions.domain.errors import ValidationError
from meal_subscriptions.domain.menus import MealSlot, MenuDayAssignment
from meal_subscriptions.domain.results import OperationResult
from meal_subscriptions.domain.subscriptions import SubscriptionStatus
from meal_subscriptions.services.guard import run_guarded
from meal_subscriptions.services.slot_allocation import (
    SlotAllocator,
    sha256_v2,
    sunday_based_weekday,
)

_logger = logging.getLogger(__name__)

DEMAND_STATUSES = frozenset(
    {
        SubscriptionStatus.NEW_JOINER,
        SubscriptionStatus.CURIOUS,
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.EXITING,
    }
)
DEFAULT_CYCLE_LENGTH = 7
CALENDAR_CELLS = 42
MAX_ORDER_DAYS = 31
DECEMBER = 12
SUNDAY = 0
_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_SLOT_ORDER = (MealSlot.LUNCH, MealSlot.DINNER)


class DemandRepository(Protocol):
    """Persistence interface for the aggregator's inputs."""

    def load_snapshot(
        self,
        statuses: frozenset[SubscriptionStatus],
        include_ingredients: bool,
    ) -> DemandSnapshot:
        """Return plans, subscriptions in ``statuses`` and the active menu cycle."""


def day_name(day: date) -> str:
    """English three-letter weekday name."""
    return _DAY_NAMES[day.weekday()]


def resolve_cycle_day_index(target: date, snapshot: DemandSnapshot) -> int:
    """Map a calendar date to a cycle day index.

    The rotation is anchored on the day of the month, so a given date always
    maps to the same cycle day regardless of when the cycle was activated.
    """
    cycle_length = len(snapshot.cycle_days) or DEFAULT_CYCLE_LENGTH
    return (target.day - 1) % cycle_length


def is_delivery_day(plan: PlanRecord, target: date) -> bool:
    """Sunday never delivers; other days follow the plan's pattern."""
    if sunday_based_weekday(target) == SUNDAY:
        return False
    return target.isoweekday() in plan.delivery_pattern


def slot_assignments(
    snapshot: DemandSnapshot, day_index: int
) -> dict[MealSlot, MenuDayAssignment]:
    """Return the assignment for each slot on a cycle day.

    When a slot has several assignments the one with the smallest id wins.
    """
    day_ids = {day.id for day in snapshot.cycle_days if day.day_index == day_index}
    chosen: dict[MealSlot, MenuDayAssignment] = {}
    for assignment in sorted(snapshot.assignments, key=lambda item: str(item.id)):
        if assignment.cycle_day_id in day_ids and assignment.slot not in chosen:
            chosen[assignment.slot] = assignment
    return chosen


def subscriber_counts(snapshot: DemandSnapshot) -> list[tuple[PlanRecord, int]]:
    """Count demand-eligible subscribers per plan, ordered by plan code."""
    counts = Counter(
        subscription.plan_id
        for subscription in snapshot.subscriptions
        if subscription.status in DEMAND_STATUSES
    )
    plans = sorted(snapshot.plans, key=lambda plan: (plan.code, str(plan.id)))
    return [(plan, counts[plan.id]) for plan in plans if counts[plan.id]]


def compute_daily_demand(
    target: date,
    snapshot: DemandSnapshot,
    allocator: SlotAllocator = sha256_v2,
    include_raw_materials: bool = False,
    locale: str = "en",
) -> DailyDemand:
    """Compute meal counts, and optionally raw materials, for one date."""
    assignments = slot_assignments(snapshot, resolve_cycle_day_index(target, snapshot))
    requested: Counter[MealSlot] = Counter()
    for plan, subscribers in subscriber_counts(snapshot):
        if not is_delivery_day(plan, target):
            continue
        for slot in _plan_slots(plan, target, allocator):
            requested[slot] += subscribers

    # A slot without an assignment serves nobody that day.
    slot_totals: Counter[MealSlot] = Counter()
    meals: list[MealDemand] = []
    for slot in _SLOT_ORDER:
        assignment = assignments.get(slot)
        if assignment is None or not requested[slot]:
            continue
        slot_totals[slot] = requested[slot]
        meals.append(
            MealDemand(
                meal_id=assignment.meal_id,
                meal_name=_meal_name(snapshot, assignment.meal_id, locale),
                count=requested[slot],
            )
        )

    meals_to_prepare = tuple(meals)
    raw_materials = (
        rollup_raw_materials(snapshot, meals_to_prepare)
        if include_raw_materials
        else ()
    )
    return DailyDemand(
        date=target,
        day_name=day_name(target),
        day_number=target.day,
        lunch_count=slot_totals[MealSlot.LUNCH],
        dinner_count=slot_totals[MealSlot.DINNER],
        meals_to_prepare=meals_to_prepare,
        raw_materials=raw_materials,
    )


def rollup_raw_materials(
    snapshot: DemandSnapshot, meals: Iterable[MealDemand]
) -> tuple[RawMaterial, ...]:
    """Sum ingredient weights times portions, keyed by ingredient name and unit.

    A meal served in both slots contributes the portions of each.
    """
    meal_totals: Counter[UUID] = Counter()
    for meal in meals:
        meal_totals[meal.meal_id] += meal.count

    by_meal: dict[UUID, list[MealIngredientRecord]] = defaultdict(list)
    for link in snapshot.meal_ingredients:
        by_meal[link.meal_id].append(link)

    totals: dict[tuple[str, str], float] = {}
    for meal_id in sorted(meal_totals, key=str):
        portions = meal_totals[meal_id]
        links = sorted(
            by_meal.get(meal_id, []), key=lambda item: str(item.ingredient_id)
        )
        for link in links:
            ingredient = snapshot.ingredients.get(link.ingredient_id)
            if ingredient is None:
                continue
            key = (ingredient.display_name, ingredient.unit_base or "g")
            totals[key] = totals.get(key, 0.0) + link.weight_g * portions

    return tuple(
        RawMaterial(name=name, quantity=quantity, unit=unit)
        for (name, unit), quantity in sorted(totals.items())
    )


def build_month_calendar(
    year: int,
    month: int,
    snapshot: DemandSnapshot,
    allocator: SlotAllocator = sha256_v2,
    locale: str = "en",
) -> list[CalendarCell]:
    """Return a Sunday-first six-week grid of daily meal counts.

    Days outside ``month`` are filler cells with zero counts.
    """
    first = date(year, month, 1)
    start = first - timedelta(days=sunday_based_weekday(first))
    cells = []
    for offset in range(CALENDAR_CELLS):
        day = start + timedelta(days=offset)
        in_month = day.year == year and day.month == month
        if in_month:
            demand = compute_daily_demand(day, snapshot, allocator, locale=locale)
            lunch, dinner = demand.lunch_count, demand.dinner_count
        else:
            lunch, dinner = 0, 0
        cells.append(
            CalendarCell(
                date=day,
                day_name=day_name(day),
                day_number=day.day,
                lunch_count=lunch,
                dinner_count=dinner,
                is_current_month=in_month,
            )
        )
    return cells


def _plan_slots(
    plan: PlanRecord, target: date, allocator: SlotAllocator
) -> tuple[MealSlot, ...]:
    if plan.meals_per_day == 2:  # noqa: PLR2004
        return _SLOT_ORDER
    if plan.meals_per_day == 1:
        return (allocator(plan, target),)
    _logger.warning(
        "Plan %s has unsupported meals_per_day=%s", plan.code, plan.meals_per_day
    )
    return ()


def _meal_name(snapshot: DemandSnapshot, meal_id: UUID, locale: str) -> str:
    meal = snapshot.meals.get(meal_id)
    if meal is None:
        return "Unknown Meal"
    return meal.display_name(locale)


@dataclass
class DemandService:
    """Entry points for prep sheets and the dashboard calendar."""

    repository: DemandRepository
    allocator: SlotAllocator = field(default=sha256_v2)
    locale: str = "en"

    def daily_demand(
        self, target: date, include_raw_materials: bool = False
    ) -> OperationResult[DailyDemand]:
        """Return demand for a single date."""

        def compute() -> DailyDemand:
            snapshot = self.repository.load_snapshot(
                DEMAND_STATUSES, include_ingredients=include_raw_materials
            )
            return compute_daily_demand(
                target,
                snapshot,
                self.allocator,
                include_raw_materials=include_raw_materials,
                locale=self.locale,
            )

        return run_guarded(_logger, f"compute demand for {target}", compute)

    def daily_orders(
        self, start: date, days: int = 3
    ) -> OperationResult[list[DailyDemand]]:
        """Return prep sheets, with raw materials, for consecutive dates."""

        def compute() -> list[DailyDemand]:
            if not 1 <= days <= MAX_ORDER_DAYS:
                raise ValidationError(f"days must be between 1 and {MAX_ORDER_DAYS}")
            snapshot = self.repository.load_snapshot(
                DEMAND_STATUSES, include_ingredients=True
            )
            return [
                compute_daily_demand(
                    start + timedelta(days=offset),
                    snapshot,
                    self.allocator,
                    include_raw_materials=True,
                    locale=self.locale,
                )
                for offset in range(days)
            ]

        return run_guarded(_logger, f"compute daily orders from {start}", compute)

    def month_calendar(
        self, year: int, month: int
    ) -> OperationResult[list[CalendarCell]]:
        """Return the calendar grid for a month."""

        def compute() -> list[CalendarCell]:
            if not 1 <= month <= DECEMBER:
                raise ValidationError("month must be between 1 and 12")
            snapshot = self.repository.load_snapshot(
                DEMAND_STATUSES, include_ingredients=False
            )
            return build_month_calendar(
                year, month, snapshot, self.allocator, locale=self.locale
            )

        return run_guarded(_logger, f"build calendar for {year}-{month:02d}", compute)
