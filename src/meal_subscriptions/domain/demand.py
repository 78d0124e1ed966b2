"""Domain models for daily meal demand."""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from meal_subscriptions.domain.catalog import (
    IngredientRecord,
    MealIngredientRecord,
    MealRecord,
    PlanRecord,
)
from meal_subscriptions.domain.menus import MenuCycleDay, MenuDayAssignment
from meal_subscriptions.domain.subscriptions import SubscriptionRecord


@dataclass(frozen=True)
class DemandSnapshot:
    """Consistent read of everything the aggregator needs."""

    plans: tuple[PlanRecord, ...]
    subscriptions: tuple[SubscriptionRecord, ...]
    cycle_days: tuple[MenuCycleDay, ...]
    assignments: tuple[MenuDayAssignment, ...]
    meals: dict[UUID, MealRecord]
    meal_ingredients: tuple[MealIngredientRecord, ...] = ()
    ingredients: dict[UUID, IngredientRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class MealDemand:
    """Number of portions of one meal."""

    meal_id: UUID
    meal_name: str
    count: int


@dataclass(frozen=True)
class RawMaterial:
    """Total quantity of one ingredient."""

    name: str
    quantity: float
    unit: str


@dataclass(frozen=True)
class DailyDemand:
    """Meals and raw materials required on one date."""

    date: date
    day_name: str
    day_number: int
    lunch_count: int
    dinner_count: int
    meals_to_prepare: tuple[MealDemand, ...]
    raw_materials: tuple[RawMaterial, ...] = ()

    @property
    def total_meals(self) -> int:
        return self.lunch_count + self.dinner_count


@dataclass(frozen=True)
class CalendarCell:
    """One cell of a month calendar."""

    date: date
    day_name: str
    day_number: int
    lunch_count: int
    dinner_count: int
    is_current_month: bool

    @property
    def total_meals(self) -> int:
        return self.lunch_count + self.dinner_count
