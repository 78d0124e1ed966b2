"""Domain models for the rotating menu cycle."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class MealSlot(StrEnum):
    """Meal occasion within a day."""

    LUNCH = "lunch"
    DINNER = "dinner"


@dataclass(frozen=True)
class MenuCycleDay:
    """One position in a menu cycle."""

    id: UUID
    cycle_id: UUID
    day_index: int
    label: str | None = None


@dataclass(frozen=True)
class MenuDayAssignment:
    """Meal served in a slot on a cycle day."""

    id: UUID
    cycle_day_id: UUID
    meal_id: UUID
    slot: MealSlot
