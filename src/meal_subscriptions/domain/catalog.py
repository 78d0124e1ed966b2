"""Domain models for plans, meals and ingredients."""

import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

_logger = logging.getLogger(__name__)

MONDAY = 1
SATURDAY = 6
DEFAULT_DELIVERY_PATTERN = frozenset({1, 2, 3, 4, 5})


class PlanStatus(StrEnum):
    """Catalog visibility of a plan."""

    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class PlanRecord:
    """Subscription offering."""

    id: UUID
    code: str
    meals_per_day: int
    delivery_pattern: frozenset[int]
    base_price: float
    discounted_price: float | None = None
    status: PlanStatus = PlanStatus.ACTIVE
    name_en: str | None = None
    name_ar: str | None = None

    @property
    def list_price(self) -> float:
        if self.discounted_price is not None:
            return self.discounted_price
        return self.base_price


@dataclass(frozen=True)
class MealRecord:
    """Meal with localized names."""

    id: UUID
    name_en: str | None
    name_ar: str | None
    is_active: bool = True

    def display_name(self, locale: str = "en") -> str:
        """Return the name in ``locale``, falling back to the other locale."""
        preferred = [self.name_en, self.name_ar]
        if locale == "ar":
            preferred.reverse()
        for name in preferred:
            if name:
                return name
        return "Unknown Meal"


@dataclass(frozen=True)
class IngredientRecord:
    """Raw material with its base unit."""

    id: UUID
    name_en: str | None
    name_ar: str | None
    unit_base: str = "g"
    per100_calories: float = 0.0
    per100_protein_g: float = 0.0
    per100_carbs_g: float = 0.0
    per100_fat_g: float = 0.0

    @property
    def display_name(self) -> str:
        return self.name_en or self.name_ar or "Unknown Ingredient"


@dataclass(frozen=True)
class MealIngredientRecord:
    """Weighted link between a meal and an ingredient."""

    meal_id: UUID
    ingredient_id: UUID
    weight_g: float


def parse_delivery_pattern(raw: object, plan_code: str = "") -> frozenset[int]:
    """Parse a stored delivery pattern into weekday numbers (Monday=1).

    Accepts a JSON list (``"[1,2,3]"``), a comma list (``"1,2,3"``) or an
    already-decoded sequence. Sunday is never a delivery day, so 0 and 7
    are dropped. Anything unusable falls back to Monday through Friday.
    """
    values: list[object]
    if isinstance(raw, list | tuple | set | frozenset):
        values = list(raw)
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = text.split(",")
        values = decoded if isinstance(decoded, list) else [decoded]
    else:
        values = []

    days: set[int] = set()
    for value in values:
        try:
            day = int(str(value).strip())
        except ValueError:
            continue
        if MONDAY <= day <= SATURDAY:
            days.add(day)

    if not days:
        _logger.warning(
            "Invalid delivery pattern for plan %s: %r, using Mon-Fri", plan_code, raw
        )
        return DEFAULT_DELIVERY_PATTERN
    return frozenset(days)
