"""Deterministic lunch/dinner allocation for single-meal plans.

A single-meal plan's whole cohort receives the same slot on a given date.
The rule is versioned so a prep sheet can always be reproduced with the
rule that produced it:

``v1`` (charcode-v1)
    ``(ord(code[0]) + ord(code[1]) + weekday + day_of_month) % 2`` where
    weekday counts Sunday as 0. Codes shorter than two characters hash as
    0. Renaming a plan code can move its cohort.

``v2`` (sha256-v2)
    Lowest bit of the first byte of
    ``sha256("slot-v2:<plan id>:<ISO date>")``. Keyed on the plan id, so
    code renames have no effect.

In both versions 0 means lunch and 1 means dinner.
"""

import hashlib
from collections.abc import Callable
from datetime import date

from meal_subscriptions.domain.catalog import PlanRecord
from meal_subscriptions.domain.menus import MealSlot

SlotAllocator = Callable[[PlanRecord, date], MealSlot]


def sunday_based_weekday(day: date) -> int:
    """Weekday number with Sunday=0 through Saturday=6."""
    return day.isoweekday() % 7


def _slot_for_bit(bit: int) -> MealSlot:
    return MealSlot.LUNCH if bit == 0 else MealSlot.DINNER


def charcode_v1(plan: PlanRecord, day: date) -> MealSlot:
    """Legacy character-code allocation."""
    code = plan.code
    plan_hash = ord(code[0]) + ord(code[1]) if len(code) >= 2 else 0  # noqa: PLR2004
    day_hash = sunday_based_weekday(day) + day.day
    return _slot_for_bit((plan_hash + day_hash) % 2)


def sha256_v2(plan: PlanRecord, day: date) -> MealSlot:
    """Digest-based allocation keyed on the plan id."""
    digest = hashlib.sha256(f"slot-v2:{plan.id}:{day.isoformat()}".encode()).digest()
    return _slot_for_bit(digest[0] & 1)


ALLOCATORS: dict[str, SlotAllocator] = {
    "v1": charcode_v1,
    "v2": sha256_v2,
}


def get_allocator(version: str) -> SlotAllocator:
    """Return the allocator registered under ``version``."""
    try:
        return ALLOCATORS[version]
    except KeyError:
        known = ", ".join(sorted(ALLOCATORS))
        raise ValueError(
            f"Unknown slot allocation version {version!r} (known: {known})"
        ) from None
