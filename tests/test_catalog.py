"""Tests for plan catalog parsing and lookups."""

from uuid import uuid4

from meal_subscriptions.domain.catalog import (
    DEFAULT_DELIVERY_PATTERN,
    IngredientRecord,
    MealRecord,
    parse_delivery_pattern,
)
from meal_subscriptions.services.catalog import CatalogService
from tests.conftest import make_plan


def test_parse_delivery_pattern_formats() -> None:
    assert parse_delivery_pattern("[1,3,5]") == frozenset({1, 3, 5})
    assert parse_delivery_pattern("1, 2,6") == frozenset({1, 2, 6})
    assert parse_delivery_pattern([2, 4]) == frozenset({2, 4})


def test_parse_delivery_pattern_drops_sunday() -> None:
    assert parse_delivery_pattern([0, 1, 7]) == frozenset({1})


def test_parse_delivery_pattern_falls_back() -> None:
    assert parse_delivery_pattern("weekends", "FOCUS") == DEFAULT_DELIVERY_PATTERN
    assert parse_delivery_pattern(None) == DEFAULT_DELIVERY_PATTERN
    assert parse_delivery_pattern("[]") == DEFAULT_DELIVERY_PATTERN


def test_meal_display_name_fallbacks() -> None:
    meal = MealRecord(id=uuid4(), name_en="Falafel", name_ar=None)
    nameless = MealRecord(id=uuid4(), name_en=None, name_ar="")

    assert meal.display_name("ar") == "Falafel"
    assert nameless.display_name() == "Unknown Meal"


def test_ingredient_display_name() -> None:
    ingredient = IngredientRecord(id=uuid4(), name_en=None, name_ar="أرز")

    assert ingredient.display_name == "أرز"


def test_list_price_prefers_discount() -> None:
    assert make_plan("FOCUS", base_price=100.0).list_price == 100.0
    assert make_plan("FOCUS", discounted_price=80.0).list_price == 80.0


def test_catalog_service_orders_by_code(catalog_repository) -> None:
    catalog_repository.add(make_plan("LITE"))
    catalog_repository.add(make_plan("FLEX"))

    plans = CatalogService(catalog_repository).list_plans()

    assert [plan.code for plan in plans] == ["FLEX", "LITE"]
