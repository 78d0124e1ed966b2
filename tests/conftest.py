"""Shared test fixtures."""

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import pytest

from meal_subscriptions.config import Settings
from meal_subscriptions.containers import AppContainer
from meal_subscriptions.domain.catalog import (
    IngredientRecord,
    MealIngredientRecord,
    MealRecord,
    PlanRecord,
)
from meal_subscriptions.domain.demand import DemandSnapshot
from meal_subscriptions.domain.menus import MealSlot, MenuCycleDay, MenuDayAssignment
from meal_subscriptions.domain.subscriptions import (
    NewSubscription,
    PaymentMethod,
    StateHistoryEntry,
    SubscriptionRecord,
    SubscriptionStatus,
)
from meal_subscriptions.services.catalog import CatalogRepository, CatalogService
from meal_subscriptions.services.demand import DemandRepository, DemandService
from meal_subscriptions.services.pipeline import PipelineService
from meal_subscriptions.services.slot_allocation import charcode_v1
from meal_subscriptions.services.state_machine import (
    SubscriptionRepository,
    SubscriptionStateService,
)
from meal_subscriptions.services.sweeps import SubscriptionSweepService

FIXED_NOW = datetime(2026, 10, 14, 8, 0, tzinfo=UTC)
TODAY = date(2026, 10, 14)
CYCLE_ID = UUID("00000000-0000-0000-0000-00000000c1c1")


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_plan(  # noqa: PLR0913
    code: str,
    meals_per_day: int = 2,
    delivery_pattern: Iterable[int] = (1, 2, 3, 4, 5),
    base_price: float = 1000.0,
    discounted_price: float | None = None,
    plan_id: UUID | None = None,
) -> PlanRecord:
    return PlanRecord(
        id=plan_id or uuid4(),
        code=code,
        meals_per_day=meals_per_day,
        delivery_pattern=frozenset(delivery_pattern),
        base_price=base_price,
        discounted_price=discounted_price,
        name_en=f"{code} plan",
    )


def make_subscription(  # noqa: PLR0913
    plan: PlanRecord,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    completed_cycles: int = 0,
    start_date: date = date(2026, 10, 1),
    end_date: date = date(2026, 10, 31),
    price_charged: float = 0.0,
) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=uuid4(),
        user_id=uuid4(),
        plan_id=plan.id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        price_charged=price_charged,
        payment_method=PaymentMethod.CREDIT_CARD,
        auto_renewal=True,
        completed_cycles=completed_cycles,
        has_successful_payment=completed_cycles > 0,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@dataclass
class InMemorySubscriptionRepository(SubscriptionRepository):
    """In-memory subscription repository with compare-and-set writes."""

    subscriptions: dict[UUID, SubscriptionRecord] = field(default_factory=dict)
    history: list[StateHistoryEntry] = field(default_factory=list)
    broken_ids: set[UUID] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        self.subscriptions[subscription.id] = subscription
        return subscription

    def get_subscription(self, subscription_id: UUID) -> SubscriptionRecord | None:
        return self.subscriptions.get(subscription_id)

    def list_subscriptions(
        self, statuses: Iterable[SubscriptionStatus] | None = None
    ) -> list[SubscriptionRecord]:
        rows = list(self.subscriptions.values())
        if statuses is None:
            return rows
        wanted = set(statuses)
        return [row for row in rows if row.status in wanted]

    def list_new_joiners_ready(self, min_cycles: int) -> list[SubscriptionRecord]:
        return [
            row
            for row in self.subscriptions.values()
            if row.status == SubscriptionStatus.NEW_JOINER
            and row.completed_cycles >= min_cycles
        ]

    def list_exiting_ended(self, before: date) -> list[SubscriptionRecord]:
        return [
            row
            for row in self.subscriptions.values()
            if row.status == SubscriptionStatus.EXITING and row.end_date < before
        ]

    def create_with_history(
        self,
        subscription: NewSubscription,
        reason: str,
        changed_by: str,
        created_at: datetime,
    ) -> SubscriptionRecord:
        with self._lock:
            record = SubscriptionRecord(
                id=uuid4(),
                user_id=subscription.user_id,
                plan_id=subscription.plan_id,
                status=subscription.status,
                start_date=subscription.start_date,
                end_date=subscription.end_date,
                price_charged=subscription.price_charged,
                payment_method=subscription.payment_method,
                auto_renewal=subscription.auto_renewal,
                completed_cycles=0,
                has_successful_payment=False,
                created_at=created_at,
                updated_at=created_at,
                notes=subscription.notes,
            )
            self.subscriptions[record.id] = record
            self._append(record.id, None, record.status, reason, changed_by, created_at)
            return record

    def apply_transition(  # noqa: PLR0913
        self,
        subscription_id: UUID,
        expected_status: SubscriptionStatus,
        new_status: SubscriptionStatus,
        reason: str | None,
        changed_by: str | None,
        changed_at: datetime,
    ) -> SubscriptionRecord | None:
        if subscription_id in self.broken_ids:
            raise RuntimeError("database unavailable")
        with self._lock:
            current = self.subscriptions.get(subscription_id)
            if current is None or current.status != expected_status:
                return None
            updated = replace(current, status=new_status, updated_at=changed_at)
            self.subscriptions[subscription_id] = updated
            self._append(
                subscription_id,
                expected_status,
                new_status,
                reason,
                changed_by,
                changed_at,
            )
            return updated

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
        with self._lock:
            current = self.subscriptions.get(subscription_id)
            if (
                current is None
                or current.status != expected_status
                or current.completed_cycles != expected_cycles
            ):
                return None
            updated = replace(
                current,
                status=new_status or current.status,
                completed_cycles=current.completed_cycles + 1,
                has_successful_payment=True,
                updated_at=paid_at,
            )
            self.subscriptions[subscription_id] = updated
            if new_status is not None:
                self._append(
                    subscription_id,
                    expected_status,
                    new_status,
                    reason,
                    changed_by,
                    paid_at,
                )
            return updated

    def list_history(self, subscription_id: UUID) -> list[StateHistoryEntry]:
        return [
            entry for entry in self.history if entry.subscription_id == subscription_id
        ]

    def _append(  # noqa: PLR0913
        self,
        subscription_id: UUID,
        previous: SubscriptionStatus | None,
        new: SubscriptionStatus,
        reason: str | None,
        changed_by: str | None,
        created_at: datetime,
    ) -> None:
        self.history.append(
            StateHistoryEntry(
                id=len(self.history) + 1,
                subscription_id=subscription_id,
                previous_state=previous,
                new_state=new,
                reason=reason,
                changed_by=changed_by,
                created_at=created_at,
            )
        )


@dataclass
class StaleReadSubscriptionRepository(InMemorySubscriptionRepository):
    """Changes the stored status right after the service reads it."""

    sneaky_status: SubscriptionStatus = SubscriptionStatus.CANCELLED

    def get_subscription(self, subscription_id: UUID) -> SubscriptionRecord | None:
        current = self.subscriptions.get(subscription_id)
        if current is not None:
            self.subscriptions[subscription_id] = replace(
                current, status=self.sneaky_status
            )
        return current


@dataclass
class InMemoryCatalogRepository(CatalogRepository):
    """In-memory plan catalog for tests."""

    plans: dict[UUID, PlanRecord] = field(default_factory=dict)

    def add(self, plan: PlanRecord) -> PlanRecord:
        self.plans[plan.id] = plan
        return plan

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        return self.plans.get(plan_id)

    def list_plans(self) -> list[PlanRecord]:
        return list(self.plans.values())


@dataclass
class InMemoryDemandRepository(DemandRepository):
    """Builds demand snapshots from the in-memory repositories."""

    subscriptions: InMemorySubscriptionRepository
    catalog: InMemoryCatalogRepository
    cycle_days: list[MenuCycleDay] = field(default_factory=list)
    assignments: list[MenuDayAssignment] = field(default_factory=list)
    meals: dict[UUID, MealRecord] = field(default_factory=dict)
    meal_ingredients: list[MealIngredientRecord] = field(default_factory=list)
    ingredients: dict[UUID, IngredientRecord] = field(default_factory=dict)
    loads: int = 0

    def add_cycle(self, length: int = 7) -> list[MenuCycleDay]:
        self.cycle_days = [
            MenuCycleDay(id=uuid4(), cycle_id=CYCLE_ID, day_index=index)
            for index in range(length)
        ]
        return self.cycle_days

    def add_meal(self, name: str, name_ar: str | None = None) -> MealRecord:
        meal = MealRecord(id=uuid4(), name_en=name, name_ar=name_ar)
        self.meals[meal.id] = meal
        return meal

    def assign(self, day_index: int, slot: MealSlot, meal: MealRecord) -> None:
        day = next(day for day in self.cycle_days if day.day_index == day_index)
        self.assignments.append(
            MenuDayAssignment(
                id=uuid4(), cycle_day_id=day.id, meal_id=meal.id, slot=slot
            )
        )

    def add_ingredient(
        self, meal: MealRecord, name: str, weight_g: float, unit: str = "g"
    ) -> IngredientRecord:
        existing = next(
            (item for item in self.ingredients.values() if item.name_en == name), None
        )
        ingredient = existing or IngredientRecord(
            id=uuid4(), name_en=name, name_ar=None, unit_base=unit
        )
        self.ingredients[ingredient.id] = ingredient
        self.meal_ingredients.append(
            MealIngredientRecord(
                meal_id=meal.id, ingredient_id=ingredient.id, weight_g=weight_g
            )
        )
        return ingredient

    def load_snapshot(
        self,
        statuses: frozenset[SubscriptionStatus],
        include_ingredients: bool,
    ) -> DemandSnapshot:
        self.loads += 1
        return DemandSnapshot(
            plans=tuple(self.catalog.list_plans()),
            subscriptions=tuple(self.subscriptions.list_subscriptions(statuses)),
            cycle_days=tuple(self.cycle_days),
            assignments=tuple(self.assignments),
            meals=dict(self.meals),
            meal_ingredients=(
                tuple(self.meal_ingredients) if include_ingredients else ()
            ),
            ingredients=dict(self.ingredients) if include_ingredients else {},
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service.key.signature",
        admin_token="admin-token",
        payment_webhook_token="webhook-token",
    )


@pytest.fixture
def subscription_repository() -> InMemorySubscriptionRepository:
    return InMemorySubscriptionRepository()


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def demand_repository(
    subscription_repository: InMemorySubscriptionRepository,
    catalog_repository: InMemoryCatalogRepository,
) -> InMemoryDemandRepository:
    return InMemoryDemandRepository(
        subscriptions=subscription_repository, catalog=catalog_repository
    )


@pytest.fixture
def state_service(
    subscription_repository: InMemorySubscriptionRepository,
    catalog_repository: InMemoryCatalogRepository,
) -> SubscriptionStateService:
    return SubscriptionStateService(
        repository=subscription_repository,
        catalog=catalog_repository,
        clock=fixed_clock,
    )


@pytest.fixture
def sweep_service(
    state_service: SubscriptionStateService,
    subscription_repository: InMemorySubscriptionRepository,
) -> SubscriptionSweepService:
    return SubscriptionSweepService(
        state_service=state_service,
        repository=subscription_repository,
        today=lambda: TODAY,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    subscription_repository: InMemorySubscriptionRepository,
    catalog_repository: InMemoryCatalogRepository,
    demand_repository: InMemoryDemandRepository,
    state_service: SubscriptionStateService,
    sweep_service: SubscriptionSweepService,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        catalog_service=CatalogService(catalog_repository),
        state_service=state_service,
        sweep_service=sweep_service,
        demand_service=DemandService(
            repository=demand_repository, allocator=charcode_v1
        ),
        pipeline_service=PipelineService(
            subscriptions=subscription_repository, catalog=catalog_repository
        ),
    )
