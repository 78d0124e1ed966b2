"""Supabase-backed reads for the demand aggregator."""

from dataclasses import dataclass

from supabase import Client

from meal_subscriptions.adapters.supabase_rows import (
    parse_assignment,
    parse_cycle_day,
    parse_ingredient,
    parse_meal,
    parse_meal_ingredient,
    parse_plan,
    parse_subscription,
)
from meal_subscriptions.domain.demand import DemandSnapshot
from meal_subscriptions.domain.subscriptions import SubscriptionStatus
from meal_subscriptions.services.demand import DemandRepository


@dataclass
class SupabaseDemandRepository(DemandRepository):
    """Loads the aggregator's inputs with one database function call.

    ``load_demand_snapshot`` builds the whole payload in a single SQL
    statement, so every table is read from the same snapshot and a
    subscription is never observed halfway through a transition.
    """

    client: Client

    def load_snapshot(
        self,
        statuses: frozenset[SubscriptionStatus],
        include_ingredients: bool,
    ) -> DemandSnapshot:
        """Return plans, subscriptions in ``statuses`` and the active cycle."""
        response = self.client.rpc(
            "load_demand_snapshot",
            {
                "p_statuses": sorted(str(status) for status in statuses),
                "p_include_ingredients": include_ingredients,
            },
        ).execute()
        payload = response.data if isinstance(response.data, dict) else {}
        meals = [parse_meal(row) for row in payload.get("meals") or []]
        ingredients = [
            parse_ingredient(row) for row in payload.get("ingredients") or []
        ]
        return DemandSnapshot(
            plans=tuple(parse_plan(row) for row in payload.get("plans") or []),
            subscriptions=tuple(
                parse_subscription(row) for row in payload.get("subscriptions") or []
            ),
            cycle_days=tuple(
                parse_cycle_day(row) for row in payload.get("cycle_days") or []
            ),
            assignments=tuple(
                parse_assignment(row) for row in payload.get("assignments") or []
            ),
            meals={meal.id: meal for meal in meals},
            meal_ingredients=tuple(
                parse_meal_ingredient(row)
                for row in payload.get("meal_ingredients") or []
            ),
            ingredients={ingredient.id: ingredient for ingredient in ingredients},
        )
