"""Supabase-backed plan catalog."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from meal_subscriptions.adapters.supabase_rows import PLAN_COLUMNS, parse_plan
from meal_subscriptions.domain.catalog import PlanRecord
from meal_subscriptions.services.catalog import CatalogRepository


@dataclass
class SupabaseCatalogRepository(CatalogRepository):
    """Supabase implementation for plan lookups."""

    client: Client

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        """Return a plan by id, if present."""
        response = (
            self.client.table("plans")
            .select(PLAN_COLUMNS)
            .eq("id", str(plan_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_plan(response.data[0])

    def list_plans(self) -> list[PlanRecord]:
        """Return all plans."""
        response = (
            self.client.table("plans")
            .select(PLAN_COLUMNS)
            .order("code", desc=False)
            .execute()
        )
        return [parse_plan(row) for row in response.data or []]
