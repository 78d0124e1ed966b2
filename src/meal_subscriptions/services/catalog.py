"""Read access to the plan catalog."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_subscriptions.domain.catalog import PlanRecord


class CatalogRepository(Protocol):
    """Persistence interface for plans."""

    def get_plan(self, plan_id: UUID) -> PlanRecord | None:
        """Return a plan by id, if present."""

    def list_plans(self) -> list[PlanRecord]:
        """Return all plans, archived ones included."""


@dataclass
class CatalogService:
    """Application service for plan lookups."""

    repository: CatalogRepository

    def list_plans(self) -> list[PlanRecord]:
        """Return plans ordered by code."""
        return sorted(self.repository.list_plans(), key=lambda plan: plan.code)
