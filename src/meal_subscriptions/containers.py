"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from meal_subscriptions.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from meal_subscriptions.adapters.supabase_demand_repository import (
    SupabaseDemandRepository,
)
from meal_subscriptions.adapters.supabase_subscription_repository import (
    SupabaseSubscriptionRepository,
)
from meal_subscriptions.config import Settings
from meal_subscriptions.scheduler import SweepScheduler
from meal_subscriptions.services.catalog import CatalogService
from meal_subscriptions.services.demand import DemandService
from meal_subscriptions.services.pipeline import PipelineService
from meal_subscriptions.services.slot_allocation import get_allocator
from meal_subscriptions.services.state_machine import SubscriptionStateService
from meal_subscriptions.services.sweeps import SubscriptionSweepService, business_clock


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    state_service: SubscriptionStateService
    sweep_service: SubscriptionSweepService
    demand_service: DemandService
    pipeline_service: PipelineService
    sweep_scheduler: SweepScheduler | None = None


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    subscription_repository = SupabaseSubscriptionRepository(supabase_client)
    catalog_repository = SupabaseCatalogRepository(supabase_client)
    demand_repository = SupabaseDemandRepository(supabase_client)
    state_service = SubscriptionStateService(
        repository=subscription_repository,
        catalog=catalog_repository,
    )
    sweep_service = SubscriptionSweepService(
        state_service=state_service,
        repository=subscription_repository,
        today=business_clock(resolved_settings.business_timezone),
    )
    demand_service = DemandService(
        repository=demand_repository,
        allocator=get_allocator(resolved_settings.slot_allocation_version),
        locale=resolved_settings.default_locale,
    )
    pipeline_service = PipelineService(
        subscriptions=subscription_repository,
        catalog=catalog_repository,
    )
    sweep_scheduler = None
    if resolved_settings.sweep_scheduler_enabled:
        sweep_scheduler = SweepScheduler(
            sweep_service=sweep_service,
            timezone=resolved_settings.business_timezone,
            activation_cron=resolved_settings.activation_sweep_cron,
            exiting_cron=resolved_settings.exiting_sweep_cron,
        )

    return AppContainer(
        settings=resolved_settings,
        catalog_service=CatalogService(catalog_repository),
        state_service=state_service,
        sweep_service=sweep_service,
        demand_service=demand_service,
        pipeline_service=pipeline_service,
        sweep_scheduler=sweep_scheduler,
    )
