"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status

from meal_subscriptions.api.schemas import (
    BulkStateChangeRequest,
    StateChangeRequest,
)
from meal_subscriptions.api.serializers import (
    error_payload,
    serialize_calendar_cell,
    serialize_daily_demand,
    serialize_history,
    serialize_pipeline,
    serialize_plan,
    serialize_subscription,
    unwrap,
)

if TYPE_CHECKING:
    from meal_subscriptions.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _get_admin_token(request: Request) -> str:
    return _container(request).settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def admin_actor(x_admin_user: str | None = Header(default=None)) -> str:
    """Identity recorded as ``changed_by`` on admin-initiated transitions."""
    return x_admin_user or "admin"


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/plans", dependencies=[Depends(require_admin)])
def list_plans(request: Request) -> dict[str, object]:
    """Return the plan catalog."""
    plans = _container(request).catalog_service.list_plans()
    return {"plans": [serialize_plan(plan) for plan in plans]}


@router.post(
    "/subscriptions",
    dependencies=[Depends(require_admin)],
    status_code=status.HTTP_201_CREATED,
)
def create_subscription(
    request: Request,
    payload: dict[str, object] = Body(...),
    actor: str = Depends(admin_actor),
) -> dict[str, object]:
    """Create a subscription with its initial status."""
    result = _container(request).state_service.create_subscription_with_state(
        payload, changed_by=actor
    )
    return {"subscription": serialize_subscription(unwrap(result))}


@router.get(
    "/subscriptions/{subscription_id}/history",
    dependencies=[Depends(require_admin)],
)
def subscription_history(subscription_id: UUID, request: Request) -> dict[str, object]:
    """Return the status history of a subscription."""
    result = _container(request).state_service.get_state_history(subscription_id)
    return {"history": [serialize_history(entry) for entry in unwrap(result)]}


@router.get(
    "/subscriptions/{subscription_id}/transitions",
    dependencies=[Depends(require_admin)],
)
def subscription_transitions(
    subscription_id: UUID, request: Request
) -> dict[str, object]:
    """Return the states a subscription may move to next."""
    result = _container(request).state_service.get_allowed_targets(subscription_id)
    return {"allowedStates": [str(state) for state in unwrap(result)]}


@router.put("/subscriptions/bulk-state", dependencies=[Depends(require_admin)])
def bulk_change_state(
    body: BulkStateChangeRequest,
    request: Request,
    actor: str = Depends(admin_actor),
) -> dict[str, object]:
    """Transition several subscriptions; each one succeeds or fails on its own."""
    results = _container(request).state_service.bulk_transition(
        body.subscription_ids, body.new_state, body.reason, actor
    )
    updated = []
    errors = []
    for subscription_id, result in results.items():
        if result.success and result.data is not None:
            updated.append(serialize_subscription(result.data))
        else:
            errors.append(
                {"subscriptionId": str(subscription_id), **error_payload(result.error)}
            )
    return {"updatedSubscriptions": updated, "errors": errors}


@router.put(
    "/subscriptions/{subscription_id}/state",
    dependencies=[Depends(require_admin)],
)
def change_state(
    subscription_id: UUID,
    body: StateChangeRequest,
    request: Request,
    actor: str = Depends(admin_actor),
) -> dict[str, object]:
    """Transition a single subscription."""
    result = _container(request).state_service.execute_transition(
        subscription_id, body.new_state, body.reason, actor
    )
    return {"subscription": serialize_subscription(unwrap(result))}


@router.post("/sweeps/activate-new-joiners", dependencies=[Depends(require_admin)])
def sweep_activate(request: Request) -> dict[str, int]:
    """Run the New_Joiner activation sweep now."""
    report = _container(request).sweep_service.run_activation()
    return {
        "selected": report.selected,
        "activated": report.succeeded,
        "failed": report.failed,
    }


@router.post("/sweeps/cancel-exiting", dependencies=[Depends(require_admin)])
def sweep_cancel_exiting(request: Request) -> dict[str, int]:
    """Run the Exiting cancellation sweep now."""
    report = _container(request).sweep_service.run_exit_cancellation()
    return {
        "selected": report.selected,
        "cancelled": report.succeeded,
        "failed": report.failed,
    }


@router.get("/daily-orders", dependencies=[Depends(require_admin)])
def daily_orders(
    request: Request, start: date | None = None, days: int = 3
) -> dict[str, object]:
    """Return prep sheets with raw materials for the coming days."""
    container = _container(request)
    first_day = start or container.sweep_service.today()
    result = container.demand_service.daily_orders(first_day, days)
    return {"data": [serialize_daily_demand(day) for day in unwrap(result)]}


@router.get("/dashboard", dependencies=[Depends(require_admin)])
def dashboard(
    request: Request, year: int | None = None, month: int | None = None
) -> dict[str, object]:
    """Return the customer pipeline and the month calendar."""
    container = _container(request)
    today = container.sweep_service.today()
    calendar = unwrap(
        container.demand_service.month_calendar(
            year or today.year, month or today.month
        )
    )
    pipeline = unwrap(container.pipeline_service.summarize(today))
    return {
        "customerPipeline": serialize_pipeline(pipeline),
        "calendar": [serialize_calendar_cell(cell) for cell in calendar],
    }
