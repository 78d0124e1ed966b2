"""Payment gateway webhook."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_subscriptions.api.schemas import PaymentWebhookEvent
from meal_subscriptions.api.serializers import serialize_subscription, unwrap

if TYPE_CHECKING:
    from meal_subscriptions.containers import AppContainer

router = APIRouter(prefix="/payments", tags=["payments"])


def _get_webhook_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.payment_webhook_token


async def require_webhook_token(
    x_webhook_token: str | None = Header(default=None),
    webhook_token: str = Depends(_get_webhook_token),
) -> None:
    """Ensure the webhook call carries the shared secret."""
    if not x_webhook_token or x_webhook_token != webhook_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/webhook", dependencies=[Depends(require_webhook_token)])
def payment_webhook(event: PaymentWebhookEvent, request: Request) -> dict[str, object]:
    """Apply a payment outcome to its subscription."""
    container: AppContainer = request.app.state.container
    state_service = container.state_service
    if event.outcome == "succeeded":
        result = state_service.process_payment_success(event.subscription_id)
    else:
        result = state_service.process_payment_failure(event.subscription_id)
    return {"subscription": serialize_subscription(unwrap(result))}
