"""Pydantic models for request payloads."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StateChangeRequest(_CamelModel):
    """Body of a single-subscription transition."""

    new_state: str = Field(alias="newState", min_length=1)
    reason: str | None = None


class BulkStateChangeRequest(_CamelModel):
    """Body of a bulk transition."""

    subscription_ids: list[UUID] = Field(alias="subscriptionIds", min_length=1)
    new_state: str = Field(alias="newState", min_length=1)
    reason: str | None = None


class PaymentWebhookEvent(_CamelModel):
    """Payment outcome reported by the payment gateway."""

    subscription_id: UUID = Field(alias="subscriptionId")
    outcome: Literal["succeeded", "failed"]
    transaction_id: str | None = Field(default=None, alias="transactionId")
