from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    price_id: str = Field(..., min_length=1, max_length=255)
    success_url: Optional[str] = Field(default=None, max_length=2048)
    cancel_url: Optional[str] = Field(default=None, max_length=2048)


class CheckoutSession(BaseModel):
    session_id: str
    checkout_url: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    data: CheckoutSession


class StripeEventData(BaseModel):
    object: dict[str, Any] = Field(default_factory=dict)


class StripeWebhookEvent(BaseModel):
    """Subset of the Stripe event envelope the webhook handler reads."""

    id: str
    type: str
    data: StripeEventData = Field(default_factory=StripeEventData)
    created: Optional[int] = None
    livemode: bool = False


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str
    handled: bool
