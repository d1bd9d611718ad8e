from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ...domain.billing import CheckoutRequest, CheckoutSessionResponse, WebhookAck
from ...domain.users import User
from ...services.billing_webhooks import BillingWebhookHandler
from ...services.stripe_gateway import (
    StripeAPIError,
    StripeConfigError,
    StripeGateway,
    StripeSignatureError,
)
from ..dependencies import (
    enforce_rate_limit,
    get_billing_webhook_handler,
    get_current_user,
    get_stripe_gateway,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/checkout", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    _: object = Depends(enforce_rate_limit("billing:checkout")),
) -> CheckoutSessionResponse:
    try:
        session = await gateway.create_checkout_session(
            current_user,
            payload.price_id,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StripeAPIError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return CheckoutSessionResponse(data=session)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    handler: BillingWebhookHandler = Depends(get_billing_webhook_handler),
) -> WebhookAck:
    payload = await request.body()
    try:
        event = gateway.construct_event(payload, stripe_signature)
    except StripeConfigError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except StripeSignatureError as exc:
        logger.warning("billing.webhook_rejected", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    ack = await handler.handle(event)
    logger.info(
        "billing.webhook_processed",
        event_id=event.id,
        event_type=event.type,
        handled=ack.handled,
    )
    return ack
