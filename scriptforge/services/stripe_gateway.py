"""Stripe checkout and webhook verification helpers."""

from __future__ import annotations

from typing import Mapping

import stripe
import structlog
from anyio import to_thread
from pydantic import ValidationError

from ..core.config import get_settings
from ..domain.billing import CheckoutSession, StripeWebhookEvent
from ..domain.subscriptions import SubscriptionTier
from ..domain.users import User

logger = structlog.get_logger()

SIGNATURE_TOLERANCE_SECONDS = 300


class StripeConfigError(RuntimeError):
    """Raised when Stripe configuration is missing or invalid."""


class StripeAPIError(RuntimeError):
    """Raised when Stripe rejects a request."""


class StripeSignatureError(ValueError):
    """Raised when a webhook payload fails signature verification."""


class StripeGateway:
    """Wrapper around ``stripe.StripeClient`` for subscription checkout."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str | None,
        price_to_tier: Mapping[str, SubscriptionTier],
        *,
        app_base_url: str = "http://localhost:3000",
        client: stripe.StripeClient | None = None,
    ) -> None:
        if not secret_key:
            raise StripeConfigError("Stripe secret key is not configured")
        self._client = client or stripe.StripeClient(secret_key)
        self._webhook_secret = webhook_secret
        self._price_to_tier = dict(price_to_tier)
        self._app_base_url = app_base_url.rstrip("/")

    @property
    def price_to_tier(self) -> dict[str, SubscriptionTier]:
        return dict(self._price_to_tier)

    def tier_for_price(self, price_id: str | None) -> SubscriptionTier | None:
        if not price_id:
            return None
        return self._price_to_tier.get(price_id)

    async def create_checkout_session(
        self,
        user: User,
        price_id: str,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> CheckoutSession:
        tier = self.tier_for_price(price_id)
        if tier is None:
            raise ValueError(f"Unknown price id: {price_id}")

        params: dict[str, object] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url
            or f"{self._app_base_url}/dashboard?checkout=success&session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": cancel_url or f"{self._app_base_url}/subscription?checkout=canceled",
            "client_reference_id": user.id,
            "metadata": {"user_id": user.id, "tier": tier.value},
            "subscription_data": {"metadata": {"user_id": user.id, "tier": tier.value}},
            "allow_promotion_codes": True,
        }
        if user.stripe_customer_id:
            params["customer"] = user.stripe_customer_id
        elif user.email:
            params["customer_email"] = user.email

        try:
            session = await to_thread.run_sync(
                lambda: self._client.checkout.sessions.create(params=params)
            )
        except stripe.StripeError as exc:
            logger.error("stripe.checkout_failed", user_id=user.id, error=str(exc))
            raise StripeAPIError("Failed to create Stripe checkout session") from exc

        logger.info(
            "stripe.checkout_created", user_id=user.id, session_id=session.id, tier=tier.value
        )
        return CheckoutSession(session_id=session.id, checkout_url=session.url)

    def construct_event(self, payload: bytes | str, signature: str | None) -> StripeWebhookEvent:
        """Verify the ``Stripe-Signature`` header and parse the event envelope."""

        if not self._webhook_secret:
            raise StripeConfigError("Stripe webhook secret is not configured")
        if not signature:
            raise StripeSignatureError("Missing Stripe-Signature header")
        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self._webhook_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as exc:
            raise StripeSignatureError("Invalid Stripe signature") from exc
        try:
            return StripeWebhookEvent.model_validate_json(body)
        except ValidationError as exc:
            raise StripeSignatureError("Malformed Stripe event payload") from exc


def build_price_map() -> dict[str, SubscriptionTier]:
    settings = get_settings()
    configured = {
        settings.stripe_price_pro_monthly: SubscriptionTier.PRO,
        settings.stripe_price_business_monthly: SubscriptionTier.BUSINESS,
        settings.stripe_price_enterprise_monthly: SubscriptionTier.ENTERPRISE,
    }
    return {price: tier for price, tier in configured.items() if price}


def build_gateway_from_settings() -> StripeGateway:
    settings = get_settings()
    if not settings.stripe_secret_key:
        raise StripeConfigError(
            "Stripe credentials must be configured via STRIPE_SECRET_KEY"
        )
    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        price_to_tier=build_price_map(),
        app_base_url=settings.app_base_url,
    )
