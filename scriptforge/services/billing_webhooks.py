"""Applies verified Stripe events to user subscriptions."""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from ..domain.billing import StripeWebhookEvent, WebhookAck
from ..domain.subscriptions import SubscriptionStatus
from ..domain.users import User
from ..repositories.users import StripeCustomerConflictError, UsersRepository
from .stripe_gateway import StripeGateway
from .subscriptions import SubscriptionService

logger = structlog.get_logger()


def _first_price_id(subscription: Mapping[str, Any]) -> str | None:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("id")


def _metadata_user_id(obj: Mapping[str, Any]) -> str | None:
    metadata = obj.get("metadata") or {}
    return metadata.get("user_id")


class BillingWebhookHandler:
    """Dispatches Stripe event types onto the subscription service."""

    def __init__(
        self,
        gateway: StripeGateway,
        users_repo: UsersRepository,
        subscriptions: SubscriptionService,
    ) -> None:
        self._gateway = gateway
        self._users = users_repo
        self._subscriptions = subscriptions

    async def handle(self, event: StripeWebhookEvent) -> WebhookAck:
        obj = event.data.object
        log = logger.bind(event_id=event.id, event_type=event.type)
        match event.type:
            case "checkout.session.completed":
                handled = await self._link_customer(self._checkout_completed, obj, log)
            case "customer.subscription.created" | "customer.subscription.updated":
                handled = await self._link_customer(self._subscription_changed, obj, log)
            case "customer.subscription.deleted":
                handled = await self._subscription_deleted(obj)
            case "invoice.payment_succeeded":
                log.info("billing.invoice_paid", customer=obj.get("customer"))
                handled = True
            case "invoice.payment_failed":
                log.warning("billing.invoice_payment_failed", customer=obj.get("customer"))
                handled = True
            case _:
                log.info("billing.event_ignored")
                handled = False
        return WebhookAck(event_type=event.type, handled=handled)

    @staticmethod
    async def _link_customer(apply, obj: Mapping[str, Any], log) -> bool:
        try:
            return await apply(obj)
        except StripeCustomerConflictError:
            log.warning("billing.customer_conflict", customer=obj.get("customer"))
            return False

    async def _resolve_user(self, obj: Mapping[str, Any]) -> User | None:
        user_id = _metadata_user_id(obj) or obj.get("client_reference_id")
        if user_id:
            user = await self._users.get(user_id)
            if user is not None:
                return user
        customer_id = obj.get("customer")
        if customer_id:
            return await self._users.get_by_stripe_customer_id(customer_id)
        return None

    async def _checkout_completed(self, session: Mapping[str, Any]) -> bool:
        user = await self._resolve_user(session)
        if user is None:
            logger.warning("billing.checkout_user_unknown", session_id=session.get("id"))
            return False
        changes: dict[str, Any] = {}
        if session.get("customer"):
            changes["stripe_customer_id"] = session["customer"]
        if session.get("subscription"):
            changes["stripe_subscription_id"] = session["subscription"]
        if changes:
            await self._users.update(user.id, **changes)
        logger.info("billing.checkout_completed", user_id=user.id)
        return True

    async def _subscription_changed(self, subscription: Mapping[str, Any]) -> bool:
        user = await self._resolve_user(subscription)
        if user is None:
            logger.warning(
                "billing.subscription_user_unknown", subscription_id=subscription.get("id")
            )
            return False
        price_id = _first_price_id(subscription)
        tier = self._gateway.tier_for_price(price_id)
        if tier is None:
            logger.warning("billing.unknown_price", user_id=user.id, price_id=price_id)
            return False

        match subscription.get("status"):
            case "active":
                status = SubscriptionStatus.ACTIVE
            case "trialing":
                status = SubscriptionStatus.TRIALING
            case "past_due" | "unpaid":
                await self._subscriptions.mark_past_due(user.id)
                return True
            case other:
                logger.info("billing.subscription_status_ignored", user_id=user.id, status=other)
                return False

        await self._subscriptions.upgrade(
            user.id,
            tier,
            customer_id=subscription.get("customer"),
            subscription_id=subscription.get("id"),
            status=status,
        )
        return True

    async def _subscription_deleted(self, subscription: Mapping[str, Any]) -> bool:
        user = await self._resolve_user(subscription)
        if user is None:
            logger.warning(
                "billing.subscription_user_unknown", subscription_id=subscription.get("id")
            )
            return False
        await self._subscriptions.cancel(user.id)
        return True
