"""Stripe webhook verification and event application.

Nothing in a payload is trusted until its signature has been checked against
the configured secret. Applied event ids are recorded so redeliveries are
acknowledged without repeating their effects.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

import stripe
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from wisdom_api.core.config import settings
from wisdom_api.core.errors import WebhookNotConfigured, WebhookVerificationError
from wisdom_api.models.purchase import Purchase, PurchaseStatus
from wisdom_api.models.subscription import Subscription
from wisdom_api.models.user import User
from wisdom_api.models.webhook_event import ProcessedWebhookEvent

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "active": "active",
    "trialing": "trialing",
    "past_due": "past_due",
    "unpaid": "unpaid",
    "canceled": "canceled",
    "incomplete": "incomplete",
    "incomplete_expired": "incomplete_expired",
    "paused": "paused",
}


def construct_event(
    payload: bytes,
    sig_header: Optional[str],
    secret: Optional[str] = None,
    tolerance: Optional[int] = None,
) -> dict[str, Any]:
    """Verify the Stripe-Signature header, then parse the payload."""
    secret = settings.STRIPE_WEBHOOK_SECRET if secret is None else secret
    if not secret:
        logger.error("[webhook] STRIPE_WEBHOOK_SECRET not configured; refusing event")
        raise WebhookNotConfigured()
    if not sig_header:
        raise WebhookVerificationError("Missing Stripe-Signature header")
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        raise WebhookVerificationError("Webhook payload is not valid UTF-8")
    try:
        stripe.WebhookSignature.verify_header(
            text,
            sig_header,
            secret,
            tolerance if tolerance is not None else settings.STRIPE_WEBHOOK_TOLERANCE,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("[webhook] Signature verification failed: %s", e)
        raise WebhookVerificationError()
    try:
        event = json.loads(text)
    except ValueError:
        raise WebhookVerificationError("Webhook payload is not valid JSON")
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise WebhookVerificationError("Webhook payload is not a Stripe event")
    return event


def _ts(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return datetime.utcfromtimestamp(int(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _first_item(obj: dict) -> dict:
    items = (obj.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _subscription_user(session: Session, obj: dict) -> Optional[User]:
    raw = (obj.get("metadata") or {}).get("user_id")
    if not raw:
        logger.warning("[webhook] subscription %s has no metadata.user_id", obj.get("id"))
        return None
    try:
        user_id = UUID(str(raw))
    except ValueError:
        logger.error("[webhook] subscription %s has invalid user_id %r", obj.get("id"), raw)
        return None
    user = session.get(User, user_id)
    if user is None:
        logger.warning("[webhook] subscription %s references unknown user %s", obj.get("id"), user_id)
    return user


def _on_payment_succeeded(session: Session, obj: dict) -> None:
    logger.info("[webhook] payment_intent %s succeeded (amount=%s)", obj.get("id"), obj.get("amount"))


def _on_payment_failed(session: Session, obj: dict) -> None:
    error = (obj.get("last_payment_error") or {}).get("message")
    logger.info("[webhook] payment_intent %s failed: %s", obj.get("id"), error)


def _on_charge_refunded(session: Session, obj: dict) -> None:
    payment_intent = obj.get("payment_intent")
    if not payment_intent:
        logger.warning("[webhook] charge %s refunded without payment_intent", obj.get("id"))
        return
    purchases = session.exec(
        select(Purchase).where(
            Purchase.stripe_payment_id == payment_intent,
            Purchase.status == PurchaseStatus.COMPLETED,
        )
    ).all()
    now = datetime.utcnow()
    for purchase in purchases:
        purchase.status = PurchaseStatus.REFUNDED
        purchase.refunded_at = now
        session.add(purchase)
    logger.info("[webhook] refund for %s marked %d purchase(s) refunded", payment_intent, len(purchases))


def _on_subscription_upsert(session: Session, obj: dict) -> None:
    user = _subscription_user(session, obj)
    if user is None:
        return
    item = _first_item(obj)
    price = item.get("price") or {}
    metadata = obj.get("metadata") or {}
    # Newer API versions report the billing period on the item instead of the subscription
    period_end = _ts(obj.get("current_period_end")) or _ts(item.get("current_period_end"))

    sub = session.get(Subscription, user.id)
    if sub is None:
        sub = Subscription(user_id=user.id, stripe_subscription_id=str(obj.get("id")))
    sub.stripe_subscription_id = str(obj.get("id"))
    sub.stripe_customer_id = obj.get("customer") or sub.stripe_customer_id
    sub.status = STATUS_MAP.get(obj.get("status"), "incomplete")
    sub.plan = metadata.get("plan") or price.get("lookup_key") or price.get("id") or sub.plan
    sub.current_period_end = period_end
    sub.cancel_at_period_end = bool(obj.get("cancel_at_period_end"))
    sub.updated_at = datetime.utcnow()
    session.add(sub)
    logger.info("[webhook] subscription %s for user %s is %s", sub.stripe_subscription_id, user.id, sub.status)


def _on_subscription_deleted(session: Session, obj: dict) -> None:
    sub = session.exec(
        select(Subscription).where(Subscription.stripe_subscription_id == str(obj.get("id")))
    ).first()
    if sub is None:
        user = _subscription_user(session, obj)
        sub = session.get(Subscription, user.id) if user is not None else None
    if sub is None:
        logger.info("[webhook] deleted subscription %s is not tracked", obj.get("id"))
        return
    sub.status = "canceled"
    sub.cancel_at_period_end = False
    sub.updated_at = datetime.utcnow()
    session.add(sub)
    logger.info("[webhook] subscription %s for user %s canceled", sub.stripe_subscription_id, sub.user_id)


HANDLERS: dict[str, Callable[[Session, dict], None]] = {
    "payment_intent.succeeded": _on_payment_succeeded,
    "payment_intent.payment_failed": _on_payment_failed,
    "charge.refunded": _on_charge_refunded,
    "customer.subscription.created": _on_subscription_upsert,
    "customer.subscription.updated": _on_subscription_upsert,
    "customer.subscription.deleted": _on_subscription_deleted,
}


def apply_event(session: Session, event: dict[str, Any]) -> bool:
    """Apply a verified event once. Returns False for an already-processed id."""
    event_id = str(event["id"])
    kind = str(event["type"])
    if session.get(ProcessedWebhookEvent, event_id) is not None:
        logger.info("[webhook] duplicate event %s (%s) ignored", event_id, kind)
        return False

    obj = (event.get("data") or {}).get("object") or {}
    handler = HANDLERS.get(kind)
    if handler is None:
        logger.debug("[webhook] unhandled event type %s", kind)
    else:
        handler(session, obj)

    session.add(ProcessedWebhookEvent(event_id=event_id, event_type=kind))
    try:
        session.commit()
    except IntegrityError:
        # A concurrent delivery of the same event won
        session.rollback()
        logger.info("[webhook] event %s applied concurrently; skipping", event_id)
        return False
    return True
