"""Purchase ledger backed by Stripe PaymentIntents.

A purchase is recorded at most once per (user, payment reference). Retried
confirmations return the existing row instead of inserting another.
"""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from wisdom_api.core.config import settings
from wisdom_api.core.errors import (
    MissingProductReference,
    PaymentError,
    PaymentNotSucceeded,
    ValidationError,
)
from wisdom_api.models.purchase import ProductRef, ProductType, Purchase
from wisdom_api.models.user import User
from wisdom_api.services import affiliates, notifications, stripe_gateway

log = logging.getLogger(__name__)

SUCCEEDED = "succeeded"


def single_product(product: ProductRef) -> tuple[ProductType, str]:
    refs = product.references()
    if len(refs) != 1:
        raise MissingProductReference()
    return refs[0]


def get_purchase(session: Session, user_id: UUID, payment_reference: str) -> Optional[Purchase]:
    return session.exec(
        select(Purchase).where(
            Purchase.user_id == user_id,
            Purchase.stripe_payment_id == payment_reference,
        )
    ).first()


def create_intent(
    user: User,
    amount: int,
    product: ProductRef,
    affiliate_code: Optional[str] = None,
    currency: Optional[str] = None,
) -> dict[str, Optional[str]]:
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be a positive number of cents")
    content_type, content_id = single_product(product)
    metadata = {
        "user_id": str(user.id),
        "content_type": content_type.value,
        "content_id": content_id,
    }
    if affiliate_code:
        metadata["affiliate_code"] = affiliate_code.strip().upper()
    intent = stripe_gateway.gateway.create_payment_intent(
        amount=amount,
        currency=(currency or settings.DEFAULT_CURRENCY).lower(),
        metadata=metadata,
        description=f"Wisdom Hub {content_type.value} {content_id}",
    )
    log.info("[payments] Created PaymentIntent %s for user %s (%s %s)", intent.id, user.id, content_type.value, content_id)
    return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}


def confirm_purchase(
    session: Session,
    payment_reference: str,
    user: User,
    product: ProductRef,
    amount: int,
) -> tuple[Purchase, bool]:
    """Record a purchase for a succeeded payment.

    Returns ``(purchase, created)``; ``created`` is False when the payment was
    already recorded by an earlier call.
    """
    content_type, content_id = single_product(product)
    if not payment_reference:
        raise ValidationError("paymentIntentId is required")

    existing = get_purchase(session, user.id, payment_reference)
    if existing is not None:
        log.info("[payments] Purchase for %s already recorded; returning existing row", payment_reference)
        return existing, False

    intent = stripe_gateway.gateway.retrieve_payment_intent(payment_reference)
    if intent.status != SUCCEEDED:
        log.info("[payments] PaymentIntent %s has status %s", payment_reference, intent.status)
        raise PaymentNotSucceeded()
    owner = intent.metadata.get("user_id")
    if owner and owner != str(user.id):
        log.warning("[payments] PaymentIntent %s belongs to another user", payment_reference)
        raise PaymentError("Payment does not belong to this account")
    if intent.amount != amount:
        log.warning(
            "[payments] Amount mismatch for %s: intent=%s claimed=%s", payment_reference, intent.amount, amount
        )
        raise PaymentError("Payment amount does not match")

    affiliate_code = intent.metadata.get("affiliate_code") or None
    purchase = Purchase(
        user_id=user.id,
        amount=intent.amount,
        currency=intent.currency,
        stripe_payment_id=payment_reference,
        affiliate_code=affiliate_code,
        **{f"{content_type.value}_id": content_id},
    )
    session.add(purchase)
    try:
        # Flush first so the commission row can reference the purchase id
        session.flush()
        affiliates.record_commission(session, purchase, affiliate_code)
        session.commit()
    except IntegrityError:
        session.rollback()
        winner = get_purchase(session, user.id, payment_reference)
        if winner is None:
            raise
        log.info("[payments] Concurrent confirmation for %s; returning existing row", payment_reference)
        return winner, False
    session.refresh(purchase)
    log.info("[payments] Recorded purchase %s for user %s via %s", purchase.id, user.id, payment_reference)

    notifications.send_purchase_receipt_email(
        user.email,
        user.name,
        f"{content_type.value.title()} {content_id}",
        purchase.amount,
        payment_reference,
        purchase.currency,
    )
    return purchase, True


def list_purchases(session: Session, user_id: UUID) -> list[Purchase]:
    return list(
        session.exec(
            select(Purchase)
            .where(Purchase.user_id == user_id)
            .order_by(Purchase.created_at.desc())
        ).all()
    )
