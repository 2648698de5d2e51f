"""Thin wrapper over the Stripe PaymentIntent API.

Stripe objects are normalized into :class:`PaymentIntentInfo` so the ledger
code never depends on the SDK's object model.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import stripe

from wisdom_api.core.config import settings
from wisdom_api.core.errors import PaymentError

log = logging.getLogger(__name__)


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)
    client_secret: Optional[str] = None


def _metadata_dict(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if hasattr(raw, "to_dict"):
        raw = raw.to_dict()
    return {str(k): str(v) for k, v in dict(raw).items() if v is not None}


def to_intent_info(obj: Any) -> PaymentIntentInfo:
    get = obj.get if isinstance(obj, Mapping) else (lambda k, d=None: getattr(obj, k, d))
    return PaymentIntentInfo(
        id=str(get("id")),
        status=str(get("status") or ""),
        amount=int(get("amount") or 0),
        currency=str(get("currency") or settings.DEFAULT_CURRENCY),
        metadata=_metadata_dict(get("metadata")),
        client_secret=get("client_secret"),
    )


class StripeGateway:
    def __init__(self, api_key: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY

    def _require_key(self) -> str:
        if not self.api_key:
            log.error("[stripe] STRIPE_SECRET_KEY not configured")
            raise PaymentError("Payments are not configured")
        return self.api_key

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Mapping[str, str],
        description: Optional[str] = None,
    ) -> PaymentIntentInfo:
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata),
            "automatic_payment_methods": {"enabled": True},
            "api_key": self._require_key(),
        }
        if description:
            params["description"] = description
        try:
            intent = stripe.PaymentIntent.create(**params)
        except stripe.StripeError as e:
            log.error("[stripe] PaymentIntent.create failed: %s", getattr(e, "user_message", None) or e)
            raise PaymentError("Failed to create payment intent")
        return to_intent_info(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self._require_key())
        except stripe.InvalidRequestError:
            raise PaymentError("Unknown payment reference")
        except stripe.StripeError as e:
            log.error("[stripe] PaymentIntent.retrieve(%s) failed: %s", payment_intent_id, e)
            raise PaymentError("Could not confirm payment with the payment provider")
        return to_intent_info(intent)


gateway = StripeGateway()
