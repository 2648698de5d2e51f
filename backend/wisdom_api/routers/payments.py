"""Checkout endpoints: create a PaymentIntent, confirm it, list purchases."""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Field, Session

from wisdom_api.core.database import get_session
from wisdom_api.models.purchase import ProductRef, Purchase, PurchasePublic
from wisdom_api.models.user import User
from wisdom_api.routers.auth.utils import get_current_user
from wisdom_api.services import payments

router = APIRouter(prefix="/payments", tags=["Payments"])


class CreateIntentPayload(ProductRef):
    amount: int = Field(gt=0, description="Amount in cents")
    currency: Optional[str] = Field(default=None, max_length=8)
    affiliate_code: Optional[str] = Field(default=None, max_length=32)


class ConfirmPayload(ProductRef):
    paymentIntentId: str = Field(min_length=1, max_length=255)
    amount: int = Field(gt=0, description="Amount in cents")


def _purchase_payload(purchase: Purchase) -> dict[str, Any]:
    return PurchasePublic.model_validate(purchase, from_attributes=True).model_dump(mode="json")


def _product(payload: ProductRef) -> ProductRef:
    return ProductRef(article_id=payload.article_id, book_id=payload.book_id, course_id=payload.course_id)


@router.post("/create-intent")
def create_intent(
    payload: CreateIntentPayload,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    return payments.create_intent(
        current_user,
        payload.amount,
        _product(payload),
        affiliate_code=payload.affiliate_code,
        currency=payload.currency,
    )


@router.post("/confirm")
def confirm(
    payload: ConfirmPayload,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    purchase, created = payments.confirm_purchase(
        session,
        payload.paymentIntentId,
        current_user,
        _product(payload),
        payload.amount,
    )
    return {
        "message": "Payment successful" if created else "Purchase already recorded",
        "purchase": _purchase_payload(purchase),
        "created": created,
    }


@router.get("/purchases")
def list_purchases(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rows = payments.list_purchases(session, current_user.id)
    return {"purchases": [_purchase_payload(p) for p in rows]}
