"""
Endpoints for the affiliate/referral program.
"""
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from wisdom_api.core.database import get_session
from wisdom_api.core.errors import Forbidden
from wisdom_api.models.affiliate import Affiliate, AffiliatePublic, DEFAULT_COMMISSION_RATE
from wisdom_api.models.user import User
from wisdom_api.routers.auth.utils import get_current_user, is_admin, require_admin
from wisdom_api.services import affiliates

router = APIRouter(prefix="/affiliates", tags=["Affiliates"])


class RegisterPayload(BaseModel):
    commission_rate: int = Field(default=DEFAULT_COMMISSION_RATE, ge=0, le=100)


class ApprovePayload(BaseModel):
    affiliate_id: UUID


class RejectPayload(BaseModel):
    affiliate_id: UUID
    reason: Optional[str] = Field(default=None, max_length=500)


def _affiliate_payload(affiliate: Affiliate) -> dict[str, Any]:
    return AffiliatePublic.model_validate(affiliate, from_attributes=True).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: Optional[RegisterPayload] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    rate = payload.commission_rate if payload else DEFAULT_COMMISSION_RATE
    affiliate = affiliates.register_affiliate(session, current_user, rate)
    return {"message": "Affiliate account created", "affiliate": _affiliate_payload(affiliate)}


@router.post("/approve")
def approve(
    payload: ApprovePayload,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    affiliate = affiliates.approve(session, payload.affiliate_id, admin)
    return {"message": "Affiliate approved", "affiliate": _affiliate_payload(affiliate)}


@router.post("/reject")
def reject(
    payload: RejectPayload,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    affiliate = affiliates.reject(session, payload.affiliate_id, admin, payload.reason)
    return {"message": "Affiliate rejected", "affiliate": _affiliate_payload(affiliate)}


@router.get("/pending")
def pending(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    rows = affiliates.list_pending(session)
    return {"pendingAffiliates": rows, "count": len(rows)}


@router.get("/{code}/stats")
def stats(
    code: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Earnings for one affiliate; visible to its owner and admins."""
    affiliate = affiliates.get_by_code(session, code)
    if affiliate is not None and affiliate.user_id != current_user.id and not is_admin(current_user):
        raise Forbidden("You can only view your own affiliate statistics")
    return affiliates.stats(session, code)


@router.get("/{code}/referral-link")
def referral_link(code: str, session: Session = Depends(get_session)) -> dict[str, str]:
    return affiliates.referral_link(session, code)
