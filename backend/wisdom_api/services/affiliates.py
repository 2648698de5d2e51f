"""Affiliate (referral) program: enrollment, admin review, stats and commissions."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from wisdom_api.core.config import settings
from wisdom_api.core.errors import AlreadyRegistered, InternalError, NotFoundError, audit_conflict
from wisdom_api.models.admin_log import AdminActionLog, AdminActionType
from wisdom_api.models.affiliate import (
    DEFAULT_COMMISSION_RATE,
    Affiliate,
    AffiliateStatus,
    Commission,
    CommissionStatus,
)
from wisdom_api.models.purchase import Purchase
from wisdom_api.models.user import User

log = logging.getLogger(__name__)

CODE_PREFIX = "AFF-"
_MAX_CODE_ATTEMPTS = 10
RECENT_SALES_LIMIT = 10


def generate_affiliate_code() -> str:
    """AFF- followed by 12 upper-case hex characters (6 random bytes)."""
    return CODE_PREFIX + secrets.token_hex(6).upper()


def get_by_code(session: Session, code: str) -> Optional[Affiliate]:
    return session.exec(select(Affiliate).where(Affiliate.affiliate_code == (code or "").strip().upper())).first()


def get_by_user(session: Session, user_id: UUID) -> Optional[Affiliate]:
    return session.exec(select(Affiliate).where(Affiliate.user_id == user_id)).first()


def register_affiliate(session: Session, user: User, commission_rate: int = DEFAULT_COMMISSION_RATE) -> Affiliate:
    if get_by_user(session, user.id) is not None:
        raise audit_conflict(AlreadyRegistered(), {"user_id": str(user.id)})

    for _ in range(_MAX_CODE_ATTEMPTS):
        code = generate_affiliate_code()
        if get_by_code(session, code) is not None:
            continue
        affiliate = Affiliate(
            user_id=user.id,
            affiliate_code=code,
            commission_rate=commission_rate,
            status=AffiliateStatus.PENDING,
        )
        session.add(affiliate)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            # Either a concurrent registration for this user or a code collision
            if get_by_user(session, user.id) is not None:
                raise audit_conflict(AlreadyRegistered(), {"user_id": str(user.id), "stage": "insert"})
            continue
        session.refresh(affiliate)
        log.info("[AFFILIATE] Registered affiliate %s for user %s", code, user.id)
        return affiliate

    raise InternalError("Failed to generate unique affiliate code")


def _review(
    session: Session,
    affiliate_id: UUID,
    admin: User,
    status: AffiliateStatus,
    action: AdminActionType,
    details: Optional[str] = None,
) -> Affiliate:
    affiliate = session.get(Affiliate, affiliate_id)
    if affiliate is None:
        raise NotFoundError("Affiliate not found")

    affiliate.status = status
    if status == AffiliateStatus.APPROVED:
        affiliate.approved_at = affiliate.approved_at or datetime.utcnow()
        affiliate.rejection_reason = None
    else:
        affiliate.rejection_reason = details or None
    session.add(affiliate)
    session.add(
        AdminActionLog(
            admin_user_id=admin.id,
            action=action,
            resource_type="affiliate",
            resource_id=str(affiliate.id),
            details=details or None,
        )
    )
    session.commit()
    session.refresh(affiliate)
    log.info("[AFFILIATE] %s affiliate %s by admin %s", action.value, affiliate.id, admin.id)
    return affiliate


def approve(session: Session, affiliate_id: UUID, admin: User) -> Affiliate:
    return _review(session, affiliate_id, admin, AffiliateStatus.APPROVED, AdminActionType.APPROVE_AFFILIATE)


def reject(session: Session, affiliate_id: UUID, admin: User, reason: Optional[str] = None) -> Affiliate:
    return _review(
        session, affiliate_id, admin, AffiliateStatus.REJECTED, AdminActionType.REJECT_AFFILIATE, details=reason
    )


def list_pending(session: Session) -> list[dict[str, Any]]:
    rows = session.exec(
        select(Affiliate, User)
        .join(User, Affiliate.user_id == User.id)
        .where(Affiliate.status == AffiliateStatus.PENDING)
        .order_by(Affiliate.created_at.asc())
    ).all()
    return [
        {
            "id": str(a.id),
            "affiliateCode": a.affiliate_code,
            "commissionRate": a.commission_rate,
            "status": a.status.value,
            "createdAt": a.created_at.isoformat(),
            "name": u.name,
            "email": u.email,
        }
        for a, u in rows
    ]


def stats(session: Session, code: str) -> dict[str, Any]:
    row = session.exec(
        select(Affiliate, User)
        .join(User, Affiliate.user_id == User.id)
        .where(Affiliate.affiliate_code == (code or "").strip().upper())
    ).first()
    if row is None:
        raise NotFoundError("Affiliate not found")
    affiliate, owner = row

    totals = session.exec(
        select(
            func.count(Commission.id),
            func.coalesce(func.sum(Commission.amount), 0),
            func.coalesce(func.sum(case((Commission.status == CommissionStatus.PENDING, Commission.amount), else_=0)), 0),
            func.coalesce(func.sum(case((Commission.status == CommissionStatus.PAID, Commission.amount), else_=0)), 0),
        ).where(Commission.affiliate_id == affiliate.id)
    ).one()
    total_count, total_earnings, pending_earnings, paid_earnings = totals

    sales = session.exec(
        select(Purchase, Commission)
        .join(Commission, Commission.purchase_id == Purchase.id)
        .where(Commission.affiliate_id == affiliate.id)
        .order_by(Purchase.created_at.desc())
        .limit(RECENT_SALES_LIMIT)
    ).all()

    return {
        "affiliate": {
            "id": str(affiliate.id),
            "name": owner.name,
            "email": owner.email,
            "affiliateCode": affiliate.affiliate_code,
            "commissionRate": affiliate.commission_rate,
            "status": affiliate.status.value,
        },
        "statistics": {
            "totalCommissions": int(total_count or 0),
            "totalEarnings": int(total_earnings or 0),
            "pendingEarnings": int(pending_earnings or 0),
            "paidEarnings": int(paid_earnings or 0),
        },
        "recentSales": [
            {
                "id": str(p.id),
                "amount": p.amount,
                "commission": c.amount,
                "status": p.status.value,
                "productType": p.product_type.value if p.product_type else None,
                "createdAt": p.created_at.isoformat(),
            }
            for p, c in sales
        ],
    }


def referral_link(session: Session, code: str) -> dict[str, str]:
    affiliate = get_by_code(session, code)
    if affiliate is None:
        raise NotFoundError("Affiliate not found")
    base = (settings.APP_BASE_URL or "").rstrip("/")
    link = f"{base}?ref={affiliate.affiliate_code}"
    return {
        "referralLink": link,
        "affiliateCode": affiliate.affiliate_code,
        "shareText": (
            "Join me on Wisdom Hub and get exclusive insights on personal development! "
            f"Use my referral link: {link}"
        ),
    }


def commission_amount(amount: int, rate: int) -> int:
    """Percentage of a minor-unit amount, rounded half-up to a whole unit."""
    value = Decimal(amount) * Decimal(rate) / Decimal(100)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def record_commission(session: Session, purchase: Purchase, code: Optional[str]) -> Optional[Commission]:
    """Stage a commission for a referred purchase; the caller commits.

    Only approved affiliates earn, and nobody earns on their own purchase.
    """
    if not code:
        return None
    affiliate = get_by_code(session, code)
    if affiliate is None:
        log.info("[AFFILIATE] Unknown affiliate code %r on purchase %s", code, purchase.id)
        return None
    if affiliate.status != AffiliateStatus.APPROVED:
        log.info("[AFFILIATE] Affiliate %s is %s; no commission", affiliate.id, affiliate.status.value)
        return None
    if affiliate.user_id == purchase.user_id:
        log.info("[AFFILIATE] Self-referral by user %s ignored", purchase.user_id)
        return None

    commission = Commission(
        affiliate_id=affiliate.id,
        purchase_id=purchase.id,
        amount=commission_amount(purchase.amount, affiliate.commission_rate),
        status=CommissionStatus.PENDING,
    )
    session.add(commission)
    return commission
