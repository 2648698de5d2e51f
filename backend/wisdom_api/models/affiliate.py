from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class AffiliateStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CommissionStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


DEFAULT_COMMISSION_RATE = 20


class Affiliate(SQLModel, table=True):
    """A user enrolled in the referral program (one per user)."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="user.id", unique=True, index=True)
    affiliate_code: str = Field(unique=True, index=True, max_length=32)
    commission_rate: int = Field(default=DEFAULT_COMMISSION_RATE, ge=0, le=100, description="Percent of the sale")
    status: AffiliateStatus = Field(default=AffiliateStatus.PENDING, index=True)
    rejection_reason: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    approved_at: Optional[datetime] = None


class Commission(SQLModel, table=True):
    """Payout owed to an affiliate for one referred purchase."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    affiliate_id: UUID = Field(foreign_key="affiliate.id", index=True)
    purchase_id: UUID = Field(foreign_key="purchase.id", unique=True)
    amount: int = Field(ge=0, description="Minor currency units")
    status: CommissionStatus = Field(default=CommissionStatus.PENDING)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AffiliatePublic(SQLModel):
    id: UUID
    user_id: UUID
    affiliate_code: str
    commission_rate: int
    status: AffiliateStatus
    rejection_reason: Optional[str] = None
    created_at: datetime
    approved_at: Optional[datetime] = None
