from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from sqlmodel import Field, SQLModel


class PurchaseStatus(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class ProductType(str, Enum):
    ARTICLE = "article"
    BOOK = "book"
    COURSE = "course"


class ProductRef(SQLModel):
    """Exactly one catalog item a payment is for."""
    article_id: Optional[str] = Field(default=None, max_length=64)
    book_id: Optional[str] = Field(default=None, max_length=64)
    course_id: Optional[str] = Field(default=None, max_length=64)

    def references(self) -> list[tuple[ProductType, str]]:
        refs = []
        if self.article_id:
            refs.append((ProductType.ARTICLE, self.article_id))
        if self.book_id:
            refs.append((ProductType.BOOK, self.book_id))
        if self.course_id:
            refs.append((ProductType.COURSE, self.course_id))
        return refs


class Purchase(ProductRef, table=True):
    """A completed payment for one catalog item.

    Keyed on (user_id, stripe_payment_id) so a payment can only ever be
    recorded once. Rows are never edited except for the refund transition.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    amount: int = Field(ge=0, description="Amount in minor currency units (cents)")
    currency: str = Field(default="usd", max_length=8)
    stripe_payment_id: str = Field(max_length=255, index=True, description="Stripe PaymentIntent id")
    affiliate_code: Optional[str] = Field(default=None, max_length=32)
    status: PurchaseStatus = Field(default=PurchaseStatus.COMPLETED)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    refunded_at: Optional[datetime] = None

    __table_args__ = (
        UniqueConstraint("user_id", "stripe_payment_id", name="uq_purchase_user_payment"),
        CheckConstraint(
            "(CASE WHEN article_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN book_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN course_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_purchase_single_product",
        ),
        Index("idx_purchase_user_created", "user_id", "created_at"),
    )

    @property
    def product_type(self) -> Optional[ProductType]:
        refs = self.references()
        return refs[0][0] if refs else None


class PurchasePublic(SQLModel):
    id: UUID
    user_id: UUID
    article_id: Optional[str] = None
    book_id: Optional[str] = None
    course_id: Optional[str] = None
    amount: int
    currency: str
    stripe_payment_id: str
    status: PurchaseStatus
    created_at: datetime
    refunded_at: Optional[datetime] = None
