from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID


class Subscription(SQLModel, table=True):
    """Latest known Stripe subscription state for a user."""
    user_id: UUID = Field(foreign_key="user.id", primary_key=True)
    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    stripe_subscription_id: str = Field(index=True)
    status: str = Field(default="incomplete", index=True)
    plan: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
