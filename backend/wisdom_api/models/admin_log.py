from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import SQLModel, Field
from sqlalchemy import Index


class AdminActionType(str, Enum):
    """Types of admin actions that can be logged"""
    APPROVE_AFFILIATE = "approve_affiliate"
    REJECT_AFFILIATE = "reject_affiliate"


class AdminActionLog(SQLModel, table=True):
    """Audit trail of admin decisions."""

    id: Optional[int] = Field(default=None, primary_key=True)
    admin_user_id: UUID = Field(description="Admin user who performed the action", index=True)
    action: AdminActionType = Field(index=True)
    resource_type: str = Field(max_length=50)
    resource_id: str = Field(max_length=64)
    details: Optional[str] = Field(default=None, description="Free-form context, e.g. rejection reason")
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_admin_action_log_admin_created", "admin_user_id", "created_at"),
    )
