from .user import ALL_INTERESTS, Interest, User, UserCreate, UserProfileUpdate, UserPublic
from .purchase import ProductRef, ProductType, Purchase, PurchasePublic, PurchaseStatus
from .affiliate import (
    Affiliate,
    AffiliatePublic,
    AffiliateStatus,
    Commission,
    CommissionStatus,
    DEFAULT_COMMISSION_RATE,
)
from .subscription import Subscription
from .admin_log import AdminActionLog, AdminActionType
from .webhook_event import ProcessedWebhookEvent

__all__ = [
    "ALL_INTERESTS",
    "Interest",
    "User",
    "UserCreate",
    "UserProfileUpdate",
    "UserPublic",
    "ProductRef",
    "ProductType",
    "Purchase",
    "PurchasePublic",
    "PurchaseStatus",
    "Affiliate",
    "AffiliatePublic",
    "AffiliateStatus",
    "Commission",
    "CommissionStatus",
    "DEFAULT_COMMISSION_RATE",
    "Subscription",
    "AdminActionLog",
    "AdminActionType",
    "ProcessedWebhookEvent",
]
