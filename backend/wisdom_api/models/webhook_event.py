from datetime import datetime

from sqlmodel import Field, SQLModel


class ProcessedWebhookEvent(SQLModel, table=True):
    """Stripe event ids that have already been applied."""
    event_id: str = Field(primary_key=True, max_length=255)
    event_type: str = Field(max_length=100)
    processed_at: datetime = Field(default_factory=datetime.utcnow)
