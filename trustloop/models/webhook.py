from typing import Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from sqlmodel import Field, SQLModel

class WebhookSubscription(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    shop_domain: str = Field(index=True)
    topic: str  # e.g. "orders/create"
    address: str
    shopify_webhook_id: Optional[str] = None
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
