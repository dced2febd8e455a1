from typing import Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from sqlmodel import Field, SQLModel

class ShopifyStore(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Connection
    shop_domain: str = Field(unique=True, index=True)  # e.g. "my-store.myshopify.com"
    access_token: str  # Stored as received from Shopify, not encrypted
    scope: Optional[str] = None

    # Shop metadata from /shop.json
    shop_name: Optional[str] = None
    shop_email: Optional[str] = None
    shop_owner: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    plan_name: Optional[str] = None

    # Cleared by the app/uninstalled webhook
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
