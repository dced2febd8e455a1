from typing import List, Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON, Text, UniqueConstraint

class Product(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("shop_domain", "shopify_product_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # Shopify identity
    shopify_product_id: str = Field(index=True)
    shop_domain: str = Field(index=True)

    # Basic Info
    title: str = Field(default="")
    handle: Optional[str] = None
    description: str = Field(default="", sa_column=Column(Text))  # body_html
    product_type: Optional[str] = None
    vendor: Optional[str] = None
    tags: List[str] = Field(default=[], sa_column=Column(JSON))
    status: Optional[str] = None  # "active", "draft", "archived"

    # Media & variants as delivered by Shopify
    images: List[dict] = Field(default=[], sa_column=Column(JSON))
    variants: List[dict] = Field(default=[], sa_column=Column(JSON))
    raw_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    shopify_created_at: Optional[datetime] = None
    shopify_updated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def image_url(self) -> Optional[str]:
        if not self.images:
            return None
        return self.images[0].get("src")
