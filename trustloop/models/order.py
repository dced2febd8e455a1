from typing import List, Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON, UniqueConstraint

class Order(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("shop_domain", "shopify_order_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # Shopify identity
    shopify_order_id: str = Field(index=True)
    shop_domain: str = Field(index=True)
    order_number: Optional[str] = None  # e.g. "#1001"

    # Customer (from the billing address)
    customer_email: Optional[str] = None
    customer_first_name: str = Field(default="")
    customer_last_name: str = Field(default="")

    # Money, kept as Shopify's decimal strings
    total_price: Optional[str] = None
    currency: Optional[str] = None

    # Status
    financial_status: Optional[str] = None  # "paid", "pending", ...
    fulfillment_status: Optional[str] = None

    # Raw copies
    line_items: List[dict] = Field(default=[], sa_column=Column(JSON))
    raw_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    shopify_created_at: Optional[datetime] = None
    shopify_updated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class OrderLineItem(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("shop_domain", "shopify_order_id", "shopify_line_item_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    shopify_order_id: str = Field(index=True)
    shop_domain: str = Field(index=True)
    shopify_line_item_id: Optional[str] = None  # NULLs never collide in the unique constraint

    # Used to match review requests to products
    product_id: str = Field(default="")
    variant_id: str = Field(default="")
    product_title: Optional[str] = None
    quantity: int = Field(default=1)
    price: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
