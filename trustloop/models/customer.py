from typing import Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON, UniqueConstraint

class Customer(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("shop_domain", "shopify_customer_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    shopify_customer_id: str = Field(index=True)
    shop_domain: str = Field(index=True)

    email: Optional[str] = Field(default=None, index=True)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    orders_count: int = Field(default=0)
    total_spent: Optional[str] = None

    raw_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
