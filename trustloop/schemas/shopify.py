"""
Inbound Shopify resource payloads.

Only the fields TrustLoop stores are declared; everything else is kept
(``extra="allow"``) and ends up in the raw-JSON backup column.
"""
from typing import Annotated, List, Optional
from datetime import datetime
from pydantic import AfterValidator, BaseModel, ConfigDict

from trustloop.core.timeutils import to_utc

# Shopify sends local shop time with an offset; stored as UTC
UtcDatetime = Annotated[datetime, AfterValidator(to_utc)]


class ShopifyAddress(BaseModel):
    model_config = ConfigDict(extra="allow")

    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ShopifyLineItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    title: Optional[str] = None
    quantity: int = 1
    price: Optional[str] = None


class ShopifyOrderPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: Optional[str] = None  # order number, e.g. "#1001"
    email: Optional[str] = None
    total_price: Optional[str] = None
    currency: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
    billing_address: Optional[ShopifyAddress] = None
    line_items: List[ShopifyLineItem] = []


class ShopifyProductPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    handle: Optional[str] = None
    body_html: Optional[str] = None
    product_type: Optional[str] = None
    vendor: Optional[str] = None
    tags: Optional[str] = None  # comma separated
    status: Optional[str] = None
    images: List[dict] = []
    variants: List[dict] = []
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class ShopifyCustomerPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    orders_count: int = 0
    total_spent: Optional[str] = None
