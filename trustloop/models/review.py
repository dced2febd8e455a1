import uuid
from typing import List, Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON, Text

class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class Review(SQLModel, table=True):
    id: str = Field(default_factory=lambda: f"review_{uuid.uuid4().hex}", primary_key=True)

    # References (Shopify ids, no foreign keys)
    shop_domain: Optional[str] = Field(default=None, index=True)
    shopify_product_id: Optional[str] = Field(default=None, index=True)
    shopify_order_id: Optional[str] = Field(default=None, index=True)

    # Reviewer
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None

    # Review Content
    rating: int = Field(ge=1, le=5)  # 1-5 stars
    title: Optional[str] = None
    content: str = Field(default="", sa_column=Column(Text))

    # Media URLs
    photos: List[str] = Field(default=[], sa_column=Column(JSON))
    videos: List[str] = Field(default=[], sa_column=Column(JSON))

    verified_purchase: bool = Field(default=False)
    source: str = Field(default="email")
    status: ReviewStatus = Field(default=ReviewStatus.PENDING)

    # AI moderation verdict
    sentiment: Optional[str] = None
    confidence_score: Optional[float] = None
    is_spam: Optional[bool] = None
    spam_confidence: Optional[float] = None
    toxicity_score: Optional[float] = None
    language: Optional[str] = None
    moderation_status: Optional[str] = None  # approve | reject | manual_review
    moderation_reason: Optional[str] = None
    moderated_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
