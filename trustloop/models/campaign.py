from typing import Optional
from datetime import datetime
from trustloop.core.timeutils import utcnow
from enum import Enum
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text

class CampaignStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"

class CampaignType(str, Enum):
    REVIEW_REQUEST = "review_request"
    REMINDER = "reminder"
    THANK_YOU = "thank_you"

class EmailCampaign(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    shop_domain: str = Field(index=True)
    order_id: Optional[str] = Field(default=None, index=True)  # Shopify order id
    customer_email: Optional[str] = None

    campaign_type: CampaignType = Field(default=CampaignType.REVIEW_REQUEST)
    status: CampaignStatus = Field(default=CampaignStatus.SCHEDULED)
    scheduled_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class EmailTemplate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    shop_domain: str = Field(index=True)
    template_type: CampaignType

    # Content with {{placeholder}} variables
    subject: str
    html_content: str = Field(sa_column=Column(Text))

    # Sender
    from_email: str
    from_name: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class EmailTracking(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    campaign_id: int = Field(index=True)
    customer_email: str
    template_type: str
    status: str = Field(default="sent")
    sent_at: datetime = Field(default_factory=utcnow)
