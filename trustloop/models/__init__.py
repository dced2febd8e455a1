# Import all models to register them with SQLModel
from trustloop.models.shop import ShopifyStore
from trustloop.models.webhook import WebhookSubscription
from trustloop.models.order import Order, OrderLineItem
from trustloop.models.product import Product
from trustloop.models.customer import Customer
from trustloop.models.review import Review, ReviewStatus
from trustloop.models.campaign import EmailCampaign, EmailTemplate, EmailTracking, CampaignStatus, CampaignType

__all__ = [
    "ShopifyStore",
    "WebhookSubscription",
    "Order",
    "OrderLineItem",
    "Product",
    "Customer",
    "Review",
    "ReviewStatus",
    "EmailCampaign",
    "EmailTemplate",
    "EmailTracking",
    "CampaignStatus",
    "CampaignType",
]
