"""
All stored timestamps are timezone-aware UTC.
"""
from datetime import datetime, timedelta, timezone

import pytest

from trustloop.core.timeutils import to_utc, utcnow
from trustloop.models import (
    Customer,
    EmailCampaign,
    EmailTemplate,
    EmailTracking,
    Order,
    OrderLineItem,
    Product,
    Review,
    ShopifyStore,
    WebhookSubscription,
)
from trustloop.schemas.shopify import ShopifyOrderPayload
from tests.conftest import SHOP


@pytest.mark.parametrize("row", [
    ShopifyStore(shop_domain=SHOP, access_token="shpat_test"),
    WebhookSubscription(shop_domain=SHOP, topic="orders/create", address="https://example.com"),
    Order(shopify_order_id="1", shop_domain=SHOP),
    OrderLineItem(shopify_order_id="1", shop_domain=SHOP, shopify_line_item_id="1"),
    Product(shopify_product_id="1", shop_domain=SHOP),
    Customer(shopify_customer_id="1", shop_domain=SHOP),
    Review(rating=5),
    EmailCampaign(shop_domain=SHOP),
    EmailTemplate(shop_domain=SHOP, template_type="review_request", subject="s", html_content="b", from_email="a@b.co"),
])
def test_default_created_at_is_aware(row):
    assert row.created_at.tzinfo is not None
    assert row.created_at.utcoffset() == timedelta(0)


def test_tracking_sent_at_is_aware():
    tracking = EmailTracking(campaign_id=1, customer_email="a@b.co", template_type="review_request")
    assert tracking.sent_at.tzinfo is not None


def test_utcnow_is_aware():
    assert utcnow().tzinfo is timezone.utc


def test_to_utc():
    assert to_utc(datetime(2024, 5, 1, 10, 0)) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    eastern = timezone(timedelta(hours=-4))
    assert to_utc(datetime(2024, 5, 1, 10, 0, tzinfo=eastern)) == datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)


def test_shopify_times_are_normalised_to_utc():
    payload = ShopifyOrderPayload.model_validate({"id": 1, "created_at": "2024-05-01T10:00:00-04:00"})
    assert payload.created_at.tzinfo == timezone.utc
    assert payload.created_at.hour == 14


def test_rows_with_default_timestamps_are_written(session):
    session.add(Order(shopify_order_id="1", shop_domain=SHOP))
    session.add(Review(shop_domain=SHOP, rating=4))
    session.commit()

    order = session.get(Order, 1)
    session.refresh(order)
    assert abs((to_utc(order.created_at) - utcnow()).total_seconds()) < 60
