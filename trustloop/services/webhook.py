"""
Shopify webhooks: ingestion of pushed resources and management of the
shop's webhook subscriptions.
"""
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from trustloop.core.config import settings
from trustloop.core.logger import log
from trustloop.core.timeutils import utcnow
from trustloop.models.campaign import EmailCampaign, CampaignStatus, CampaignType
from trustloop.models.customer import Customer
from trustloop.models.order import Order, OrderLineItem
from trustloop.models.product import Product
from trustloop.models.shop import ShopifyStore
from trustloop.models.webhook import WebhookSubscription
from trustloop.schemas.shopify import (
    ShopifyCustomerPayload,
    ShopifyLineItem,
    ShopifyOrderPayload,
    ShopifyProductPayload,
)
from trustloop.services.shopify import ShopifyClient, ShopifyError

WEBHOOK_TOPICS = [
    "app/uninstalled",
    "orders/create",
    "orders/updated",
    "orders/paid",
    "products/create",
    "products/update",
    "customers/create",
]


def webhook_address(topic: str) -> str:
    # "orders/create" -> ".../webhooks/orders-create"
    return f"{settings.FUNCTION_BASE_URL}/webhooks/{topic.replace('/', '-', 1)}"


def _id_or_empty(value: Optional[int]) -> str:
    return str(value) if value is not None else ""


class WebhookIngestionService:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self, *rows):
        try:
            for row in rows:
                self.session.add(row)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        for row in rows:
            self.session.refresh(row)

    def ingest_order(self, shop_domain: str, payload: ShopifyOrderPayload, raw_data: dict) -> Order:
        shopify_order_id = str(payload.id)
        order = self.session.exec(
            select(Order).where(
                Order.shop_domain == shop_domain,
                Order.shopify_order_id == shopify_order_id
            )
        ).first()
        if not order:
            order = Order(shopify_order_id=shopify_order_id, shop_domain=shop_domain)

        billing = payload.billing_address
        order.order_number = payload.name
        order.customer_email = payload.email
        order.customer_first_name = (billing.first_name if billing else None) or ""
        order.customer_last_name = (billing.last_name if billing else None) or ""
        order.total_price = payload.total_price
        order.currency = payload.currency
        order.financial_status = payload.financial_status
        order.fulfillment_status = payload.fulfillment_status
        order.line_items = raw_data.get("line_items") or []
        order.raw_data = raw_data
        order.shopify_created_at = payload.created_at
        order.shopify_updated_at = payload.updated_at
        order.updated_at = utcnow()

        try:
            self._commit(order)
        except SQLAlchemyError as e:
            log.error(f"Error storing order {shopify_order_id} for {shop_domain}: {e}")
            raise

        # One line item failing does not undo the order
        if any(line_item.id is None for line_item in payload.line_items):
            self._clear_unkeyed_line_items(shop_domain, shopify_order_id)
        failed = 0
        for line_item in payload.line_items:
            try:
                self._upsert_line_item(shop_domain, shopify_order_id, line_item)
            except SQLAlchemyError as e:
                failed += 1
                log.error(f"Error storing line item {line_item.id} of order {shopify_order_id}: {e}")
        if failed:
            log.warning(f"{failed} of {len(payload.line_items)} line items not stored for order {shopify_order_id}")

        if payload.financial_status == "paid":
            self._schedule_review_request(shop_domain, shopify_order_id, payload.email)

        log.info(f"Order {shopify_order_id} ingested for {shop_domain}")
        return order

    def _clear_unkeyed_line_items(self, shop_domain: str, shopify_order_id: str):
        """Drop line items stored without a Shopify id; a redelivery inserts them again."""
        rows = self.session.exec(
            select(OrderLineItem).where(
                OrderLineItem.shop_domain == shop_domain,
                OrderLineItem.shopify_order_id == shopify_order_id,
                OrderLineItem.shopify_line_item_id == None
            )
        ).all()
        try:
            for row in rows:
                self.session.delete(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error(f"Error clearing line items of order {shopify_order_id}: {e}")

    def _upsert_line_item(self, shop_domain: str, shopify_order_id: str, line_item: ShopifyLineItem):
        row = None
        line_item_id = str(line_item.id) if line_item.id is not None else None
        # Without an id there is nothing to match on: always a new row
        if line_item_id is not None:
            row = self.session.exec(
                select(OrderLineItem).where(
                    OrderLineItem.shop_domain == shop_domain,
                    OrderLineItem.shopify_order_id == shopify_order_id,
                    OrderLineItem.shopify_line_item_id == line_item_id
                )
            ).first()
        if not row:
            row = OrderLineItem(
                shop_domain=shop_domain,
                shopify_order_id=shopify_order_id,
                shopify_line_item_id=line_item_id
            )
        row.product_id = _id_or_empty(line_item.product_id)
        row.variant_id = _id_or_empty(line_item.variant_id)
        row.product_title = line_item.title
        row.quantity = line_item.quantity
        row.price = line_item.price
        self._commit(row)

    def _schedule_review_request(self, shop_domain: str, shopify_order_id: str, customer_email: Optional[str]) -> EmailCampaign:
        existing = self.session.exec(
            select(EmailCampaign).where(
                EmailCampaign.shop_domain == shop_domain,
                EmailCampaign.order_id == shopify_order_id,
                EmailCampaign.campaign_type == CampaignType.REVIEW_REQUEST
            )
        ).first()
        if existing:
            return existing

        campaign = EmailCampaign(
            shop_domain=shop_domain,
            order_id=shopify_order_id,
            customer_email=customer_email,
            campaign_type=CampaignType.REVIEW_REQUEST,
            status=CampaignStatus.SCHEDULED,
            scheduled_date=utcnow() + timedelta(days=settings.REVIEW_REQUEST_DELAY_DAYS)
        )
        try:
            self._commit(campaign)
        except SQLAlchemyError as e:
            log.error(f"Error scheduling review request for order {shopify_order_id}: {e}")
            raise
        log.info(f"Review request scheduled for order {shopify_order_id} on {campaign.scheduled_date:%Y-%m-%d}")
        return campaign

    def ingest_product(self, shop_domain: str, payload: ShopifyProductPayload, raw_data: dict) -> Product:
        shopify_product_id = str(payload.id)
        product = self.session.exec(
            select(Product).where(
                Product.shop_domain == shop_domain,
                Product.shopify_product_id == shopify_product_id
            )
        ).first()
        if not product:
            product = Product(shopify_product_id=shopify_product_id, shop_domain=shop_domain)

        product.title = payload.title
        product.handle = payload.handle
        product.description = payload.body_html or ""
        product.product_type = payload.product_type
        product.vendor = payload.vendor
        product.tags = [tag.strip() for tag in payload.tags.split(",")] if payload.tags else []
        product.status = payload.status
        product.images = payload.images
        product.variants = payload.variants
        product.raw_data = raw_data
        product.shopify_created_at = payload.created_at
        product.shopify_updated_at = payload.updated_at
        product.updated_at = utcnow()

        try:
            self._commit(product)
        except SQLAlchemyError as e:
            log.error(f"Error storing product {shopify_product_id} for {shop_domain}: {e}")
            raise
        log.info(f"Product {shopify_product_id} ingested for {shop_domain}")
        return product

    def ingest_customer(self, shop_domain: str, payload: ShopifyCustomerPayload, raw_data: dict) -> Customer:
        shopify_customer_id = str(payload.id)
        customer = self.session.exec(
            select(Customer).where(
                Customer.shop_domain == shop_domain,
                Customer.shopify_customer_id == shopify_customer_id
            )
        ).first()
        if not customer:
            customer = Customer(shopify_customer_id=shopify_customer_id, shop_domain=shop_domain)

        customer.email = payload.email
        customer.first_name = payload.first_name
        customer.last_name = payload.last_name
        customer.phone = payload.phone
        customer.orders_count = payload.orders_count
        customer.total_spent = payload.total_spent
        customer.raw_data = raw_data
        customer.updated_at = utcnow()

        try:
            self._commit(customer)
        except SQLAlchemyError as e:
            log.error(f"Error storing customer {shopify_customer_id} for {shop_domain}: {e}")
            raise
        return customer

    def handle_uninstall(self, shop_domain: str) -> Optional[ShopifyStore]:
        store = self.session.exec(
            select(ShopifyStore).where(ShopifyStore.shop_domain == shop_domain)
        ).first()
        if not store:
            log.warning(f"app/uninstalled for unknown shop {shop_domain}")
            return None

        now = utcnow()
        store.is_active = False
        store.updated_at = now
        subscriptions = self.session.exec(
            select(WebhookSubscription).where(
                WebhookSubscription.shop_domain == shop_domain,
                WebhookSubscription.is_active == True
            )
        ).all()
        for subscription in subscriptions:
            subscription.is_active = False
            subscription.updated_at = now

        self._commit(store, *subscriptions)
        log.info(f"App uninstalled from {shop_domain}")
        return store


class WebhookManager:
    """Registers and removes this app's webhook subscriptions on a shop."""

    def __init__(self, session: Session, client: ShopifyClient):
        self.session = session
        self.client = client

    def _existing_webhooks(self) -> List[dict]:
        try:
            return self.client.list_webhooks()
        except ShopifyError as e:
            log.error(f"Error fetching existing webhooks for {self.client.shop_domain}: {e}")
            return []

    def setup_all(self) -> List[dict]:
        """
        Subscribe to every topic in WEBHOOK_TOPICS.

        Topics already pointing at our address are skipped. Each topic is
        independent: a failure is logged and reported, never retried.
        """
        shop_domain = self.client.shop_domain
        existing = self._existing_webhooks()
        results = []

        for topic in WEBHOOK_TOPICS:
            address = webhook_address(topic)
            if any(w.get("topic") == topic and w.get("address") == address for w in existing):
                results.append({"topic": topic, "status": "already_exists", "url": address})
                continue

            try:
                webhook = self.client.create_webhook(topic, address)
                subscription = WebhookSubscription(
                    shop_domain=shop_domain,
                    topic=topic,
                    address=address,
                    shopify_webhook_id=_id_or_empty(webhook.get("id")) or None
                )
                self.session.add(subscription)
                self.session.commit()
                results.append({"topic": topic, "status": "created", "url": address})
            except (ShopifyError, SQLAlchemyError) as e:
                self.session.rollback()
                log.error(f"Failed to create webhook for {topic} on {shop_domain}: {e}")
                results.append({"topic": topic, "status": "failed", "error": str(e)})

        return results

    def remove_all(self) -> List[dict]:
        shop_domain = self.client.shop_domain
        subscriptions = self.session.exec(
            select(WebhookSubscription).where(
                WebhookSubscription.shop_domain == shop_domain,
                WebhookSubscription.is_active == True
            )
        ).all()
        existing = self._existing_webhooks()
        results = []

        for subscription in subscriptions:
            try:
                remote = next(
                    (w for w in existing if w.get("topic") == subscription.topic and w.get("address") == subscription.address),
                    None
                )
                if remote:
                    self.client.delete_webhook(str(remote["id"]))

                subscription.is_active = False
                subscription.updated_at = utcnow()
                self.session.add(subscription)
                self.session.commit()
                results.append({"topic": subscription.topic, "status": "removed"})
            except (ShopifyError, SQLAlchemyError) as e:
                self.session.rollback()
                log.error(f"Failed to remove webhook for {subscription.topic} on {shop_domain}: {e}")
                results.append({"topic": subscription.topic, "status": "failed", "error": str(e)})

        return results
