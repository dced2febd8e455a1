import json
from typing import Optional, Type
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError
from sqlmodel import Session

from trustloop.core.config import settings
from trustloop.core.logger import log
from trustloop.core.security import verify_shopify_webhook
from trustloop.db.session import get_session
from trustloop.schemas.shopify import ShopifyCustomerPayload, ShopifyOrderPayload, ShopifyProductPayload
from trustloop.services.webhook import WebhookIngestionService

router = APIRouter(default_response_class=PlainTextResponse)

def get_ingestion_service(session: Session = Depends(get_session)) -> WebhookIngestionService:
    return WebhookIngestionService(session)

# Body read here so the handlers stay plain def and run in the threadpool
async def webhook_body(request: Request) -> bytes:
    return await request.body()

def read_webhook(body: bytes, shop_domain: Optional[str], signature: Optional[str]) -> dict:
    """Check the Shopify headers and return the JSON body."""
    if not shop_domain:
        raise HTTPException(status_code=400, detail="Invalid webhook")

    if settings.SHOPIFY_WEBHOOK_SECRET:
        if not verify_shopify_webhook(body, signature, settings.SHOPIFY_WEBHOOK_SECRET):
            log.warning(f"Rejected webhook with bad signature from {shop_domain}")
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    return data

def parse_payload(model: Type[BaseModel], data: dict):
    try:
        return model.model_validate(data)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid payload")

def handle_order(body, shop_domain, signature, service):
    data = read_webhook(body, shop_domain, signature)
    service.ingest_order(shop_domain, parse_payload(ShopifyOrderPayload, data), data)
    return "OK"

def handle_product(body, shop_domain, signature, service):
    data = read_webhook(body, shop_domain, signature)
    service.ingest_product(shop_domain, parse_payload(ShopifyProductPayload, data), data)
    return "OK"

@router.post("/orders-create")
def orders_create(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    return handle_order(body, x_shopify_shop_domain, x_shopify_hmac_sha256, service)

@router.post("/orders-updated")
def orders_updated(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    return handle_order(body, x_shopify_shop_domain, x_shopify_hmac_sha256, service)

@router.post("/orders-paid")
def orders_paid(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    return handle_order(body, x_shopify_shop_domain, x_shopify_hmac_sha256, service)

@router.post("/products-create")
def products_create(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    return handle_product(body, x_shopify_shop_domain, x_shopify_hmac_sha256, service)

@router.post("/products-update")
def products_update(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    return handle_product(body, x_shopify_shop_domain, x_shopify_hmac_sha256, service)

@router.post("/customers-create")
def customers_create(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    data = read_webhook(body, x_shopify_shop_domain, x_shopify_hmac_sha256)
    service.ingest_customer(x_shopify_shop_domain, parse_payload(ShopifyCustomerPayload, data), data)
    return "OK"

@router.post("/app-uninstalled")
def app_uninstalled(
    body: bytes = Depends(webhook_body),
    x_shopify_shop_domain: Optional[str] = Header(None),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    service: WebhookIngestionService = Depends(get_ingestion_service)
):
    read_webhook(body, x_shopify_shop_domain, x_shopify_hmac_sha256)
    service.handle_uninstall(x_shopify_shop_domain)
    return "OK"
