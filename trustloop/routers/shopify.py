from typing import List
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from trustloop.models.shop import ShopifyStore
from trustloop.routers.auth import get_current_store, get_shop_service
from trustloop.services.shop import ShopService
from trustloop.services.webhook import WebhookManager

router = APIRouter()

class WebhookResults(BaseModel):
    success: bool
    results: List[dict]

@router.post("/webhooks/setup", response_model=WebhookResults)
def setup_webhooks(
    store: ShopifyStore = Depends(get_current_store),
    service: ShopService = Depends(get_shop_service)
):
    """Subscribe the shop to every webhook topic TrustLoop handles"""
    manager = WebhookManager(service.session, service.client_for(store))
    results = manager.setup_all()
    return WebhookResults(success=all(r["status"] != "failed" for r in results), results=results)

@router.delete("/webhooks", response_model=WebhookResults)
def remove_webhooks(
    store: ShopifyStore = Depends(get_current_store),
    service: ShopService = Depends(get_shop_service)
):
    manager = WebhookManager(service.session, service.client_for(store))
    results = manager.remove_all()
    return WebhookResults(success=all(r["status"] != "failed" for r in results), results=results)
