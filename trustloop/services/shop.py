from typing import Optional

import requests
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from trustloop.core.logger import log
from trustloop.core.timeutils import utcnow
from trustloop.core.security import create_access_token
from trustloop.models.shop import ShopifyStore
from trustloop.services.shopify import ShopifyClient, ShopifyError, exchange_access_token, is_valid_shop_domain
from trustloop.services.webhook import WebhookManager


class ShopService:
    def __init__(self, session: Session, http: requests.Session):
        self.session = session
        self.http = http

    def get_store(self, shop_domain: str) -> Optional[ShopifyStore]:
        return self.session.exec(
            select(ShopifyStore).where(ShopifyStore.shop_domain == shop_domain)
        ).first()

    def client_for(self, store: ShopifyStore) -> ShopifyClient:
        return ShopifyClient(self.http, store.shop_domain, store.access_token)

    def complete_oauth(self, shop: str, code: str) -> dict:
        """
        Finish the Shopify install: exchange the code, store the shop and
        subscribe to webhooks.
        """
        if not is_valid_shop_domain(shop):
            raise HTTPException(status_code=400, detail="Invalid shop domain")

        # TODO: verify the OAuth hmac once the dashboard forwards the full callback query string
        token_data = exchange_access_token(self.http, shop, code)
        client = ShopifyClient(self.http, shop, token_data["access_token"])

        try:
            shop_data = client.get_shop()
        except ShopifyError as e:
            log.error(f"Shop validation failed for {shop}: {e}")
            raise ShopifyError("Failed to validate shop connection")

        store = self._save_store(shop, token_data, shop_data)
        results = WebhookManager(self.session, client).setup_all()
        failed = [r["topic"] for r in results if r["status"] == "failed"]
        if failed:
            log.warning(f"Webhooks not registered for {shop}: {', '.join(failed)}")

        log.info(f"Shop connected: {shop}")
        return {
            "success": True,
            "shop": store.shop_name,
            "domain": shop,
            "token": create_access_token({"sub": shop}),
        }

    def _save_store(self, shop: str, token_data: dict, shop_data: dict) -> ShopifyStore:
        store = self.get_store(shop)
        if not store:
            store = ShopifyStore(shop_domain=shop, access_token=token_data["access_token"])

        # Stored in plaintext, as received
        store.access_token = token_data["access_token"]
        store.scope = token_data.get("scope")
        store.shop_name = shop_data.get("name")
        store.shop_email = shop_data.get("email")
        store.shop_owner = shop_data.get("shop_owner")
        store.currency = shop_data.get("currency")
        store.timezone = shop_data.get("timezone")
        store.plan_name = shop_data.get("plan_name")
        store.is_active = True
        store.updated_at = utcnow()

        try:
            self.session.add(store)
            self.session.commit()
            self.session.refresh(store)
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error(f"Database error storing {shop}: {e}")
            raise HTTPException(status_code=500, detail="Failed to store shop information")
        return store
