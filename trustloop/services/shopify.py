"""
Shopify Admin REST API client.

Only the calls TrustLoop needs: OAuth token exchange, shop info and webhook
subscriptions.
"""
import re
import requests
from typing import Any, Dict, List, Optional

from trustloop.core.config import settings
from trustloop.core.errors import UpstreamError

SHOP_DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")


class ShopifyError(UpstreamError):
    pass


def is_valid_shop_domain(shop: str) -> bool:
    return bool(SHOP_DOMAIN_PATTERN.match(shop or ""))


def exchange_access_token(http: requests.Session, shop: str, code: str) -> Dict[str, Any]:
    """
    Trade an OAuth authorization code for a permanent access token.

    Returns:
        Shopify's token response ({"access_token": ..., "scope": ...})
    """
    response = http.post(
        f"https://{shop}/admin/oauth/access_token",
        json={
            "client_id": settings.SHOPIFY_CLIENT_ID,
            "client_secret": settings.SHOPIFY_CLIENT_SECRET,
            "code": code,
        },
        timeout=settings.HTTP_TIMEOUT
    )
    if not response.ok:
        raise ShopifyError("Failed to exchange code for access token")
    data = response.json()
    if not data.get("access_token"):
        raise ShopifyError("Failed to exchange code for access token")
    return data


class ShopifyClient:
    def __init__(self, http: requests.Session, shop_domain: str, access_token: str, api_version: Optional[str] = None):
        self.http = http
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.base_url = f"https://{shop_domain}/admin/api/{api_version or settings.SHOPIFY_API_VERSION}"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        response = self.http.request(
            method,
            f"{self.base_url}{endpoint}",
            headers=self._get_headers(),
            timeout=settings.HTTP_TIMEOUT,
            **kwargs
        )
        if not response.ok:
            raise ShopifyError(f"Shopify API error: {response.status_code} {response.reason}")
        if not response.content:
            return {}
        return response.json()

    def get_shop(self) -> Dict[str, Any]:
        return self._request("GET", "/shop.json")["shop"]

    def list_webhooks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/webhooks.json").get("webhooks", [])

    def create_webhook(self, topic: str, address: str) -> Dict[str, Any]:
        data = self._request("POST", "/webhooks.json", json={
            "webhook": {
                "topic": topic,
                "address": address,
                "format": "json",
            }
        })
        return data.get("webhook", {})

    def delete_webhook(self, webhook_id: str):
        self._request("DELETE", f"/webhooks/{webhook_id}.json")
