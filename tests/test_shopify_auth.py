"""
Shopify OAuth callback and webhook subscription management.
"""
from sqlmodel import select

from trustloop.core.security import decode_access_token
from trustloop.models.shop import ShopifyStore
from trustloop.models.webhook import WebhookSubscription
from trustloop.services.shopify import is_valid_shop_domain
from trustloop.services.webhook import WEBHOOK_TOPICS, webhook_address
from tests.conftest import SHOP, FakeResponse

SHOP_INFO = {
    "shop": {
        "name": "Demo Store",
        "email": "owner@demo-store.com",
        "shop_owner": "Ada Owner",
        "currency": "CAD",
        "timezone": "(GMT-05:00) Eastern Time (US & Canada)",
        "plan_name": "basic",
    }
}


def create_webhook_reply(url, kwargs):
    topic = kwargs["json"]["webhook"]["topic"]
    return FakeResponse(201, {"webhook": {"id": 1000 + WEBHOOK_TOPICS.index(topic), "topic": topic}})


def mock_install(http, existing=None):
    http.add("POST", "/admin/oauth/access_token", FakeResponse(200, {"access_token": "shpat_new", "scope": "read_orders,read_products"}))
    http.add("GET", "/shop.json", FakeResponse(200, SHOP_INFO))
    http.add("GET", "/webhooks.json", FakeResponse(200, {"webhooks": existing or []}))
    http.add("POST", "/webhooks.json", create_webhook_reply)


def callback(client, shop=SHOP, code="auth-code-123"):
    return client.post("/auth/shopify/callback", json={"shop": shop, "code": code})


def test_is_valid_shop_domain():
    assert is_valid_shop_domain("demo-store.myshopify.com")
    assert not is_valid_shop_domain("demo-store.example.com")
    assert not is_valid_shop_domain("evil.com/.myshopify.com")
    assert not is_valid_shop_domain("")


def test_callback_connects_store(client, http, session):
    mock_install(http)

    response = callback(client)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["shop"] == "Demo Store"
    assert data["domain"] == SHOP
    assert decode_access_token(data["token"])["sub"] == SHOP

    exchange = http.calls_to("/admin/oauth/access_token")[0]
    assert exchange["url"] == f"https://{SHOP}/admin/oauth/access_token"
    assert exchange["json"]["code"] == "auth-code-123"

    store = session.exec(select(ShopifyStore)).one()
    assert store.access_token == "shpat_new"
    assert store.scope == "read_orders,read_products"
    assert store.currency == "CAD"
    assert store.is_active is True


def test_callback_registers_every_topic(client, http, session):
    mock_install(http)
    callback(client)

    created = http.calls_to("/webhooks.json", method="POST")
    assert [c["json"]["webhook"]["topic"] for c in created] == WEBHOOK_TOPICS
    assert all(c["headers"]["X-Shopify-Access-Token"] == "shpat_new" for c in created)

    subscriptions = session.exec(select(WebhookSubscription)).all()
    assert {s.topic for s in subscriptions} == set(WEBHOOK_TOPICS)
    orders_create = next(s for s in subscriptions if s.topic == "orders/create")
    assert orders_create.address == webhook_address("orders/create")
    assert orders_create.shopify_webhook_id == str(1000 + WEBHOOK_TOPICS.index("orders/create"))


def test_callback_skips_existing_webhooks(client, http):
    existing = [{"id": 1, "topic": "orders/paid", "address": webhook_address("orders/paid")}]
    mock_install(http, existing=existing)

    assert callback(client).status_code == 200
    topics = [c["json"]["webhook"]["topic"] for c in http.calls_to("/webhooks.json", method="POST")]
    assert "orders/paid" not in topics
    assert len(topics) == len(WEBHOOK_TOPICS) - 1


def test_callback_survives_webhook_failures(client, http, session):
    mock_install(http)

    def reply(url, kwargs):
        if kwargs["json"]["webhook"]["topic"].startswith("products/"):
            return FakeResponse(422, {"errors": {"address": ["invalid"]}})
        return create_webhook_reply(url, kwargs)

    http.add("POST", "/webhooks.json", reply)

    response = callback(client)

    assert response.status_code == 200
    assert response.json()["success"] is True
    topics = {s.topic for s in session.exec(select(WebhookSubscription)).all()}
    assert topics == set(WEBHOOK_TOPICS) - {"products/create", "products/update"}


def test_callback_reconnect_updates_existing_store(client, http, session, store):
    mock_install(http)

    assert callback(client).status_code == 200
    stores = session.exec(select(ShopifyStore)).all()
    assert len(stores) == 1
    assert stores[0].access_token == "shpat_new"


def test_failed_code_exchange(client, http, session):
    http.add("POST", "/admin/oauth/access_token", FakeResponse(400, {"error": "invalid_request"}))

    response = callback(client)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to exchange code for access token"}
    assert session.exec(select(ShopifyStore)).all() == []


def test_failed_shop_validation(client, http, session):
    http.add("POST", "/admin/oauth/access_token", FakeResponse(200, {"access_token": "shpat_new"}))
    http.add("GET", "/shop.json", FakeResponse(401, {"errors": "Unauthorized"}))

    response = callback(client)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to validate shop connection"}
    assert session.exec(select(ShopifyStore)).all() == []


def test_invalid_shop_domain(client, http):
    response = callback(client, shop="demo-store.example.com")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid shop domain"}
    assert http.calls == []


def test_missing_code(client, http):
    response = client.post("/auth/shopify/callback", json={"shop": SHOP})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required parameters"
    assert http.calls == []


# ---------------------------------------------------------------------------
# Webhook management
# ---------------------------------------------------------------------------

def test_setup_requires_auth(client):
    response = client.post("/shopify/webhooks/setup")
    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}


def test_setup_webhooks(client, http, session, auth_headers):
    http.add("GET", "/webhooks.json", FakeResponse(200, {"webhooks": []}))
    http.add("POST", "/webhooks.json", create_webhook_reply)

    response = client.post("/shopify/webhooks/setup", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [r["status"] for r in data["results"]] == ["created"] * len(WEBHOOK_TOPICS)
    assert all(c["headers"]["X-Shopify-Access-Token"] == "shpat_test" for c in http.calls)


def test_remove_webhooks(client, http, session, store, auth_headers):
    address = webhook_address("orders/create")
    session.add(WebhookSubscription(shop_domain=SHOP, topic="orders/create", address=address, shopify_webhook_id="77"))
    session.commit()
    http.add("GET", "/webhooks.json", FakeResponse(200, {"webhooks": [{"id": 77, "topic": "orders/create", "address": address}]}))
    http.add("DELETE", "/webhooks/77.json", FakeResponse(200, {}))

    response = client.delete("/shopify/webhooks", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["results"] == [{"topic": "orders/create", "status": "removed"}]
    assert len(http.calls_to("/webhooks/77.json", method="DELETE")) == 1
    subscription = session.exec(select(WebhookSubscription)).one()
    session.refresh(subscription)
    assert subscription.is_active is False


def test_uninstalled_store_token_is_rejected(client, session, store, auth_headers):
    store.is_active = False
    session.add(store)
    session.commit()

    response = client.post("/shopify/webhooks/setup", headers=auth_headers)
    assert response.status_code == 401

