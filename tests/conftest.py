"""
Shared fixtures: in-memory database, fake outbound HTTP, API client.
"""
import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

import trustloop.models  # noqa: F401
from trustloop.core.http import get_http
from trustloop.core.security import create_access_token
from trustloop.db.session import build_engine, create_db_and_tables, get_session
from trustloop.main import app
from trustloop.models.shop import ShopifyStore

SHOP = "demo-store.myshopify.com"


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.content = text.encode("utf-8")
        self.reason = "OK" if self.ok else "Error"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeHTTP:
    """Stands in for requests.Session; answers by method and URL fragment."""

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, method, url_fragment, response):
        # Most recently added route wins
        self.routes.insert(0, (method.upper(), url_fragment, response))

    def request(self, method, url, **kwargs):
        method = method.upper()
        self.calls.append({"method": method, "url": url, **kwargs})
        for route_method, fragment, response in self.routes:
            if route_method == method and fragment in url:
                return response(url, kwargs) if callable(response) else response
        raise AssertionError(f"Unexpected outbound request: {method} {url}")

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def calls_to(self, fragment, method=None):
        return [
            c for c in self.calls
            if fragment in c["url"] and (method is None or c["method"] == method.upper())
        ]


def gemini_reply(text):
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})


@pytest.fixture
def session():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def http():
    return FakeHTTP()


@pytest.fixture
def client(session, http):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_http] = lambda: http
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def store(session):
    store = ShopifyStore(shop_domain=SHOP, access_token="shpat_test", shop_name="Demo Store")
    session.add(store)
    session.commit()
    session.refresh(store)
    return store


@pytest.fixture
def auth_headers(store):
    return {"Authorization": f"Bearer {create_access_token({'sub': store.shop_domain})}"}
