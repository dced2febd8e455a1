import requests


def get_http():
    """Outbound HTTP session, one per request. Overridden in tests."""
    with requests.Session() as http:
        yield http
