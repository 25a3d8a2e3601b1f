import pytest
from starlette.requests import Request

from smsly_audit.config import Configuration
from smsly_audit.providers import InMemoryDataProvider


@pytest.fixture(autouse=True)
def reset_configuration():
    Configuration.reset()
    Configuration.enable()
    yield
    Configuration.reset()


@pytest.fixture
def provider():
    return InMemoryDataProvider()


def make_request(
    method: str = "GET",
    path: str = "/orders/42",
    headers: dict = None,
    body: bytes = b"",
    client=("10.0.0.5", 51000),
) -> Request:
    """Build a bare Starlette request without a running app."""
    raw_headers = [
        (k.lower().encode("latin-1"), v.encode("latin-1"))
        for k, v in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "root_path": "",
        "query_string": b"",
        "headers": raw_headers,
        "server": ("testserver", 80),
        "client": client,
    }
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory():
    return make_request
