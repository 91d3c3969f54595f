import json
import pytest

from func import Func
from http_plugin import Http


@pytest.fixture(autouse=True)
def session_secret(monkeypatch):
    """Fixed session secret so codecs never fall back to a random one."""
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    return "test-secret"


@pytest.fixture
def json_event():
    """Factory for a POST event carrying a JSON body."""

    def make(body, headers=None):
        return {
            "httpMethod": "POST",
            "headers": {"content-type": "application/json", **(headers or {})},
            "body": body if isinstance(body, str) else json.dumps(body),
        }

    return make


@pytest.fixture
def make_handler():
    """Factory returning (http plugin, exported handler) for a handler function."""

    def make(handler=None, validator=None, config=None):
        http = Http({"config": config or {}, "validator": validator})
        func = Func(plugins=[http], handler=handler)
        return http, func.export()

    return make


@pytest.fixture
def large_payload():
    """Handler return value whose JSON body is well over the compression threshold."""
    return {"items": [f"item-{index:04d}" for index in range(200)]}
