"""Tests for the cookie jar."""

import pytest

from cookie import Cookie, CookieOptions
from session import SessionCodec


@pytest.fixture
def cookie():
    return Cookie(CookieOptions(), SessionCodec())


class TestCookieParse:
    """Test Cookie header parsing."""

    def test_parse_pairs(self):
        assert Cookie.parse("a=1; b=2") == {"a": "1", "b": "2"}

    def test_parse_url_decodes_values(self):
        assert Cookie.parse("name=hello%20world; plus=a%2Bb") == {"name": "hello world", "plus": "a+b"}

    def test_parse_splits_on_first_equals(self):
        assert Cookie.parse("token=abc==") == {"token": "abc=="}

    def test_parse_skips_malformed_pairs(self):
        assert Cookie.parse("junk; =value; ok=1;") == {"ok": "1"}

    @pytest.mark.parametrize("header", [None, ""])
    def test_parse_empty(self, header):
        assert Cookie.parse(header) == {}


class TestCookieJar:
    """Test reading, writing and Set-Cookie generation."""

    def test_invoke_loads_content(self, cookie):
        cookie.invoke("a=1")

        assert cookie.read("a") == "1"
        assert cookie.read("missing") is None
        assert cookie.headers() == {}

    def test_write_renders_default_attributes(self, cookie):
        cookie.invoke(None)
        cookie.write("a", "hello world")

        assert cookie.read("a") == "hello world"
        assert cookie.headers() == {
            "Set-Cookie": ["a=hello%20world; Max-Age=31536000; Path=/; Secure; HttpOnly"]
        }

    def test_write_none_expires_cookie(self, cookie):
        cookie.invoke("a=1")
        cookie.write("a", None)

        assert cookie.read("a") is None
        assert cookie.headers() == {
            "Set-Cookie": ["a=; Expires=Thu, 01 Jan 1970 00:00:01 GMT; Path=/; Secure; HttpOnly"]
        }

    def test_configured_attributes(self):
        options = CookieOptions.model_validate(
            {
                "domain": "example.com",
                "path": "/api",
                "expires": "Wed, 21 Oct 2026 07:28:00 GMT",
                "secure": False,
                "httpOnly": False,
                "sameSite": "Lax",
            }
        )
        cookie = Cookie(options, SessionCodec())
        cookie.invoke(None)
        cookie.write("a", "1")

        assert cookie.headers()["Set-Cookie"] == [
            "a=1; Expires=Wed, 21 Oct 2026 07:28:00 GMT; Path=/api; Domain=example.com; SameSite=Lax"
        ]

    def test_write_overrides_per_cookie(self, cookie):
        cookie.invoke(None)
        cookie.write("a", "1", expires=60, http_only=False)

        assert cookie.headers()["Set-Cookie"] == ["a=1; Max-Age=60; Path=/; Secure"]

    def test_invoke_resets_previous_state(self, cookie):
        cookie.invoke("a=1")
        cookie.write("b", "2")

        cookie.invoke("c=3")

        assert cookie.content == {"c": "3"}
        assert cookie.headers() == {}

    def test_invoke_decodes_session_cookie(self, cookie):
        value = cookie.session.codec.encode({"user": 1})

        cookie.invoke(f"key={value}")

        assert cookie.session.content == {"user": 1}
