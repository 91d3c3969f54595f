"""Cookie header parsing and Set-Cookie generation."""

from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict, Field

from constants import DEFAULT_COOKIE_MAX_AGE, EXPIRED_COOKIE_DATE
from session import Session, SessionCodec, SessionOptions


class CookieOptions(BaseModel):
    """
    Attributes applied to every outgoing cookie.

    ``expires`` as an int is rendered as ``Max-Age``, as a string as
    ``Expires``.
    """

    domain: Optional[str] = None
    path: str = "/"
    expires: Optional[Union[int, str]] = DEFAULT_COOKIE_MAX_AGE
    secure: bool = True
    http_only: bool = Field(True, alias="httpOnly")
    same_site: Optional[str] = Field(None, alias="sameSite")
    session: SessionOptions = Field(default_factory=SessionOptions)

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Cookie:
    """
    Cookie jar of a single invocation.

    Holds the parsed request cookies, pending Set-Cookie values and the
    session decoded from its cookie.
    """

    def __init__(self, options: Optional[CookieOptions] = None, codec: Optional[SessionCodec] = None):
        self.options = options or CookieOptions()
        self.content: Dict[str, str] = {}
        self.set_cookie: Dict[str, str] = {}
        self.session = Session(self, codec or SessionCodec(self.options.session))

    @staticmethod
    def parse(header: Optional[str]) -> Dict[str, str]:
        """
        Parse a Cookie request header.

        Pairs without ``=`` or with an empty name are skipped.

        Args:
            header: Raw ``Cookie`` header value

        Returns:
            Mapping of cookie name to URL-decoded value
        """
        jar: Dict[str, str] = {}
        if not header:
            return jar

        for pair in header.split(";"):
            pair = pair.strip()
            if "=" not in pair:
                continue
            name, value = pair.split("=", 1)
            name = name.strip()
            if not name:
                continue
            jar[name] = unquote(value.strip())

        return jar

    def invoke(self, header: Optional[str]) -> None:
        """Reset the jar for a new invocation and load the session."""
        self.content = self.parse(header)
        self.set_cookie = {}
        self.session.invoke(self.read(self.session.codec.key))

    def read(self, name: str) -> Optional[str]:
        return self.content.get(name)

    def write(self, name: str, value: Optional[str], **overrides: Any) -> "Cookie":
        """
        Queue a Set-Cookie header.

        Args:
            name: Cookie name
            value: Cookie value, ``None`` expires the cookie
            **overrides: Per-cookie CookieOptions fields (domain, path,
                expires, secure, http_only, same_site)
        """
        options = self.options.model_copy(update=overrides)

        if value is None:
            options = options.model_copy(update={"expires": EXPIRED_COOKIE_DATE})
            parts: List[str] = [f"{name}="]
            self.content.pop(name, None)
        else:
            parts = [f"{name}={quote(str(value), safe='')}"]
            self.content[name] = str(value)

        if isinstance(options.expires, int):
            parts.append(f"Max-Age={options.expires}")
        elif isinstance(options.expires, str):
            parts.append(f"Expires={options.expires}")

        parts.append(f"Path={options.path or '/'}")
        if options.domain:
            parts.append(f"Domain={options.domain}")
        if options.secure:
            parts.append("Secure")
        if options.http_only:
            parts.append("HttpOnly")
        if options.same_site:
            parts.append(f"SameSite={options.same_site}")

        self.set_cookie[name] = "; ".join(parts)
        return self

    def headers(self) -> Dict[str, List[str]]:
        """Set-Cookie headers for everything written during this invocation."""
        if not self.set_cookie:
            return {}
        return {"Set-Cookie": list(self.set_cookie.values())}
