"""
Signed, encrypted session state carried inside a single cookie.

Wire format of the cookie value::

    base64(nonce + AES-GCM ciphertext) "--" hex(HMAC(signed_key, payload))

Both keys are derived from one secret with PBKDF2 using different salts.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
import secrets
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import unquote

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import SESSION_SECRET_ENV
from errors import CodecError
from logger import get_logger

if TYPE_CHECKING:
    from cookie import Cookie

NONCE_SIZE = 12
AES_KEY_SIZES_ALLOWED = (16, 24, 32)

log = get_logger(__name__)


class SessionOptions(BaseModel):
    """Session cookie name and key derivation parameters."""

    key: str = "key"
    secret: Optional[str] = None
    salt: str = "salt"
    signed_salt: str = Field("signedSalt", alias="signedSalt")
    keylen: int = 64
    iterations: int = 100
    digest: str = "sha256"

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("keylen")
    @classmethod
    def _cipher_key_size(cls, value: int) -> int:
        if value // 2 not in AES_KEY_SIZES_ALLOWED:
            raise ValueError(f"keylen must be one of {[size * 2 for size in AES_KEY_SIZES_ALLOWED]}")
        return value

    @field_validator("digest")
    @classmethod
    def _known_digest(cls, value: str) -> str:
        if not hasattr(hashes, value.upper()) or value.lower() not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported digest: {value}")
        return value.lower()


def _derive(secret: str, salt: str, length: int, iterations: int, digest: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=getattr(hashes, digest.upper())(),
        length=length,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


class SessionCodec:
    """
    Stateless encoder/decoder for session blobs.

    Built once per mount and shared by every invocation; holds only the
    derived keys.
    """

    def __init__(self, options: Optional[SessionOptions] = None):
        self.options = options or SessionOptions()

        secret = self.options.secret or os.environ.get(SESSION_SECRET_ENV)
        if not secret:
            log.warning(
                f"No session secret configured (set {SESSION_SECRET_ENV}); "
                "using a random secret, sessions will not survive a remount"
            )
            secret = secrets.token_hex(64)

        self._cipher_key = _derive(
            secret,
            self.options.salt,
            self.options.keylen // 2,
            self.options.iterations,
            self.options.digest,
        )
        self._signing_key = _derive(
            secret,
            self.options.signed_salt,
            self.options.keylen,
            self.options.iterations,
            self.options.digest,
        )

    @property
    def key(self) -> str:
        """Name of the cookie holding the session."""
        return self.options.key

    def _sign(self, payload: str) -> str:
        return hmac.new(self._signing_key, payload.encode("utf-8", "surrogatepass"), self.options.digest).hexdigest()

    def encode(self, content: Any) -> str:
        """
        Serialize, encrypt and sign session content.

        Args:
            content: JSON-serializable value, or an already serialized string

        Returns:
            Signed cookie value
        """
        text = content if isinstance(content, str) else json.dumps(content, separators=(",", ":"))
        nonce = os.urandom(NONCE_SIZE)
        encrypted = AESGCM(self._cipher_key).encrypt(nonce, text.encode("utf-8"), None)
        payload = base64.b64encode(nonce + encrypted).decode("utf-8")
        return f"{payload}--{self._sign(payload)}"

    def decode(self, value: str) -> Any:
        """
        Verify and decrypt a session cookie value.

        Raises:
            CodecError: If the signature, ciphertext or JSON is invalid
        """
        text = unquote(value)
        parts = text.split("--")
        if len(parts) != 2:
            raise CodecError("Malformed session value")

        payload, digest = parts
        # Client-supplied digest may hold any character once URL-decoded
        expected = self._sign(payload).encode("ascii")
        if not hmac.compare_digest(expected, digest.encode("utf-8", "surrogatepass")):
            raise CodecError("Session signature mismatch")

        try:
            raw = base64.b64decode(payload, validate=True)
            plaintext = AESGCM(self._cipher_key).decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None)
            return json.loads(plaintext.decode("utf-8"))
        except (binascii.Error, ValueError, InvalidTag) as exc:
            raise CodecError(f"Session payload invalid: {exc}") from exc


class Session:
    """Per-invocation session content bound to a cookie jar."""

    def __init__(self, cookie: "Cookie", codec: SessionCodec):
        self.cookie = cookie
        self.codec = codec
        self.content: Dict[str, Any] = {}
        self.changed = False

    def invoke(self, raw: Optional[str]) -> None:
        """Load session content from the incoming cookie value."""
        self.changed = False
        self.content = {}
        if not raw:
            return

        try:
            decoded = self.codec.decode(raw)
        except CodecError as e:
            log.warning(f"Discarding session cookie: {e}")
            return

        if isinstance(decoded, dict):
            self.content = decoded
        else:
            log.warning("Discarding session cookie: content is not an object")

    def read(self, key: str, default: Any = None) -> Any:
        return self.content.get(key, default)

    def write(self, key: str, value: Any) -> "Session":
        """Set a session value; ``None`` removes the key."""
        if value is None:
            self.content.pop(key, None)
        else:
            self.content[key] = value
        self.changed = True
        return self

    def update(self) -> None:
        """Write the current content back into the cookie jar."""
        if self.content:
            self.cookie.write(self.codec.key, self.codec.encode(self.content))
        elif self.changed:
            self.cookie.write(self.codec.key, None)
