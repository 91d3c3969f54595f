"""Error taxonomy for the HTTP pipeline."""

from typing import Any, Optional


class HttpError(Exception):
    """
    Error carrying an HTTP status code.

    Raised by handlers (or by the pipeline itself) to turn a failure into a
    response with a specific status. Any other exception becomes a 500.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or 500

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"


class ValidationError(HttpError):
    """First failing validation check of a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        target: str = "params",
        path: str = "",
        kind: str = "",
        value: Any = None,
    ):
        super().__init__(message, status_code)
        self.target = target
        self.path = path
        self.kind = kind
        self.value = value


class CodecError(Exception):
    """Session blob could not be verified, decrypted or parsed."""


class CompressionError(Exception):
    """Response body could not be compressed."""


class DeployError(Exception):
    """Deploy stage could not register the function with its provider."""
