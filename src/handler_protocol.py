"""
Event, response and result shapes shared by the host runtime, the plugin
lifecycle and user handlers.

The host runtime hands the pipeline a provider-neutral HTTP event and expects
an HTTP response dict back. RunPod wraps every payload in an ``input`` field,
so the host entrypoint unwraps ``HandlerEvent`` before invoking the function.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator


class HandlerEvent(BaseModel):
    """
    RunPod job envelope.

    Example:
        {
            "input": {
                "httpMethod": "POST",
                "headers": {"content-type": "application/json"},
                "body": "{\\"name\\": \\"faas\\"}"
            }
        }
    """

    input: Dict[str, Any] = Field(description="Provider-neutral HTTP event")

    model_config = {"extra": "allow"}  # Allow RunPod metadata fields


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class InvokeEvent(BaseModel):
    """Inbound HTTP event as delivered by the host runtime."""

    httpMethod: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    queryString: Optional[Dict[str, str]] = Field(
        default=None,
        validation_alias=AliasChoices("queryString", "queryStringParameters"),
    )
    isBase64Encoded: bool = False

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_or_empty(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): _as_text(v) for k, v in value.items() if v is not None}
        return value

    @field_validator("queryString", mode="before")
    @classmethod
    def _query_values_as_text(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _as_text(v) for k, v in value.items() if v is not None}
        return value

    @field_validator("isBase64Encoded", mode="before")
    @classmethod
    def _flag_or_false(cls, value: Any) -> Any:
        return False if value is None else value

    @classmethod
    def from_raw(cls, event: Any) -> "InvokeEvent":
        """Build an event from whatever the host passed, tolerating non-dicts."""
        if isinstance(event, InvokeEvent):
            return event
        if not isinstance(event, dict):
            return cls()
        return cls.model_validate(event)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


HeaderValue = Union[str, List[str]]


class HttpResponse(BaseModel):
    """
    Outbound HTTP response envelope.

    ``originBody`` records the body before stringification and compression.
    It is for diagnostics only and is stripped by host adapters.
    """

    statusCode: int
    headers: Dict[str, HeaderValue] = Field(default_factory=dict)
    body: Optional[str] = None
    isBase64Encoded: bool = False
    originBody: Optional[Any] = None


@dataclass(frozen=True)
class Success:
    """Handler returned a value."""

    value: Any = None


@dataclass(frozen=True)
class Failure:
    """Handler (or an upstream stage) raised."""

    error: BaseException


@dataclass(frozen=True)
class RawResponse:
    """Handler built its own response envelope (statusCode and headers)."""

    envelope: Dict[str, Any]


HandlerResult = Union[Success, Failure, RawResponse]


def is_raw_response(value: Any) -> bool:
    """True when ``value`` already looks like a full HTTP response."""
    return isinstance(value, dict) and bool(value.get("statusCode")) and isinstance(value.get("headers"), dict)


def to_result(value: Any) -> HandlerResult:
    """Tag a handler return value."""
    if isinstance(value, (Success, Failure, RawResponse)):
        return value
    if isinstance(value, BaseException):
        return Failure(value)
    if is_raw_response(value):
        return RawResponse(value)
    return Success(value)


# Type alias for the function exported to the host runtime
HandlerFunction = Callable[..., Awaitable[Any]]
