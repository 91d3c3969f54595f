"""
Turns a tagged handler result into a wire-ready HTTP response.

Compression is best-effort: any compressor failure leaves the response
uncompressed instead of failing the invocation.
"""

import base64
import gzip
import json
import logging
import zlib
from typing import Any, Dict, List, Optional

import brotli
from pydantic_core import to_jsonable_python

from constants import ACCEPTED_ENCODINGS, COMPRESSION_MIN_LENGTH, DEFAULT_HEADERS
from errors import CompressionError
from handler_protocol import Failure, HandlerResult, HeaderValue, RawResponse, Success
from logger import get_logger

log = get_logger(__name__)


def to_json(value: Any) -> str:
    """Compact JSON, non-ASCII kept as is; pydantic models and dates are supported."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=to_jsonable_python)


def status_of(error: BaseException) -> int:
    """Status code carried by an error, 500 when absent or unreadable."""
    try:
        code = getattr(error, "status_code", None) or getattr(error, "statusCode", None)
        return int(code) if code else 500
    except Exception:
        return 500


def message_of(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


def error_body(error: BaseException) -> str:
    return to_json({"error": {"message": message_of(error)}})


def is_empty_value(value: Any) -> bool:
    """
    True for return values that mean "nothing to return".

    Empty scalars count (``None``, ``False``, ``0``, ``""``); empty containers
    do not, so ``[]`` and ``{}`` still produce a ``data`` body.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return isinstance(value, str) and value == ""


def build_response(
    result: Optional[HandlerResult],
    status_code: Optional[int] = None,
    headers: Optional[Dict[str, HeaderValue]] = None,
    body: Any = None,
    cookie_headers: Optional[Dict[str, List[str]]] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Assemble status code, headers and body.

    Args:
        result: Tagged handler outcome
        status_code: Status set by the handler through its context
        headers: Headers set by the handler through its context
        body: Body set by the handler through its context
        cookie_headers: Set-Cookie headers from the cookie jar
        logger: Invocation logger

    Returns:
        Response dict with ``statusCode``, ``headers`` and optional ``body``
    """
    logger = logger or log
    response: Dict[str, Any] = {"headers": dict(headers or {})}
    if status_code:
        response["statusCode"] = status_code
    if body is not None:
        response["body"] = body

    if isinstance(result, Success) and not is_empty_value(result.value):
        try:
            response["body"] = to_json({"data": result.value})
        except (TypeError, ValueError) as e:
            result = Failure(e)

    if isinstance(result, Failure):
        logger.error(f"Invocation failed: {result.error!r}", exc_info=result.error)
        response["body"] = error_body(result.error)
        response["statusCode"] = status_of(result.error)
    elif isinstance(result, RawResponse):
        response = dict(result.envelope)
        response["headers"] = dict(result.envelope.get("headers") or {})

    if not response.get("statusCode"):
        response["statusCode"] = 200 if response.get("body") else 201

    response["headers"] = {**DEFAULT_HEADERS, **(cookie_headers or {}), **response["headers"]}
    return response


def negotiate_encoding(accept_encoding: Optional[str]) -> Optional[str]:
    """
    Pick the preferred supported encoding from an Accept-Encoding header.

    Tokens with ``q=0`` are refused.
    """
    if not accept_encoding:
        return None

    accepted = set()
    for token in accept_encoding.lower().split(","):
        name, _, params = token.strip().partition(";")
        if params.replace(" ", "") in ("q=0", "q=0.0", "q=0.00", "q=0.000"):
            continue
        accepted.add(name.strip())

    for encoding in ACCEPTED_ENCODINGS:
        if encoding in accepted:
            return encoding
    return None


def compress(text: str, encoding: str) -> str:
    """
    Compress ``text`` and return the result base64 encoded.

    Raises:
        CompressionError: If the encoding is unknown or the compressor fails
    """
    data = text.encode("utf-8")
    try:
        if encoding == "br":
            compressed = brotli.compress(data)
        elif encoding == "gzip":
            compressed = gzip.compress(data)
        elif encoding == "deflate":
            compressed = zlib.compress(data)
        else:
            raise CompressionError(f"No matched compression: {encoding}")
    except CompressionError:
        raise
    except Exception as e:
        raise CompressionError(f"{encoding} compression failed: {e}") from e

    return base64.b64encode(compressed).decode("ascii")


def encode_body(
    response: Dict[str, Any],
    accept_encoding: Optional[str],
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Stringify the body and compress it when worthwhile.

    Records the pre-encoding body as ``originBody``. Mutates and returns
    ``response``.
    """
    logger = logger or log
    origin_body = response.get("body")
    response["originBody"] = origin_body

    if origin_body is not None and not response.get("isBase64Encoded") and not isinstance(origin_body, str):
        try:
            response["body"] = to_json(origin_body)
        except (TypeError, ValueError) as e:
            logger.error(f"Response body is not serializable: {e}")
            response["statusCode"] = 500
            response["body"] = error_body(e)

    text = response.get("body")
    if not text or response.get("isBase64Encoded") or not isinstance(text, str) or len(text) < COMPRESSION_MIN_LENGTH:
        return response

    encoding = negotiate_encoding(accept_encoding)
    if encoding is None:
        return response

    try:
        response["headers"]["Content-Encoding"] = encoding
        response["body"] = compress(text, encoding)
        response["isBase64Encoded"] = True
    except CompressionError as e:
        logger.error(f"Falling back to uncompressed body: {e}")
        response["body"] = text
        response["headers"].pop("Content-Encoding", None)

    return response
