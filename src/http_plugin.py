"""
HTTP plugin: request pipeline around the user handler.

Deploy merges configuration and registers the route with a provider. Mount
prepares the session codec and validator. Each invocation extracts params,
parses cookies and session, validates, runs the rest of the chain and
assembles the response.
"""

import base64
import binascii
import importlib
import inspect
import json
import logging
import re
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from constants import CONTENT_TYPES, PACKAGE_NAME, PLUGIN_NAME
from cookie import Cookie, CookieOptions
from deep_merge import deep_merge
from errors import DeployError, HttpError
from func import DeployData, InvokeData, MountData, Next
from handler_protocol import Failure, HandlerResult, HeaderValue, InvokeEvent, to_result
from response_encoder import build_response, encode_body
from session import Session, SessionCodec
from validator import Validator, ValidatorConfig

HttpMethod = Literal["BEGIN", "GET", "POST", "DELETE", "HEAD", "PUT", "OPTIONS", "TRACE", "PATCH", "ANY"]


class HttpConfig(BaseModel):
    """Route and cookie configuration of the HTTP plugin."""

    method: HttpMethod = "POST"
    timeout: Optional[int] = None
    path: Optional[str] = None
    ignore_path_prefix: Optional[str] = Field(None, alias="ignorePathPrefix")
    function_name: Optional[str] = Field(None, alias="functionName")
    cookie: CookieOptions = Field(default_factory=CookieOptions)

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def default_path(name: Optional[str], ignore_path_prefix: Optional[str] = None) -> str:
    """
    Derive a route path from a function's logical name.

    ``users_index`` becomes ``/users``, ``index`` becomes ``/``. A matching
    ``ignore_path_prefix`` is stripped from the front.
    """
    path = "/" + re.sub(r"/index$", "", (name or "").replace("_", "/"))
    if path == "/index":
        path = "/"

    if ignore_path_prefix:
        path = re.sub("^" + re.escape(ignore_path_prefix), "", path)

    return path or "/"


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


class HttpContext:
    """
    Request and response state of one invocation.

    Handlers get it through ``Http.context(data)``.
    """

    def __init__(self, event: InvokeEvent, cookie: Cookie):
        self.event = event
        self.headers: Dict[str, str] = event.headers
        self.body: Optional[str] = event.body
        self.params: Any = {}
        self.cookie = cookie
        self.session: Session = cookie.session

        self.status_code: Optional[int] = None
        self.response_headers: Dict[str, HeaderValue] = {}
        self.response_body: Any = None

    def set_header(self, key: str, value: HeaderValue) -> "HttpContext":
        self.response_headers[key] = value
        return self

    def set_content_type(self, type: str, charset: str = "utf-8") -> "HttpContext":
        """
        Set Content-Type from a short name (``html``, ``csv``...) or a full type.
        """
        self.set_header("Content-Type", f"{CONTENT_TYPES.get(type, type)}; charset={charset}")
        return self

    def set_status_code(self, code: int) -> "HttpContext":
        self.status_code = code
        return self

    def set_body(self, body: Any) -> "HttpContext":
        self.response_body = body
        return self


class Http:
    """
    The HTTP plugin.

    Args:
        config: ``{"name": ..., "config": {...HttpConfig}, "validator": {...}}``
    """

    type: str = PLUGIN_NAME

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.name: str = config.get("name") or self.type
        self.declared_config: Dict[str, Any] = config.get("config") or {}
        self.validator_config: Optional[Union[Dict[str, Any], ValidatorConfig]] = config.get("validator")

        self.config = HttpConfig.model_validate(self.declared_config)
        self.session_codec: Optional[SessionCodec] = None
        self.validator: Optional[Validator] = None

    def context(self, data: InvokeData) -> HttpContext:
        """HTTP state of the invocation ``data`` belongs to."""
        return data.state[self.name]

    async def on_deploy(self, data: DeployData, next: Next) -> None:
        data.dependencies[PACKAGE_NAME] = "*"

        await next()

        logger = data.logger
        logger.debug("Generate api gateway's config")

        plugins = data.config.get("plugins") or {}
        config = deep_merge(plugins.get(self.name), {"config": self.declared_config})
        route = config.setdefault("config", {})

        if not route.get("path"):
            route["path"] = default_path(
                data.name,
                route.get("ignorePathPrefix") or route.get("ignore_path_prefix"),
            )

        logger.debug(f"Api gateway's config: {config}")

        provider_config = config.get("provider") or {}
        provider_type = provider_config.get("type")
        if not provider_type:
            raise DeployError(f"No provider configured for plugin '{self.name}'")

        try:
            provider_module = importlib.import_module(provider_type)
        except ImportError as e:
            raise DeployError(f"Failed to import provider '{provider_type}': {e}") from e

        provider_cls = getattr(provider_module, "Provider", None)
        if provider_cls is None:
            raise DeployError(f"Module '{provider_type}' does not export a 'Provider' class")

        provider = provider_cls(provider_config.get("config") or {})
        result = provider.deploy(self.type, data, config)
        if inspect.isawaitable(result):
            await result

    async def on_mount(self, data: MountData, next: Next) -> None:
        logger = data.logger

        plugins = data.config.get("plugins") or {}
        plugin_config = plugins.get(self.name) or {}
        if plugin_config.get("config"):
            logger.debug("[on_mount] merge config")
            self.config = HttpConfig.model_validate(deep_merge(self.declared_config, plugin_config["config"]))

        logger.debug("[on_mount] prepare cookie & session")
        self.session_codec = SessionCodec(self.config.cookie.session)

        if self.validator_config is not None:
            logger.debug("[on_mount] prepare validator")
            validator_config = (
                self.validator_config
                if isinstance(self.validator_config, ValidatorConfig)
                else ValidatorConfig.model_validate(self.validator_config)
            )
            self.validator = Validator(validator_config, logger)

        await next()

    def _extract_params(self, event: InvokeEvent, logger: logging.Logger) -> Any:
        body = event.body
        if body:
            if event.isBase64Encoded:
                try:
                    body = base64.b64decode(body).decode("utf-8")
                except (binascii.Error, UnicodeDecodeError) as e:
                    raise HttpError(f"Invalid base64 body: {e}", 400) from e

            if "application/json" in (event.header("content-type") or ""):
                logger.debug("[on_invoke] Parse params from json body")
                try:
                    return json.loads(body)
                except ValueError as e:
                    raise HttpError(f"Invalid JSON body: {e}", 400) from e

            logger.debug("[on_invoke] Parse params from raw body")
            return body

        if event.queryString:
            logger.debug("[on_invoke] Parse params from queryString")
            return dict(event.queryString)

        return {}

    async def on_invoke(self, data: InvokeData, next: Next) -> None:
        logger = data.logger
        if self.session_codec is None:
            self.session_codec = SessionCodec(self.config.cookie.session)

        event_error: Optional[HttpError] = None
        try:
            event = InvokeEvent.from_raw(data.event)
        except PydanticValidationError as e:
            logger.warning(f"[on_invoke] Malformed event: {e}")
            event = InvokeEvent()
            event_error = HttpError(f"Invalid event: {_first_error(e)}", 400)

        ctx = HttpContext(event, Cookie(self.config.cookie, self.session_codec))
        data.state[self.name] = ctx

        try:
            if event_error is not None:
                raise event_error

            ctx.params = self._extract_params(event, logger)
            logger.debug(f"[on_invoke] Params: {ctx.params}")

            ctx.cookie.invoke(event.header("cookie"))
            if ctx.cookie.content:
                logger.debug(f"[on_invoke] Cookie: {ctx.cookie.content}")
                logger.debug(f"[on_invoke] Session: {ctx.session.content}")

            if self.validator is not None:
                logger.debug("[on_invoke] Valid request")
                self.validator.valid(
                    params=ctx.params,
                    cookie=ctx.cookie.content,
                    session=ctx.session.content,
                    request=ctx,
                    logger=logger,
                )

            await next()
        except Exception as error:
            data.response = Failure(error)

        result: HandlerResult = to_result(data.response)

        try:
            ctx.session.update()
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to encode session: {e}")
            result = Failure(e)

        response = build_response(
            result,
            status_code=ctx.status_code,
            headers=ctx.response_headers,
            body=ctx.response_body,
            cookie_headers=ctx.cookie.headers(),
            logger=logger,
        )
        data.response = encode_body(response, event.header("accept-encoding"), logger)


def use_http(
    config: Optional[Dict[str, Any]] = None,
    validator: Optional[Union[Dict[str, Any], ValidatorConfig]] = None,
    name: Optional[str] = None,
) -> Http:
    """Shorthand for ``Http({"name": name, "config": config, "validator": validator})``."""
    return Http({"name": name, "config": config, "validator": validator})
