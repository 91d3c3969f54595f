"""
Rule-tree validation of request params, cookies and session content.

Validation is fail-fast: the first failing check raises ``ValidationError``
and nothing after it is evaluated. Targets are checked in the fixed order
params, cookie, session.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Literal, NoReturn, Optional

from pydantic import BaseModel, ConfigDict, Field

from errors import ValidationError
from logger import get_logger

RuleType = Literal[
    "string",
    "number",
    "boolean",
    "array",
    "object",
    "string[]",
    "number[]",
    "boolean[]",
    "object[]",
]

TARGETS = ("params", "cookie", "session")

ErrorHook = Callable[[str, str, Any], Optional[Dict[str, Any]]]


class ValidatorRuleOptions(BaseModel):
    """One node of a rule tree."""

    type: Optional[RuleType] = None
    required: bool = False
    in_: Optional[List[Any]] = Field(None, alias="in")
    default: Any = None
    config: Optional["ValidatorOptions"] = None

    model_config = ConfigDict(populate_by_name=True)


class ValidatorOptions(BaseModel):
    """Rules for one mapping, plus what to do with keys no rule names."""

    whitelist: Optional[Literal["error", "ignore"]] = None
    rules: Dict[str, ValidatorRuleOptions] = Field(default_factory=dict)
    on_error: Optional[ErrorHook] = Field(None, alias="onError")

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


ValidatorRuleOptions.model_rebuild()


class ValidatorConfig(BaseModel):
    """Per-target rule trees."""

    params: Optional[ValidatorOptions] = None
    cookie: Optional[ValidatorOptions] = None
    session: Optional[ValidatorOptions] = None


def json_type(value: Any) -> str:
    """Classify a decoded JSON value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def matches_type(rule_type: str, value: Any) -> bool:
    """Check a present value against a rule type, including typed arrays."""
    if rule_type.endswith("[]"):
        item_type = rule_type[:-2]
        return isinstance(value, list) and all(json_type(item) == item_type for item in value)
    return json_type(value) == rule_type


class Validator:
    """
    Validates request content against per-target rule trees.

    Instances hold configuration only and are shared across invocations.
    """

    def __init__(self, config: ValidatorConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or get_logger(__name__)

    def valid(
        self,
        params: Any = None,
        cookie: Optional[Dict[str, str]] = None,
        session: Optional[Dict[str, Any]] = None,
        request: Any = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Validate every configured target.

        ``params`` may be modified in place when rules carry defaults or the
        params whitelist is ``ignore``.

        Args:
            params: Extracted request params
            cookie: Parsed cookie jar content
            session: Decoded session content
            request: Passed to callable rule defaults
            logger: Invocation logger

        Raises:
            ValidationError: On the first failing check
        """
        log = logger or self.logger
        contents = {"params": params, "cookie": cookie, "session": session}

        for target in TARGETS:
            options: Optional[ValidatorOptions] = getattr(self.config, target)
            if options is None:
                continue

            content = contents[target]
            if not isinstance(content, dict):
                content = {}

            log.debug(f"Validating {target}")
            self._valid_content(target, content, "", options, options.on_error, request, log)

    def _fail(
        self,
        target: str,
        kind: str,
        path: str,
        value: Any,
        message: str,
        on_error: Optional[ErrorHook],
    ) -> NoReturn:
        status_code = None
        if on_error is not None:
            custom = on_error(f"{target}.{kind}", path, value)
            if custom:
                message = custom.get("message", message)
                status_code = custom.get("statusCode", custom.get("status_code"))

        raise ValidationError(
            message,
            status_code,
            target=target,
            path=path,
            kind=kind,
            value=value,
        )

    def _valid_content(
        self,
        target: str,
        content: Dict[str, Any],
        base_path: str,
        options: ValidatorOptions,
        on_error: Optional[ErrorHook],
        request: Any,
        log: logging.Logger,
    ) -> None:
        if options.whitelist:
            unpermitted = [key for key in content if key not in options.rules]
            if unpermitted:
                if options.whitelist == "error":
                    self._fail(
                        target,
                        "whitelist",
                        base_path.rstrip("."),
                        unpermitted,
                        f"[{target}] Unpermitted keys: {', '.join(unpermitted)}",
                        on_error,
                    )
                elif target == "params":
                    for key in unpermitted:
                        del content[key]

        for key, rule in options.rules.items():
            path = f"{base_path}{key}"
            value = content.get(key)

            if rule.default is not None:
                if target != "params":
                    log.warning(f"[{target}] {path}: default rule is only supported for params")
                elif value is None:
                    value = rule.default(request) if callable(rule.default) else rule.default
                    content[key] = value

            if value is None:
                if rule.required:
                    self._fail(target, "rule.required", path, value, f"[{target}] {path} is required.", on_error)
                continue

            if rule.type:
                if target == "cookie":
                    log.warning(f"[cookie] {path}: type rule is not supported for cookies")
                elif not matches_type(rule.type, value):
                    self._fail(
                        target,
                        "rule.type",
                        path,
                        value,
                        f"[{target}] {path} must be a {rule.type}.",
                        on_error,
                    )

            if rule.in_ is not None and value not in rule.in_:
                self._fail(
                    target,
                    "rule.in",
                    path,
                    value,
                    f"[{target}] {path} must be in {json.dumps(rule.in_)}.",
                    on_error,
                )

            if rule.config is not None:
                if target == "cookie":
                    log.warning(f"[cookie] {path}: nested rules are not supported for cookies")
                elif isinstance(value, list):
                    for item in value:
                        if isinstance(item, dict):
                            self._valid_content(target, item, f"{path}.", rule.config, on_error, request, log)
                elif isinstance(value, dict):
                    self._valid_content(target, value, f"{path}.", rule.config, on_error, request, log)
