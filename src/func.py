"""
Plugin lifecycle runner.

A ``Func`` owns an ordered list of plugins and the user handler. Each
lifecycle stage (deploy, mount, invoke) is run as a middleware chain: every
plugin hook receives the stage data and a ``next`` continuation, does its own
work, awaits ``next()`` to hand control to the rest of the chain, and resumes
afterwards. The user handler is the terminal step of the invoke chain.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from handler_protocol import Failure, HandlerFunction, RawResponse, Success, to_result
from logger import LoggerLike, get_logger, invocation_logger

Next = Callable[[], Awaitable[None]]
Stage = Callable[[Any, Next], Awaitable[None]]


@dataclass
class DeployData:
    """Input of the deploy stage."""

    name: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    dependencies: Dict[str, str] = field(default_factory=dict)
    env: Optional[str] = None
    filename: Optional[str] = None
    logger: logging.Logger = field(default_factory=lambda: get_logger("deploy"))


@dataclass
class MountData:
    """Input of the mount stage, built from the first invocation."""

    config: Dict[str, Any] = field(default_factory=dict)
    event: Any = None
    context: Any = None
    logger: logging.Logger = field(default_factory=lambda: get_logger("mount"))


@dataclass
class InvokeData:
    """
    Per-invocation data shared by every plugin and the handler.

    Plugins keep their per-invocation state in ``state`` keyed by plugin name.
    ``response`` holds the tagged handler result until a plugin replaces it
    with a final response.
    """

    event: Any = None
    context: Any = None
    config: Dict[str, Any] = field(default_factory=dict)
    logger: LoggerLike = field(default_factory=lambda: get_logger("invoke"))
    response: Any = None
    state: Dict[str, Any] = field(default_factory=dict)


class Plugin(Protocol):
    """A plugin implements any subset of on_deploy, on_mount and on_invoke."""

    type: str
    name: str


def compose(stages: List[Stage], terminal: Optional[Callable[[Any], Awaitable[None]]] = None):
    """
    Chain stages so each one resumes only after the rest of the chain completed.

    Args:
        stages: Ordered hooks, each called as ``await stage(data, next)``
        terminal: Awaited after the last stage calls ``next()``

    Returns:
        Coroutine function running the whole chain for one ``data`` object
    """

    async def run(data: Any) -> None:
        async def dispatch(index: int) -> None:
            if index == len(stages):
                if terminal is not None:
                    await terminal(data)
                return

            called = False

            async def next_() -> None:
                nonlocal called
                if called:
                    raise RuntimeError("next() called multiple times")
                called = True
                await dispatch(index + 1)

            await stages[index](data, next_)

        await dispatch(0)

    return run


def unwrap(response: Any) -> Any:
    """Convert a tagged result left in InvokeData.response into a return value."""
    if isinstance(response, Success):
        return response.value
    if isinstance(response, RawResponse):
        return response.envelope
    if isinstance(response, Failure):
        raise response.error
    return response


class Func:
    """A deployable function: plugins plus a handler."""

    def __init__(
        self,
        plugins: Optional[List[Any]] = None,
        handler: Optional[Callable[[InvokeData], Any]] = None,
        config: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ):
        self.plugins = list(plugins or [])
        self.handler = handler
        self.config = config or {}
        self.name = name
        self.mounted = False
        self._mount_lock = asyncio.Lock()
        self.logger = get_logger(name or "func")

    def _stages(self, hook: str) -> List[Stage]:
        return [getattr(plugin, hook) for plugin in self.plugins if callable(getattr(plugin, hook, None))]

    async def deploy(self, data: DeployData) -> DeployData:
        """Run every plugin's on_deploy hook."""
        self.logger.debug(f"Deploying with {len(self.plugins)} plugin(s)")
        await compose(self._stages("on_deploy"))(data)
        return data

    async def mount(self, data: Optional[MountData] = None) -> None:
        """
        Run every plugin's on_mount hook once.

        Concurrent first invocations wait for the mount in progress instead of
        mounting again.
        """
        async with self._mount_lock:
            if self.mounted:
                return

            data = data or MountData(config=self.config, logger=self.logger)
            self.logger.debug("Mounting")
            await compose(self._stages("on_mount"))(data)
            self.mounted = True

    async def _run_handler(self, data: InvokeData) -> None:
        if self.handler is None:
            return

        try:
            value = self.handler(data)
            if inspect.isawaitable(value):
                value = await value
            data.response = to_result(value)
        except Exception as error:
            data.response = Failure(error)

    async def invoke(self, data: InvokeData) -> InvokeData:
        """Run the invoke chain with the handler as its terminal step."""
        await compose(self._stages("on_invoke"), self._run_handler)(data)
        return data

    def export(self) -> HandlerFunction:
        """
        Build the function handed to the host runtime.

        Returns:
            ``async handler(event, context=None)`` returning the response
        """

        async def handler(event: Any = None, context: Any = None) -> Any:
            if not self.mounted:
                await self.mount(MountData(config=self.config, event=event, context=context, logger=self.logger))

            data = InvokeData(
                event=event,
                context=context,
                config=self.config,
                logger=invocation_logger(self.logger, context),
            )
            await self.invoke(data)
            return unwrap(data.response)

        return handler
