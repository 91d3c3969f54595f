import os
import importlib
import sys
from typing import Any, Dict

import runpod

from constants import DEFAULT_FUNC_MODULE, FUNC_MODULE_ENV
from func import Func
from handler_protocol import HandlerEvent, HandlerFunction
from logger import get_logger, setup_logging

log = get_logger(__name__)


def load_func() -> Func:
    """
    Dynamically load the user's ``func`` from the module named by FUNC_MODULE.

    Returns:
        The Func exported by the module

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the module doesn't have a 'func' attribute
        TypeError: If 'func' is not a Func
    """
    func_module_name = os.environ.get(FUNC_MODULE_ENV, DEFAULT_FUNC_MODULE)

    try:
        func_module = importlib.import_module(func_module_name)

        if not hasattr(func_module, "func"):
            raise AttributeError(f"Module '{func_module_name}' does not export a 'func'")

        func = getattr(func_module, "func")

        if not isinstance(func, Func):
            raise TypeError(f"'func' in module '{func_module_name}' is not a Func, got {type(func).__name__}")

        log.info(f"Loaded func from module: {func_module_name}")
        return func

    except ImportError as e:
        print(
            f"Error: Failed to import module '{func_module_name}': {e}",
            file=sys.stderr,
        )
        raise
    except (AttributeError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


def load_handler() -> HandlerFunction:
    """
    Wrap the user's func for the RunPod serverless loop.

    RunPod delivers ``{"input": <http event>}``; the wrapper unwraps it and
    strips the internal ``originBody`` field from the response.
    """
    invoke = load_func().export()

    async def handler(job: Dict[str, Any]) -> Any:
        event = HandlerEvent(**job) if isinstance(job, dict) and "input" in job else None
        response = await invoke(event.input if event else job, job)
        if isinstance(response, dict):
            response.pop("originBody", None)
        return response

    return handler


# Start the RunPod serverless handler
if __name__ == "__main__":
    setup_logging()
    runpod.serverless.start({"handler": load_handler()})
