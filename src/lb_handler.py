"""HTTP adapter for running a func behind a load balancer or locally.

This handler provides a FastAPI application that:
- /ping: Health check endpoint (required by RunPod Load Balancer)
- every other path and method: converts the request into an inbound event,
  invokes the func and replays its response

The func is loaded from FUNC_MODULE, see handler.load_func.
"""

import base64
import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response

from func import Func
from handler import load_func
from logger import setup_logging

logger = logging.getLogger(__name__)


async def build_event(request: Request) -> Dict[str, Any]:
    """Map an incoming HTTP request onto the provider-neutral event shape."""
    raw = await request.body()
    event: Dict[str, Any] = {
        "httpMethod": request.method,
        "path": request.url.path,
        "headers": dict(request.headers),
        "queryString": dict(request.query_params),
    }

    if raw:
        try:
            event["body"] = raw.decode("utf-8")
        except UnicodeDecodeError:
            event["body"] = base64.b64encode(raw).decode("utf-8")
            event["isBase64Encoded"] = True

    return event


def to_response(result: Any) -> Response:
    """Replay a func response dict as a FastAPI response."""
    if not isinstance(result, dict):
        return Response(status_code=200, content=str(result) if result is not None else None)

    body = result.get("body")
    if body is not None and result.get("isBase64Encoded"):
        content: Optional[bytes] = base64.b64decode(body)
    else:
        content = body.encode("utf-8") if isinstance(body, str) else None

    response = Response(status_code=result.get("statusCode", 200), content=content)
    for key, value in (result.get("headers") or {}).items():
        values: List[str] = value if isinstance(value, list) else [str(value)]
        if key.lower() == "content-type":
            response.headers[key] = values[-1]
            continue
        for item in values:
            response.headers.append(key, item)

    return response


def create_app(func: Func) -> FastAPI:
    """Build the adapter app around ``func``."""
    app = FastAPI(title="faas-http")
    invoke = func.export()

    @app.get("/ping")
    async def ping() -> Dict[str, Any]:
        """Health check endpoint for the load balancer."""
        return {"status": "healthy"}

    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    )
    async def invoke_func(request: Request) -> Response:
        event = await build_event(request)
        logger.debug(f"{event['httpMethod']} {event['path']}")
        result = await invoke(event, {"source": "http"})
        return to_response(result)

    return app


if __name__ == "__main__":
    import uvicorn

    setup_logging()
    # Local development server for testing
    uvicorn.run(create_app(load_func()), host="0.0.0.0", port=int(os.environ.get("PORT", 80)))
