"""
Shared fixtures: a mocked Convex deployment and sample task payloads.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

import convex

CONVEX_URL = "https://happy-otter-123.convex.cloud"
DEPLOY_KEY = "prod:deploy-key"

TENANT_CONFIG = {"configurable": {"tenant_id": "tenant-1", "user_id": "user-1"}}


def make_task(id: str = "t1", **overrides: Any) -> Dict[str, Any]:
    task = {
        "_id": id,
        "_creationTime": 1767225600000.0,
        "tenantId": "tenant-1",
        "title": "Draft 2026 strategy",
        "description": "Draft the 2026 strategy document.",
        "status": "todo",
        "label": "feature",
        "priority": "high",
        "createdBy": "user-1",
    }
    task.update(overrides)
    return task


class FakeConvex:
    """
    Stands in for a Convex deployment behind httpx.MockTransport.

    Handlers map a function path ("agent/tasks:list") to a callable taking the
    request args and returning the response value, or to an httpx.Response.
    """

    def __init__(self) -> None:
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.requests: List[Dict[str, Any]] = []

    def on(self, path: str, handler: Any) -> None:
        self.handlers[path] = handler if callable(handler) else (lambda args, value=handler: value)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "body": body,
        })
        handler = self.handlers.get(body["path"])
        if handler is None:
            return httpx.Response(200, json={"status": "error", "errorMessage": f"Unknown function {body['path']}"})
        value = handler(body["args"])
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json={"status": "success", "value": value})


@pytest.fixture
def fake_convex():
    fake = FakeConvex()
    client = convex.ConvexClient(CONVEX_URL, DEPLOY_KEY, transport=httpx.MockTransport(fake))
    convex.set_client(client)
    yield fake
    convex.set_client(None)
