"""Convex HTTP client.

Calls the internal agent task functions with admin auth, using the Convex HTTP
API: POST {CONVEX_URL}/api/{query|mutation} with an
``Authorization: Convex <deploy_key>`` header.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

import httpx

from config import load_settings
from models import Task

logger = logging.getLogger(__name__)

FunctionKind = Literal["query", "mutation"]


class ConvexError(RuntimeError):
    """A Convex request failed or returned an error status."""


def _compact(args: Dict[str, Any]) -> Dict[str, Any]:
    # Convex validators reject null for optional fields; leave them out instead
    return {key: value for key, value in args.items() if value is not None}


class ConvexClient:
    """Synchronous client for the agent task functions."""

    def __init__(
        self,
        url: str,
        deploy_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.deploy_key = deploy_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Convex {self.deploy_key}",
        }

    def request(self, function_path: str, args: Dict[str, Any], kind: FunctionKind) -> Any:
        """Call a Convex function and return its value."""
        body = {"path": function_path, "args": _compact(args), "format": "json"}
        logger.debug("Convex %s %s", kind, function_path)

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = client.post(f"{self.url}/api/{kind}", json=body, headers=self._headers())
            except httpx.HTTPError as e:
                logger.error("HTTP error calling Convex %s: %s", function_path, e)
                raise ConvexError(f"Convex {kind} failed: {e}") from e

        if response.is_error:
            raise ConvexError(f"Convex {kind} failed ({response.status_code}): {response.text}")

        try:
            result = response.json()
        except ValueError as e:
            raise ConvexError(f"Convex {kind} returned invalid JSON: {response.text[:200]}") from e

        if not isinstance(result, dict):
            raise ConvexError(f"Convex {kind} returned an unexpected payload: {response.text[:200]}")
        # { status: "success", value } or { status: "error", errorMessage }
        if result.get("status") == "error":
            raise ConvexError(f"Convex error: {result.get('errorMessage')}")
        return result.get("value")

    def query(self, function_path: str, args: Dict[str, Any]) -> Any:
        return self.request(function_path, args, "query")

    def mutation(self, function_path: str, args: Dict[str, Any]) -> Any:
        return self.request(function_path, args, "mutation")

    # Agent task functions. All of them are scoped by tenantId and userId.

    def list_tasks(self, tenant_id: str, user_id: str) -> List[Task]:
        value = self.query("agent/tasks:list", {"tenantId": tenant_id, "userId": user_id})
        return [Task(**item) for item in value or []]

    def get_task(self, tenant_id: str, user_id: str, id: str) -> Optional[Task]:
        value = self.query("agent/tasks:get", {"tenantId": tenant_id, "userId": user_id, "id": id})
        return Task(**value) if value else None

    def search_tasks(self, tenant_id: str, user_id: str, query: str) -> List[Task]:
        value = self.query(
            "agent/tasks:search", {"tenantId": tenant_id, "userId": user_id, "query": query}
        )
        return [Task(**item) for item in value or []]

    def create_task(
        self,
        tenant_id: str,
        user_id: str,
        title: str,
        status: str,
        label: str,
        priority: str,
        description: Optional[str] = None,
    ) -> str:
        return self.mutation(
            "agent/tasks:create",
            {
                "tenantId": tenant_id,
                "userId": user_id,
                "title": title,
                "description": description,
                "status": status,
                "label": label,
                "priority": priority,
            },
        )

    def update_task(self, tenant_id: str, user_id: str, id: str, **fields: Optional[str]) -> None:
        args = {"tenantId": tenant_id, "userId": user_id, "id": id}
        args.update(fields)
        self.mutation("agent/tasks:update", args)

    def remove_task(self, tenant_id: str, user_id: str, id: str) -> None:
        self.mutation("agent/tasks:remove", {"tenantId": tenant_id, "userId": user_id, "id": id})


_client: Optional[ConvexClient] = None


def get_client() -> ConvexClient:
    """Return the process-wide client, building it from the environment on first use."""
    global _client
    if _client is None:
        settings = load_settings()
        _client = ConvexClient(
            settings.convex_url, settings.convex_deploy_key, timeout=settings.convex_timeout
        )
    return _client


def set_client(client: Optional[ConvexClient]) -> None:
    global _client
    _client = client
