import httpx
import pytest

import convex
from conftest import CONVEX_URL, DEPLOY_KEY, make_task


def test_query_request_shape(fake_convex):
    fake_convex.on("agent/tasks:list", [make_task()])

    tasks = convex.get_client().list_tasks("tenant-1", "user-1")

    request = fake_convex.requests[0]
    assert request["url"] == f"{CONVEX_URL}/api/query"
    assert request["headers"]["authorization"] == f"Convex {DEPLOY_KEY}"
    assert request["headers"]["content-type"] == "application/json"
    assert request["body"] == {
        "path": "agent/tasks:list",
        "args": {"tenantId": "tenant-1", "userId": "user-1"},
        "format": "json",
    }
    assert [task.id for task in tasks] == ["t1"]
    assert tasks[0].tenant_id == "tenant-1"


def test_mutation_uses_mutation_endpoint(fake_convex):
    fake_convex.on("agent/tasks:create", "new-id")

    task_id = convex.get_client().create_task(
        "tenant-1", "user-1", title="Review PR", status="todo", label="bug", priority="low"
    )

    assert task_id == "new-id"
    request = fake_convex.requests[0]
    assert request["url"] == f"{CONVEX_URL}/api/mutation"
    # description was not given, so it is not sent at all
    assert "description" not in request["body"]["args"]


def test_update_omits_unset_fields(fake_convex):
    fake_convex.on("agent/tasks:update", None)

    convex.get_client().update_task("tenant-1", "user-1", "t1", title=None, status="done", priority=None)

    assert fake_convex.requests[0]["body"]["args"] == {
        "tenantId": "tenant-1",
        "userId": "user-1",
        "id": "t1",
        "status": "done",
    }


def test_get_missing_task_returns_none(fake_convex):
    fake_convex.on("agent/tasks:get", None)
    assert convex.get_client().get_task("tenant-1", "user-1", "nope") is None


def test_error_status_raises(fake_convex):
    fake_convex.on(
        "agent/tasks:remove",
        httpx.Response(200, json={"status": "error", "errorMessage": "Task belongs to another tenant"}),
    )

    with pytest.raises(convex.ConvexError, match="Convex error: Task belongs to another tenant"):
        convex.get_client().remove_task("tenant-1", "user-1", "t9")


def test_http_failure_raises(fake_convex):
    fake_convex.on("agent/tasks:search", httpx.Response(500, text="Internal Server Error"))

    with pytest.raises(convex.ConvexError, match=r"Convex query failed \(500\): Internal Server Error"):
        convex.get_client().search_tasks("tenant-1", "user-1", "strategy")


def test_non_object_payload_raises(fake_convex):
    fake_convex.on("agent/tasks:list", httpx.Response(200, json=[1, 2]))

    with pytest.raises(convex.ConvexError, match=r"Convex query returned an unexpected payload: \[1,\s?2\]"):
        convex.get_client().list_tasks("tenant-1", "user-1")


def test_transport_error_raises():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = convex.ConvexClient(CONVEX_URL, DEPLOY_KEY, transport=httpx.MockTransport(refuse))
    with pytest.raises(convex.ConvexError, match="connection refused"):
        client.query("agent/tasks:list", {"tenantId": "tenant-1", "userId": "user-1"})


def test_trailing_slash_is_stripped():
    client = convex.ConvexClient(CONVEX_URL + "/", DEPLOY_KEY)
    assert client.url == CONVEX_URL
