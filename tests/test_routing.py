import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langchain_core.runnables import RunnableLambda

from app import run_turn
from checkpoint import create_checkpointer
from conftest import make_task
from responses import build_response
from routing import GENERAL_AGENT, TASK_AGENT, build_keyword_graph, route_request
from tools import ui_envelope


@pytest.mark.parametrize(
    "text",
    [
        "Show my tasks",
        "add a task to draft the 2026 strategy",
        "What's on my TODO list?",
        "put it in the backlog",
        "I have a few to-dos for tomorrow",
        "Create a work item for the outage",
        "Task: review the auth PR",
    ],
)
def test_task_keywords_route_to_task_agent(text):
    assert route_request(text) == TASK_AGENT


@pytest.mark.parametrize(
    "text",
    [
        "What is the capital of France?",
        "Tell me a joke",
        "How do I multitask better?",
        "Explain tasking in operating systems",
        "",
    ],
)
def test_other_text_routes_to_general_agent(text):
    assert route_request(text) == GENERAL_AGENT


def test_follow_up_stays_on_task_agent():
    assert route_request("delete it", previous=TASK_AGENT) == TASK_AGENT
    assert route_request("Mark that one as done", previous=TASK_AGENT) == TASK_AGENT
    # same words without a task turn before them
    assert route_request("delete it", previous=GENERAL_AGENT) == GENERAL_AGENT
    assert route_request("delete it") == GENERAL_AGENT
    # small talk after a task turn goes back to general
    assert route_request("thanks, how are you?", previous=TASK_AGENT) == GENERAL_AGENT


class RecordingAgent:
    """Sub-agent stand-in that records what it was given and appends a canned reply."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.inputs = []
        self.configs = []

    def run(self, state, config):
        self.inputs.append(list(state["messages"]))
        self.configs.append(config)
        return {"messages": list(state["messages"]) + self.replies.pop(0)}


@pytest.fixture
def agents():
    task_agent = RecordingAgent([
        [
            AIMessage(content="", tool_calls=[{"name": "list_tasks", "args": {}, "id": "c1"}]),
            ToolMessage(
                content=ui_envelope("Found 1 task(s)", "TaskTable", {"tasks": [make_task("t1")]}),
                name="list_tasks",
                tool_call_id="c1",
            ),
            AIMessage(content="You have 1 task."),
        ],
        [
            AIMessage(content="", tool_calls=[{"name": "propose_task_delete", "args": {"id": "t1"}, "id": "c2"}]),
            ToolMessage(
                content=ui_envelope("Confirm", "TaskConfirmDelete", {"task": make_task("t1")}),
                name="propose_task_delete",
                tool_call_id="c2",
            ),
            AIMessage(content="Confirm deletion below."),
        ],
    ])
    general_agent = RecordingAgent([[AIMessage(content="Paris.")]])
    return task_agent, general_agent


def test_keyword_graph_routes_and_keeps_thread(agents):
    task_agent, general_agent = agents
    graph = build_keyword_graph(
        RunnableLambda(task_agent.run), RunnableLambda(general_agent.run), checkpointer=create_checkpointer(":memory:")
    )
    config = {"configurable": {"thread_id": "th-1", "tenant_id": "tenant-1", "user_id": "user-1"}}

    first = graph.invoke({"messages": [("user", "show my tasks")]}, config=config)
    response = build_response(first["messages"])
    assert response["text"] == "You have 1 task."
    assert response["agent"] == TASK_AGENT
    assert response["__ui__"]["name"] == "TaskTable"
    assert task_agent.configs[0]["configurable"]["tenant_id"] == "tenant-1"

    # follow-up without a task keyword sees the earlier tool results
    second = graph.invoke({"messages": [("user", "delete it")]}, config=config)
    response = build_response(second["messages"])
    assert response["__ui__"]["name"] == "TaskConfirmDelete"
    assert response["task_ids"] == ["t1"]
    assert any(isinstance(m, ToolMessage) for m in task_agent.inputs[1])

    third = graph.invoke({"messages": [("user", "what is the capital of France?")]}, config=config)
    assert build_response(third["messages"]) == {"text": "Paris.", "task_ids": [], "agent": GENERAL_AGENT}
    # general agent only gets the human/assistant conversation
    seen = general_agent.inputs[0]
    assert all(isinstance(m, (HumanMessage, AIMessage)) for m in seen)
    assert not any(isinstance(m, AIMessage) and m.tool_calls for m in seen)
    assert seen[-1].content == "what is the capital of France?"


def test_run_turn_returns_envelope_with_suggestions(agents, monkeypatch):
    import app

    task_agent, general_agent = agents
    graph = build_keyword_graph(
        RunnableLambda(task_agent.run), RunnableLambda(general_agent.run), checkpointer=create_checkpointer(":memory:")
    )
    monkeypatch.setattr(app, "generate_suggestions", lambda messages: ["Mark it as done", "Add a task"])

    response = run_turn(graph, "show my tasks", "th-2")

    assert response["text"] == "You have 1 task."
    assert response["suggestions"] == ["Mark it as done", "Add a task"]
    assert "tenant_id" not in task_agent.configs[0]["configurable"]
