import re
from typing import Optional

from langchain_core.messages import AIMessage, HumanMessage
from langchain_core.runnables import Runnable, RunnableConfig
from langgraph.graph import END, START, MessagesState, StateGraph

from responses import conversation_only, message_text

TASK_AGENT = "task_manager"
GENERAL_AGENT = "general_assistant"

TASK_KEYWORDS = frozenset({
    "task", "tasks", "todo", "todos", "to-do", "to-dos", "backlog", "subtask", "subtasks",
})
TASK_PHRASES = ("work item", "to do list", "action item")

# After a task turn these keep short follow-ups ("delete it", "mark that done") on tasks
FOLLOW_UP_WORDS = frozenset({
    "add", "create", "make", "delete", "remove", "update", "edit", "change", "rename",
    "mark", "complete", "finish", "cancel", "show", "list", "set", "move", "prioritize",
    "save", "submit", "done", "in-progress",
})

_WORD = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")


def route_request(text: str, previous: Optional[str] = None) -> str:
    """
    Pick the sub-agent for a user message by keyword.

    Task vocabulary routes to the task agent; a follow-up action word keeps
    the conversation there when the previous turn was a task turn.
    """
    lowered = text.lower()
    words = set(_WORD.findall(lowered))
    if words & TASK_KEYWORDS or any(phrase in lowered for phrase in TASK_PHRASES):
        return TASK_AGENT
    if previous == TASK_AGENT and words & FOLLOW_UP_WORDS:
        return TASK_AGENT
    return GENERAL_AGENT


class RouterState(MessagesState):
    route: Optional[str]


def _named(messages, name: str):
    for message in messages:
        if isinstance(message, AIMessage) and not message.name:
            message.name = name
    return messages


def build_keyword_graph(task_agent: Runnable, general_agent: Runnable, checkpointer=None):
    """
    Compile a graph that routes each turn by keyword instead of asking the model.

    The task agent sees the whole thread so earlier task IDs stay available;
    the general agent sees only the human/AI conversation.
    """

    def router(state: RouterState) -> dict:
        text = ""
        for message in reversed(state["messages"]):
            if isinstance(message, HumanMessage):
                text = message_text(message)
                break
        return {"route": route_request(text, state.get("route"))}

    def call_task_agent(state: RouterState, config: RunnableConfig) -> dict:
        messages = state["messages"]
        result = task_agent.invoke({"messages": messages}, config)
        return {"messages": _named(result["messages"][len(messages):], TASK_AGENT)}

    def call_general_agent(state: RouterState, config: RunnableConfig) -> dict:
        messages = conversation_only(state["messages"])
        result = general_agent.invoke({"messages": messages}, config)
        return {"messages": _named(result["messages"][len(messages):], GENERAL_AGENT)}

    builder = StateGraph(RouterState)
    builder.add_node("router", router)
    builder.add_node(TASK_AGENT, call_task_agent)
    builder.add_node(GENERAL_AGENT, call_general_agent)
    builder.add_edge(START, "router")
    builder.add_conditional_edges("router", lambda state: state["route"], [TASK_AGENT, GENERAL_AGENT])
    builder.add_edge(TASK_AGENT, END)
    builder.add_edge(GENERAL_AGENT, END)
    return builder.compile(checkpointer=checkpointer)
