import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from langgraph_supervisor import create_supervisor

from agents import build_general_agent, build_task_agent
from checkpoint import create_checkpointer
from config import Settings, load_settings
from llm import SUPERVISOR_SYSTEM_PROMPT, create_chat_model, generate_suggestions
from models import AgentContext
from responses import SUPERVISOR_NAME, build_response
from routing import TASK_KEYWORDS, build_keyword_graph

logger = logging.getLogger(__name__)


def build_graph(settings: Settings, model=None, checkpointer=None):
    """
    Compile the conversation graph for the configured routing mode.

    "llm" lets a supervisor model hand off to the sub-agents; "keyword" routes
    each turn with route_request.
    """
    model = model or create_chat_model(settings)
    if checkpointer is None:
        checkpointer = create_checkpointer(settings.checkpoint_db)
    task_agent = build_task_agent(model)
    general_agent = build_general_agent(model)

    if settings.routing_mode == "keyword":
        return build_keyword_graph(task_agent, general_agent, checkpointer=checkpointer)

    workflow = create_supervisor(
        [task_agent, general_agent],
        model=model,
        prompt=SUPERVISOR_SYSTEM_PROMPT.format(keywords=", ".join(sorted(TASK_KEYWORDS))),
        output_mode="full_history",
        supervisor_name=SUPERVISOR_NAME,
    )
    return workflow.compile(checkpointer=checkpointer)


@lru_cache(maxsize=1)
def get_graph():
    settings = load_settings()
    logger.info("Building %s-routed graph with %s:%s", settings.routing_mode, settings.model_provider, settings.model_name)
    return build_graph(settings)


def turn_config(thread_id: str, context: Optional[AgentContext] = None) -> Dict[str, Any]:
    configurable: Dict[str, Any] = {"thread_id": thread_id}
    if context is not None:
        configurable.update(context.as_configurable())
    return {"configurable": configurable}


def is_new_thread(graph, thread_id: str) -> bool:
    snapshot = graph.get_state({"configurable": {"thread_id": thread_id}})
    return not (snapshot.values or {}).get("messages")


def run_turn(
    graph,
    message: str,
    thread_id: str,
    context: Optional[AgentContext] = None,
    suggest: bool = True,
) -> Dict[str, Any]:
    """
    Send one user message through the graph and aggregate the reply.

    Returns {text, __ui__?, task_ids, agent, suggestions}.
    """
    state = graph.invoke({"messages": [("user", message)]}, config=turn_config(thread_id, context))
    messages = state["messages"]
    response = build_response(messages)
    response["suggestions"] = generate_suggestions(messages) if suggest else []
    return response
