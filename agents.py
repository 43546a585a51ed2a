from langchain_core.language_models import BaseChatModel
from langgraph.prebuilt import create_react_agent

from llm import GENERAL_SYSTEM_PROMPT, TASKS_SYSTEM_PROMPT
from routing import GENERAL_AGENT, TASK_AGENT
from tools import TASK_TOOLS


def build_task_agent(model: BaseChatModel):
    """Sub-agent bound to the Convex task tools."""
    return create_react_agent(
        model=model,
        tools=TASK_TOOLS,
        name=TASK_AGENT,
        prompt=TASKS_SYSTEM_PROMPT,
    )


def build_general_agent(model: BaseChatModel):
    """Tool-less sub-agent for everything that is not task management."""
    return create_react_agent(
        model=model,
        tools=[],
        name=GENERAL_AGENT,
        prompt=GENERAL_SYSTEM_PROMPT,
    )
