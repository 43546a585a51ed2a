import logging
from functools import lru_cache
from typing import List, Optional, Sequence

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from config import Settings, load_settings
from models import ConversationTitle, Suggestions
from responses import message_text

logger = logging.getLogger(__name__)


def create_chat_model(settings: Settings, model: Optional[str] = None, max_tokens: Optional[int] = None) -> BaseChatModel:
    """Instantiate a chat model for the configured provider."""
    kwargs = {}
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    return init_chat_model(
        model=model or settings.model_name,
        model_provider=settings.model_provider,
        **kwargs,
    )


@lru_cache(maxsize=1)
def get_suggestion_model():
    settings = load_settings()
    model = create_chat_model(settings, settings.auxiliary_model, max_tokens=200)
    return model.with_structured_output(Suggestions, method="function_calling")


@lru_cache(maxsize=1)
def get_title_model():
    settings = load_settings()
    model = create_chat_model(settings, settings.auxiliary_model, max_tokens=50)
    return model.with_structured_output(ConversationTitle, method="function_calling")


TASKS_SYSTEM_PROMPT = """You are TaskMate, a task management assistant. Your role is to help users manage their tasks effectively.

READ-ONLY tools:
- list_tasks: Show ALL existing tasks in a rich table
- get_task: Get task details by exact ID
- search_tasks: Find tasks by title. Use when the user mentions a specific task name.

PROPOSE tools (show editable forms, use these for user interactions):
- propose_task: Show a form to create a new task
- propose_task_update: Show a form to update a task, pre-filled with current values
- propose_task_delete: Show a confirmation to delete a task

DIRECT tools (execute immediately, only when the request carries explicit final values):
- create_task, update_task, delete_task

Task properties:
- Status: backlog, todo, in-progress, done, canceled
- Label: bug, feature, documentation
- Priority: low, medium, high

Tool selection:
- For VIEWING ALL tasks use list_tasks.
- For FINDING a task by name use search_tasks, not list_tasks followed by get_task.
- For GETTING a task by exact ID use get_task. Task IDs from earlier tool results in this conversation are valid; reuse them.
- For CREATING use propose_task. For UPDATING use propose_task_update. For DELETING use propose_task_delete.
- When the request says "Create the task: title='X', description='Y', ..." call create_task with exactly those values and reply "Done! Task created."
- When asked to refine a proposed task, the task does not exist yet: call propose_task again with ALL values, including the description.
- When the user cancels a pending form, acknowledge briefly and move on.

Every task needs a SHORT title (2-5 words) and a description of 1-2 actionable sentences expanding the user's request.
Never call propose_task or create_task without a description.

The UI renders tables, cards and forms from your tool results. Do not repeat task data in text: no markdown tables, no field lists.
Keep replies to 1-2 sentences, e.g. "You have 3 tasks. 'Review proposal' is high priority." or "Here's the form - review and submit when ready."
Never say a proposed task was created.

Default to status="todo", label="feature", priority="medium" when proposing and nothing is specified."""


GENERAL_SYSTEM_PROMPT = """You are a helpful general assistant. Your role is to help users with any questions or conversations that are not related to task management.

You can help with general knowledge questions, friendly conversation, explanations, advice and suggestions.

Be helpful, friendly, and concise. If the user asks about tasks, let them know task requests are handled separately."""


SUPERVISOR_SYSTEM_PROMPT = """You are a helpful supervisor assistant that routes user requests to specialized agents.

You have two agents:
1. task_manager - for anything related to task management (listing, finding, creating, updating or deleting tasks)
2. general_assistant - for all other questions and conversations

Routing guidelines:
- If the user mentions any of: {keywords}, or refers to a task from earlier in the conversation -> task_manager
- For general questions, conversations, or anything else -> general_assistant

Always hand the request to exactly one agent. When it finishes, give the user a short reply and do not repeat task data the UI already shows."""


SUGGESTIONS_PROMPT = """Based on this conversation, generate 2-4 brief follow-up suggestions the user might ask next.

Conversation:
{conversation}

Guidelines:
- Keep each suggestion SHORT (5-10 words max)
- Make them relevant to what was discussed
- For task discussions: suggest task actions ("Show my tasks", "Mark it as done")
- For general topics: suggest related questions
- Never repeat what the user already asked"""


TITLE_PROMPT = """Write a short, descriptive title (3-6 words) for a conversation that starts with this message:

{message}"""


def format_conversation(messages: Sequence[BaseMessage], limit: int = 6) -> str:
    lines = []
    for message in list(messages)[-limit:]:
        if isinstance(message, HumanMessage):
            role = "User"
        elif isinstance(message, AIMessage):
            role = "Assistant"
        else:
            continue
        text = message_text(message).strip()
        if text:
            lines.append(f"{role}: {text}")
    return "\n".join(lines)


def generate_suggestions(messages: Sequence[BaseMessage], model=None) -> List[str]:
    """
    Suggest 2-4 follow-up prompts for the conversation so far.

    Failures are logged and yield an empty list; suggestions never block a reply.
    """
    conversation = format_conversation(messages)
    if not conversation:
        return []
    try:
        model = model or get_suggestion_model()
        result = model.invoke(SUGGESTIONS_PROMPT.format(conversation=conversation))
        return list(result.suggestions)
    except Exception as e:
        logger.warning("Suggestion generation failed: %s", e)
        return []


def generate_title(message: str, model=None) -> str:
    """Title a conversation from its first message."""
    fallback = message.strip()[:50] or "New conversation"
    try:
        model = model or get_title_model()
        result = model.invoke(TITLE_PROMPT.format(message=message))
        return result.title.strip() or fallback
    except Exception as e:
        logger.warning("Title generation failed: %s", e)
        return fallback
