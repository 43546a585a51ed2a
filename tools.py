import json
import logging
from typing import Any, Dict, List, Optional, Literal

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import tool

from context import MISSING_CONTEXT_ERROR, context_from_config
from convex import get_client
from models import Task

logger = logging.getLogger(__name__)

StatusArg = Optional[Literal["backlog", "todo", "in-progress", "done", "canceled"]]
LabelArg = Optional[Literal["bug", "feature", "documentation"]]
PriorityArg = Optional[Literal["low", "medium", "high"]]

CREATE_DEFAULTS = {"status": "backlog", "label": "feature", "priority": "medium"}
PROPOSE_DEFAULTS = {"status": "todo", "label": "feature", "priority": "medium"}


def format_task(task: Task) -> str:
    lines = [
        f"- [{task.id}] {task.title} ({task.status})",
        f"  Label: {task.label} | Priority: {task.priority}",
    ]
    if task.description:
        lines.append(f"  Description: {task.description}")
    return "\n".join(lines)


def ui_envelope(text: str, name: Optional[str] = None, props: Optional[Dict[str, Any]] = None) -> str:
    """
    Serialize a tool result for the presentation layer.

    The envelope always has "text"; "__ui__" is added when a component is given.
    """
    envelope: Dict[str, Any] = {"text": text}
    if name is not None:
        envelope["__ui__"] = {"name": name, "props": props or {}}
    return json.dumps(envelope, ensure_ascii=False)


def _error(action: str, exc: Exception) -> str:
    logger.warning("Task tool failed while %s: %s", action, exc)
    return f"Error: {action} failed: {exc}"


@tool
def list_tasks(config: RunnableConfig) -> str:
    """
    List all tasks for the current tenant. Returns all tasks with their IDs,
    titles, descriptions, status, labels, and priorities, rendered as a table.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        tasks = get_client().list_tasks(ctx.tenant_id, ctx.user_id)
    except Exception as e:
        return _error("listing tasks", e)

    if not tasks:
        return ui_envelope("No tasks found. The task list is empty.")
    task_list = "\n\n".join(format_task(task) for task in tasks)
    return ui_envelope(
        f"Found {len(tasks)} task(s):\n\n{task_list}",
        "TaskTable",
        {"tasks": [task.to_props() for task in tasks]},
    )


@tool
def get_task(id: str, config: RunnableConfig) -> str:
    """
    Get details of a specific task by its exact ID.

    Args:
        id: The ID of the task to retrieve.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        task = get_client().get_task(ctx.tenant_id, ctx.user_id, id)
    except Exception as e:
        return _error("getting task", e)

    if task is None:
        return ui_envelope(f"Task not found with ID: {id}")
    return ui_envelope(f"Task details:\n{format_task(task)}", "TaskCard", {"task": task.to_props()})


@tool
def search_tasks(query: str, config: RunnableConfig) -> str:
    """
    Find tasks by title. Use when the user mentions a specific task by name.
    Shows a single task card for exactly one match and a filtered table otherwise.

    Args:
        query: Words from the task title to search for.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        tasks = get_client().search_tasks(ctx.tenant_id, ctx.user_id, query)
    except Exception as e:
        return _error("searching tasks", e)

    if not tasks:
        return ui_envelope(f"No tasks found matching '{query}'.")
    if len(tasks) == 1:
        return ui_envelope(
            f"Found 1 task matching '{query}':\n{format_task(tasks[0])}",
            "TaskCard",
            {"task": tasks[0].to_props()},
        )
    task_list = "\n\n".join(format_task(task) for task in tasks)
    return ui_envelope(
        f"Found {len(tasks)} tasks matching '{query}':\n\n{task_list}",
        "TaskTable",
        {"tasks": [task.to_props() for task in tasks]},
    )


@tool
def propose_task(
    title: str,
    config: RunnableConfig,
    description: Optional[str] = None,
    status: StatusArg = None,
    label: LabelArg = None,
    priority: PriorityArg = None,
) -> str:
    """
    Show an editable form for a new task so the user can review it before it is created.
    Nothing is saved until the user submits the form.

    Defaults: status=todo, label=feature, priority=medium.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    draft: Dict[str, Any] = {
        "title": title,
        "status": status or PROPOSE_DEFAULTS["status"],
        "label": label or PROPOSE_DEFAULTS["label"],
        "priority": priority or PROPOSE_DEFAULTS["priority"],
    }
    if description:
        draft["description"] = description
    return ui_envelope(
        f"Proposed new task '{title}'. Waiting for the user to review and submit the form.",
        "TaskEditForm",
        {"task": draft, "mode": "create"},
    )


@tool
def propose_task_update(
    id: str,
    config: RunnableConfig,
    title: Optional[str] = None,
    description: Optional[str] = None,
    status: StatusArg = None,
    label: LabelArg = None,
    priority: PriorityArg = None,
) -> str:
    """
    Show an editable form to update a task, pre-filled with its current values
    and the requested changes. Nothing is saved until the user submits the form.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        task = get_client().get_task(ctx.tenant_id, ctx.user_id, id)
    except Exception as e:
        return _error("loading task for update", e)
    if task is None:
        return ui_envelope(f"Task not found with ID: {id}")

    draft = task.to_props()
    changes = {
        "title": title,
        "description": description,
        "status": status,
        "label": label,
        "priority": priority,
    }
    draft.update({key: value for key, value in changes.items() if value is not None})
    return ui_envelope(
        f"Proposed changes to task {id}. Waiting for the user to review and submit the form.",
        "TaskEditForm",
        {"task": draft, "mode": "edit"},
    )


@tool
def propose_task_delete(id: str, config: RunnableConfig) -> str:
    """
    Show a confirmation dialog to delete a task. Nothing is deleted until the user confirms.

    Args:
        id: The ID of the task to delete.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        task = get_client().get_task(ctx.tenant_id, ctx.user_id, id)
    except Exception as e:
        return _error("loading task for deletion", e)
    if task is None:
        return ui_envelope(f"Task not found with ID: {id}")
    return ui_envelope(
        f"Asked the user to confirm deleting task {id} ('{task.title}').",
        "TaskConfirmDelete",
        {"task": task.to_props()},
    )


@tool
def create_task(
    title: str,
    config: RunnableConfig,
    description: Optional[str] = None,
    status: StatusArg = None,
    label: LabelArg = None,
    priority: PriorityArg = None,
) -> str:
    """
    Create a new task immediately. Requires a title. Optional: description,
    status (backlog/todo/in-progress/done/canceled), label (bug/feature/documentation),
    priority (low/medium/high).

    Defaults: status=backlog, label=feature, priority=medium.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    status = status or CREATE_DEFAULTS["status"]
    label = label or CREATE_DEFAULTS["label"]
    priority = priority or CREATE_DEFAULTS["priority"]
    try:
        task_id = get_client().create_task(
            ctx.tenant_id,
            ctx.user_id,
            title=title,
            description=description,
            status=status,
            label=label,
            priority=priority,
        )
    except Exception as e:
        return _error("creating task", e)

    lines = [
        "Task created successfully!",
        f"- ID: {task_id}",
        f"- Title: {title}",
        f"- Status: {status}",
        f"- Label: {label}",
        f"- Priority: {priority}",
    ]
    if description:
        lines.append(f"- Description: {description}")
    return "\n".join(lines)


@tool
def update_task(
    id: str,
    config: RunnableConfig,
    title: Optional[str] = None,
    description: Optional[str] = None,
    status: StatusArg = None,
    label: LabelArg = None,
    priority: PriorityArg = None,
) -> str:
    """
    Update an existing task immediately. Provide the task ID and any fields to
    update; only provided fields are changed.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    fields = {
        "title": title,
        "description": description,
        "status": status,
        "label": label,
        "priority": priority,
    }
    try:
        get_client().update_task(ctx.tenant_id, ctx.user_id, id, **fields)
    except Exception as e:
        return _error("updating task", e)

    updates: List[str] = [f"{key.capitalize()}: {value}" for key, value in fields.items() if value]
    if not updates:
        return f"Task {id} updated successfully! No fields were changed."
    return f"Task {id} updated successfully!\nUpdated fields:\n- " + "\n- ".join(updates)


@tool
def delete_task(id: str, config: RunnableConfig) -> str:
    """
    Delete a task by its ID immediately. This action cannot be undone.

    Args:
        id: The ID of the task to delete.
    """
    ctx = context_from_config(config)
    if ctx is None:
        return MISSING_CONTEXT_ERROR
    try:
        get_client().remove_task(ctx.tenant_id, ctx.user_id, id)
    except Exception as e:
        return _error("deleting task", e)
    return f"Task {id} deleted successfully."


TASK_TOOLS = [
    list_tasks,
    get_task,
    search_tasks,
    propose_task,
    propose_task_update,
    propose_task_delete,
    create_task,
    update_task,
    delete_task,
]
