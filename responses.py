"""Turn transcripts into a single response for the caller.

A turn's messages interleave supervisor handoffs, sub-agent tool calls and
their results. This module pairs tool calls with results, pulls the UI
payloads out of tool envelopes, merges them and picks the final reply text.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from pydantic import BaseModel, Field

from models import INTERACTIVE_COMPONENTS, validate_ui

SUPERVISOR_NAME = "supervisor"
HANDOFF_PREFIX = "transfer_"

_CREATED_ID = re.compile(r"^- ID: (\S+)", re.MULTILINE)


class ToolTrace(BaseModel):
    """One tool call made by a sub-agent, with its result once available."""
    call_id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    agent: Optional[str] = None
    text: str = ""
    ui: Optional[Dict[str, Any]] = None
    completed: bool = False

    @property
    def ok(self) -> bool:
        return self.completed and not self.text.startswith(("Error", "Task not found"))


def content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def message_text(message: BaseMessage) -> str:
    return content_text(message.content)


def parse_tool_output(content: Any) -> Tuple[str, Optional[Dict[str, Any]]]:
    """
    Split a tool result into its text and UI payload.

    JSON envelopes ({"text": ..., "__ui__": ...}) are unpacked; a malformed
    __ui__ is dropped. Anything else is returned as plain text.
    """
    content = content_text(content)
    try:
        data = json.loads(content)
    except ValueError:
        return content, None
    if not isinstance(data, dict) or "text" not in data:
        return content, None
    return str(data["text"]), validate_ui(data.get("__ui__"))


def is_handoff(tool_name: Optional[str]) -> bool:
    return bool(tool_name) and tool_name.startswith(HANDOFF_PREFIX)


def current_turn(messages: Sequence[BaseMessage]) -> List[BaseMessage]:
    """Messages after the last human message."""
    messages = list(messages)
    for index in range(len(messages) - 1, -1, -1):
        if isinstance(messages[index], HumanMessage):
            return messages[index + 1:]
    return messages


def extract_tool_traces(messages: Sequence[BaseMessage]) -> List[ToolTrace]:
    """
    Pair tool calls with their results by tool_call_id, in call order.

    Handoff tools are skipped. A result whose call is not in the transcript is
    still recorded, under the tool message's name.
    """
    traces: Dict[str, ToolTrace] = {}
    for message in messages:
        if isinstance(message, AIMessage):
            for call in message.tool_calls:
                if is_handoff(call["name"]):
                    continue
                call_id = call.get("id") or f"call_{len(traces)}"
                traces[call_id] = ToolTrace(
                    call_id=call_id,
                    name=call["name"],
                    args=call.get("args") or {},
                    agent=message.name,
                )
        elif isinstance(message, ToolMessage):
            if is_handoff(message.name):
                continue
            trace = traces.get(message.tool_call_id)
            if trace is None:
                trace = ToolTrace(call_id=message.tool_call_id, name=message.name or "unknown")
                traces[message.tool_call_id] = trace
            trace.text, trace.ui = parse_tool_output(message.content)
            trace.completed = True
    return list(traces.values())


def merge_ui(payloads: Sequence[Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """
    Reduce a turn's UI payloads to the one the caller should render.

    The last interactive payload (edit form, delete confirmation) wins, since it
    waits on the user. Otherwise display payloads collapse into one TaskTable
    of unique tasks.
    """
    valid = [ui for ui in (validate_ui(p) for p in payloads) if ui]
    if not valid:
        return None
    interactive = [ui for ui in valid if ui["name"] in INTERACTIVE_COMPONENTS]
    if interactive:
        return interactive[-1]
    if len(valid) == 1:
        return valid[0]

    # dict keeps first-seen order while later occurrences overwrite the value
    merged: Dict[str, Dict[str, Any]] = {}
    for ui in valid:
        props = ui["props"]
        tasks = props["tasks"] if ui["name"] == "TaskTable" else [props["task"]]
        for task in tasks:
            key = task.get("_id") or f"#{len(merged)}"
            merged[key] = task
    return {"name": "TaskTable", "props": {"tasks": list(merged.values())}}


def collect_task_ids(traces: Sequence[ToolTrace]) -> List[str]:
    """Task IDs touched in a turn, in first-seen order."""
    ids: List[str] = []

    def add(value: Any) -> None:
        if isinstance(value, str) and value and value not in ids:
            ids.append(value)

    for trace in traces:
        if not trace.ok:
            continue
        add(trace.args.get("id"))
        if trace.ui:
            props = trace.ui["props"]
            if isinstance(props.get("task"), dict):
                add(props["task"].get("_id"))
            for task in props.get("tasks", []):
                add(task.get("_id"))
        for created_id in _CREATED_ID.findall(trace.text):
            add(created_id)
    return ids


def routed_agent(messages: Sequence[BaseMessage]) -> Optional[str]:
    """The sub-agent the supervisor last handed off to, if any."""
    for message in reversed(messages):
        if isinstance(message, AIMessage):
            for call in reversed(message.tool_calls):
                name = call["name"]
                if name.startswith(HANDOFF_PREFIX + "to_"):
                    return name[len(HANDOFF_PREFIX + "to_"):]
    return None


def final_answer(messages: Sequence[BaseMessage]) -> Tuple[str, Optional[str]]:
    """
    Pick the reply text and its author.

    Prefers the last sub-agent answer; falls back to the supervisor's.
    """
    fallback: Tuple[str, Optional[str]] = ("", None)
    for message in reversed(messages):
        if not isinstance(message, AIMessage) or message.tool_calls:
            continue
        text = message_text(message).strip()
        if not text:
            continue
        if message.name and message.name != SUPERVISOR_NAME:
            return text, message.name
        if not fallback[0]:
            fallback = (text, message.name)
    return fallback


def conversation_only(messages: Sequence[BaseMessage]) -> List[BaseMessage]:
    """Human messages and final AI replies, without tool traffic."""
    kept: List[BaseMessage] = []
    for message in messages:
        if isinstance(message, HumanMessage):
            kept.append(message)
        elif isinstance(message, AIMessage) and not message.tool_calls and message_text(message).strip():
            kept.append(message)
    return kept


def build_response(messages: Sequence[BaseMessage]) -> Dict[str, Any]:
    """
    Aggregate the latest turn of a thread into {text, __ui__?, task_ids, agent}.
    """
    turn = current_turn(messages)
    traces = extract_tool_traces(turn)
    text, author = final_answer(turn)
    agent = author if author and author != SUPERVISOR_NAME else routed_agent(turn)

    response: Dict[str, Any] = {
        "text": text,
        "task_ids": collect_task_ids(traces),
        "agent": agent,
    }
    ui = merge_ui([trace.ui for trace in traces if trace.ui])
    if ui:
        response["__ui__"] = ui
    return response
