import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_core.messages import ToolMessage
from pydantic import BaseModel, Field

from app import get_graph, is_new_thread, run_turn, turn_config
from config import configure_logging, load_settings
from llm import generate_suggestions, generate_title
from models import AgentContext
from responses import SUPERVISOR_NAME, build_response, is_handoff, parse_tool_output

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Raises ConfigError before the first request is served
    settings = load_settings()
    configure_logging(settings.log_level)
    get_graph()
    yield


app = FastAPI(title="TaskMate", lifespan=lifespan)


class ChatRequest(BaseModel):
    message: str = ""
    thread_id: Optional[str] = None
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None
    person_id: Optional[str] = None


class TitleRequest(BaseModel):
    message: str = Field(..., min_length=1)


def get_thread_id(request: Request) -> str:
    # Use a cookie-based thread id; generate if missing
    thread_id = request.cookies.get("thread_id")
    if not thread_id:
        thread_id = uuid.uuid4().hex
    return thread_id


def build_context(tenant_id: Optional[str], user_id: Optional[str], person_id: Optional[str] = None) -> Optional[AgentContext]:
    # Without both ids the task tools answer with a context error
    if not tenant_id or not user_id:
        return None
    return AgentContext(tenant_id=tenant_id, user_id=user_id, person_id=person_id or None)


@app.post("/chat")
def chat(body: ChatRequest, request: Request, graph=Depends(get_graph)):
    user_text = body.message.strip()
    if not user_text:
        return Response(status_code=204)

    thread_id = body.thread_id or get_thread_id(request)
    context = build_context(body.tenant_id, body.user_id, body.person_id)
    first_turn = is_new_thread(graph, thread_id)

    try:
        result = run_turn(graph, user_text, thread_id, context)
    except Exception as e:
        logger.exception("Chat turn failed for thread %s", thread_id)
        result = {"text": f"Error: {e}", "task_ids": [], "agent": None, "suggestions": []}
    result["thread_id"] = thread_id
    if first_turn:
        result["title"] = generate_title(user_text)

    response = JSONResponse(result)
    if request.cookies.get("thread_id") != thread_id:
        response.set_cookie("thread_id", thread_id, httponly=True, samesite="lax")
    return response


def _sse_event(event: str, data: str) -> str:
    """Format a Server-Sent Event string for StreamingResponse."""
    if data is None:
        data = ""
    # Replace CR to avoid breaking SSE framing
    data = data.replace("\r", "")
    payload_lines = [f"data: {line}" for line in data.split("\n")]
    payload = "\n".join(payload_lines)
    return f"event: {event}\n{payload}\n\n"


def _status_line(message: Any) -> Optional[str]:
    """Summarize a step for the status channel; None for user/assistant text."""
    role = (getattr(message, "type", "") or "").lower()
    name = getattr(message, "name", None) or ""
    if role in ("human", "user"):
        return None
    if role in ("ai", "assistant"):
        calls = [call["name"] for call in getattr(message, "tool_calls", []) or []]
        if calls and name != SUPERVISOR_NAME:
            return f"Step: {name or 'agent'} calling {', '.join(calls)}"
        return None
    if role == "tool" and name:
        if is_handoff(name):
            return f"Routing: {name}"
        return f"Tool: {name}"
    return role.capitalize() or None


@app.get("/stream")
def stream_events(request: Request, graph=Depends(get_graph)):
    thread_id = request.query_params.get("thread_id") or get_thread_id(request)
    q = (request.query_params.get("q") or "").strip()
    if not q:
        return Response(status_code=204)
    context = build_context(
        request.query_params.get("tenant_id"),
        request.query_params.get("user_id"),
        request.query_params.get("person_id"),
    )

    def event_generator():
        yield _sse_event("status", "Queued…")

        inputs = {"messages": [("user", q)]}
        messages = []
        seen = None
        try:
            for state in graph.stream(inputs, config=turn_config(thread_id, context), stream_mode="values"):
                messages = state.get("messages") or []
                # The first snapshot is the thread history plus the new user message
                if seen is None:
                    seen = len(messages)
                    continue
                for message in messages[seen:]:
                    if isinstance(message, ToolMessage):
                        _, ui = parse_tool_output(message.content)
                        if ui:
                            yield _sse_event("ui", json.dumps(ui, ensure_ascii=False))

                    status_line = _status_line(message)
                    if status_line:
                        yield _sse_event("status", status_line)
                seen = len(messages)
            final: Dict[str, Any] = build_response(messages)
            final["suggestions"] = generate_suggestions(messages)
        except Exception as e:
            logger.exception("Streaming run failed for thread %s", thread_id)
            final = {"text": f"Error: {e}", "task_ids": [], "agent": None, "suggestions": []}

        final["thread_id"] = thread_id
        yield _sse_event("final", json.dumps(final, ensure_ascii=False))

    response = StreamingResponse(event_generator(), media_type="text/event-stream")
    if request.cookies.get("thread_id") != thread_id:
        response.set_cookie("thread_id", thread_id, httponly=True, samesite="lax")
    return response


@app.post("/title")
def title(body: TitleRequest):
    return {"title": generate_title(body.message)}


@app.post("/reset")
def reset_chat():
    # Drop cookie so a new thread_id will be generated
    response = Response(status_code=200)
    response.delete_cookie("thread_id")
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=True)
