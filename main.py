import argparse
import os
import sys
import uuid
from typing import Any, Dict, List, Optional

from app import build_graph, run_turn
from config import ConfigError, configure_logging, load_settings
from models import AgentContext


def describe_ui(ui: Optional[Dict[str, Any]]) -> Optional[str]:
    """One-line summary of a UI payload for terminals that cannot render it."""
    if not ui:
        return None
    props = ui["props"]
    if ui["name"] == "TaskTable":
        return f"[TaskTable: {len(props['tasks'])} task(s)]"
    task = props.get("task") or {}
    title = task.get("title", "untitled")
    if ui["name"] == "TaskEditForm":
        return f"[TaskEditForm ({props['mode']}): '{title}' - submit to save]"
    if ui["name"] == "TaskConfirmDelete":
        return f"[TaskConfirmDelete: '{title}' - confirm to delete]"
    return f"[{ui['name']}: '{title}' ({task.get('status', '?')}, {task.get('priority', '?')})]"


def print_response(response: Dict[str, Any]) -> None:
    print(f"Assistant: {response['text']}")
    summary = describe_ui(response.get("__ui__"))
    if summary:
        print(summary)
    suggestions: List[str] = response.get("suggestions") or []
    if suggestions:
        print("Try: " + " | ".join(suggestions))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the TaskMate assistant.")
    parser.add_argument("--tenant", default=os.environ.get("TENANT_ID"), help="Tenant ID (env TENANT_ID)")
    parser.add_argument("--user", default=os.environ.get("USER_ID"), help="User ID (env USER_ID)")
    parser.add_argument("--person", default=os.environ.get("PERSON_ID"), help="Person ID (env PERSON_ID)")
    parser.add_argument("--thread", default=None, help="Resume an existing thread")
    return parser.parse_args(argv)


def conversation_loop(graph, thread_id: str, context: Optional[AgentContext]) -> None:
    print("Type 'exit' or 'quit' to leave.")
    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            break
        if user_input.lower() in ("exit", "quit", ":q"):
            print("Bye.")
            break
        if not user_input:
            continue
        print_response(run_turn(graph, user_input, thread_id, context))
        print()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level)

    context = None
    if args.tenant and args.user:
        context = AgentContext(tenant_id=args.tenant, user_id=args.user, person_id=args.person)
    else:
        print("Warning: no tenant/user given; task requests will fail.", file=sys.stderr)

    thread_id = args.thread or uuid.uuid4().hex
    print(f"Thread: {thread_id}")
    conversation_loop(build_graph(settings), thread_id, context)
    return 0


if __name__ == "__main__":
    sys.exit(main())
