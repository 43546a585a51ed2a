import sqlite3

from langgraph.checkpoint.sqlite import SqliteSaver


def create_checkpointer(path: str = "checkpoint.db") -> SqliteSaver:
    """Thread history store. Use ":memory:" for a throwaway database."""
    conn = sqlite3.connect(path, check_same_thread=False)
    return SqliteSaver(conn)
