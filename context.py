from typing import Optional

from langchain_core.runnables import RunnableConfig
from pydantic import ValidationError

from models import AgentContext


MISSING_CONTEXT_ERROR = (
    "Error: Agent context not configured. Please ensure tenantId and userId "
    "are passed in the request config."
)


def context_from_config(config: Optional[RunnableConfig]) -> Optional[AgentContext]:
    """
    Read the tenant context carried in config["configurable"].

    Returns None when tenant_id or user_id is missing or empty.
    """
    configurable = (config or {}).get("configurable") or {}
    try:
        return AgentContext(
            tenant_id=configurable.get("tenant_id") or "",
            user_id=configurable.get("user_id") or "",
            person_id=configurable.get("person_id"),
        )
    except ValidationError:
        return None
