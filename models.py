from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Literal


TaskStatus = Literal["backlog", "todo", "in-progress", "done", "canceled"]
TaskLabel = Literal["bug", "feature", "documentation"]
TaskPriority = Literal["low", "medium", "high"]


class Task(BaseModel):
    """
    A task as stored in Convex.

    Field aliases keep the Convex wire names, so dumping with by_alias=True
    yields the shape the UI layer expects.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="The Convex document ID of the task.")
    creation_time: Optional[float] = Field(None, alias="_creationTime")
    tenant_id: str = Field(..., alias="tenantId", description="The tenant owning the task.")
    title: str = Field(..., description="Short title of the task.")
    description: Optional[str] = Field(None, description="What needs to be done.")
    status: TaskStatus = Field("backlog", description="The current status of the task.")
    label: TaskLabel = Field("feature", description="The category of the task.")
    priority: TaskPriority = Field("medium", description="The priority of the task.")
    created_by: Optional[str] = Field(None, alias="createdBy")
    created_at: Optional[float] = Field(None, alias="createdAt")
    updated_at: Optional[float] = Field(None, alias="updatedAt")

    def to_props(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AgentContext(BaseModel):
    """
    Tenant-scoped identity for one conversation turn.
    """
    tenant_id: str = Field(..., min_length=1, description="The tenant ID for multi-tenant isolation.")
    user_id: str = Field(..., min_length=1, description="The user ID making the request.")
    person_id: Optional[str] = Field(None, description="The person ID for people features.")

    def as_configurable(self) -> Dict[str, str]:
        configurable = {"tenant_id": self.tenant_id, "user_id": self.user_id}
        if self.person_id:
            configurable["person_id"] = self.person_id
        return configurable


# UI components rendered by the presentation layer

class TaskTableProps(BaseModel):
    tasks: List[Dict[str, Any]]


class TaskCardProps(BaseModel):
    task: Dict[str, Any]


class TaskEditFormProps(BaseModel):
    task: Dict[str, Any]
    mode: Literal["create", "edit"]


class TaskConfirmDeleteProps(BaseModel):
    task: Dict[str, Any]


UI_COMPONENTS = {
    "TaskTable": TaskTableProps,
    "TaskCard": TaskCardProps,
    "TaskEditForm": TaskEditFormProps,
    "TaskConfirmDelete": TaskConfirmDeleteProps,
}
DISPLAY_COMPONENTS = ("TaskTable", "TaskCard")
INTERACTIVE_COMPONENTS = ("TaskEditForm", "TaskConfirmDelete")


class UIPayload(BaseModel):
    name: Literal["TaskTable", "TaskCard", "TaskEditForm", "TaskConfirmDelete"]
    props: Dict[str, Any]


def validate_ui(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Return the payload as a plain dict if it is a well-formed UI payload,
    otherwise None.
    """
    if not isinstance(payload, dict):
        return None
    try:
        ui = UIPayload(**payload)
        UI_COMPONENTS[ui.name](**ui.props)
    except (TypeError, ValueError):
        return None
    return ui.model_dump()


# Structured outputs for auxiliary generation

class Suggestions(BaseModel):
    suggestions: List[str] = Field(
        ...,
        min_length=2,
        max_length=4,
        description="2-4 brief follow-up suggestions the user might ask next",
    )


class ConversationTitle(BaseModel):
    title: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="A short, descriptive title (3-6 words) for the conversation",
    )
