from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

from broadcast_task_scheduler.models import TaskStatus

# yyyymmddHHMM, e.g. "202401020300"
DateTimeDigits = Annotated[str, Field(pattern=r"^[0-9]{12}$")]
Minutes = Annotated[str, Field(pattern=r"^[0-9]+$")]


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCreate(CamelModel):
    """Payload to create a task."""

    station_id: str
    title: str
    personality: str
    from_time: DateTimeDigits
    to_time: DateTimeDigits
    duration: Minutes


class Task(CamelModel):
    """Response model for a task (as stored in the database)."""

    id: str
    station_id: str
    title: str
    personality: str
    from_time: str
    to_time: str
    duration: str
    status: TaskStatus
    created_at: datetime

    # Enable ORM serialization for SQLAlchemy models
    model_config = ConfigDict(from_attributes=True)


class Message(BaseModel):
    """Plain ``{"message": ...}`` response body."""

    message: str


class TaskCreated(Message):
    id: str


# ---- Remote compute endpoint: request ----


class DateTime(BaseModel):
    """Date-time split into fields; not checked against the calendar."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    day: int
    hour: int
    minute: int


class InvocationPayload(CamelModel):
    """Request body sent to the remote compute endpoint."""

    model_config = ConfigDict(frozen=True)

    id: str
    station_id: str
    title: str
    personality: str
    from_time: DateTime
    to_time: DateTime


# ---- Remote compute endpoint: response ----


class InvocationResult(BaseModel):
    """Outer result document: ``{statusCode, body}``."""

    model_config = ConfigDict(extra="forbid")

    status_code: StrictInt = Field(alias="statusCode")
    body: StrictStr


class InvocationResultBody(BaseModel):
    """Inner body document: ``{message}``."""

    model_config = ConfigDict(extra="forbid")

    message: StrictStr
