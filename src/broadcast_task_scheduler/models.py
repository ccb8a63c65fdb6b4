from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, String, UniqueConstraint

from broadcast_task_scheduler.db import Base


class TaskStatus(str, enum.Enum):
    """Task lifecycle status; a completed task is deleted, not marked."""

    PENDING = "pending"
    DOING = "doing"


class Task(Base):  # pylint: disable=too-few-public-methods
    """Task row representing a scheduled broadcast recording."""

    __tablename__ = "tasks"
    __table_args__ = (
        # Duplicate-submission guard
        UniqueConstraint("title", "from_time", name="uq_tasks_title_from_time"),
    )

    id = Column(String, primary_key=True, index=True)
    station_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    personality = Column(String, nullable=False)
    from_time = Column(String(12), nullable=False)  # yyyymmddHHMM
    to_time = Column(String(12), nullable=False)  # yyyymmddHHMM
    duration = Column(String, nullable=False)  # minutes
    status = Column(
        Enum(
            TaskStatus,
            name="task_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    def __repr__(self) -> str:
        """Return a concise debug representation."""
        return (
            f"Task(id={self.id!r}, title={self.title!r}, "
            f"from_time={self.from_time!r}, status={self.status!r})"
        )
