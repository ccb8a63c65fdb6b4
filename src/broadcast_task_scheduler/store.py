from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from broadcast_task_scheduler import models
from broadcast_task_scheduler.errors import DuplicateTaskError
from broadcast_task_scheduler.models import TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """Task persistence on top of a single SQLAlchemy session.

    Every mutating call commits on its own, so each write is durable (and
    visible to other sessions) before the method returns.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def select_oldest_pending(self) -> Optional[models.Task]:
        """Return the oldest PENDING task by creation time, or None."""
        return (
            self._session.query(models.Task)
            .filter(models.Task.status == TaskStatus.PENDING)
            .order_by(models.Task.created_at.asc())
            .limit(1)
            .one_or_none()
        )

    def set_status(self, task_id: str, status: TaskStatus) -> bool:
        """Write ``status`` for one task; False if the row no longer exists."""
        try:
            rows = (
                self._session.query(models.Task)
                .filter(models.Task.id == task_id)
                .update({"status": status}, synchronize_session=False)
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return bool(rows)

    def delete_by_id(self, task_id: str) -> bool:
        """Delete one task; False if it was already gone."""
        try:
            rows = (
                self._session.query(models.Task)
                .filter(models.Task.id == task_id)
                .delete(synchronize_session=False)
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return bool(rows)

    def add(self, task: models.Task) -> models.Task:
        """Insert a new task; raises DuplicateTaskError on a (title, from_time) clash."""
        self._session.add(task)
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            logger.info(
                "Rejected duplicate task title=%r from_time=%r", task.title, task.from_time
            )
            raise DuplicateTaskError(str(task.title), str(task.from_time)) from exc
        self._session.refresh(task)
        return task

    def get(self, task_id: str) -> Optional[models.Task]:
        return self._session.get(models.Task, task_id)

    def list_all(self) -> List[models.Task]:
        """All tasks, newest first."""
        return (
            self._session.query(models.Task)
            .order_by(models.Task.created_at.desc())
            .all()
        )
