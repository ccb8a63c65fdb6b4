from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from broadcast_task_scheduler import db
from broadcast_task_scheduler.config import get_settings
from broadcast_task_scheduler.convert import convert
from broadcast_task_scheduler.errors import DispatchError
from broadcast_task_scheduler.invoker import RemoteInvoker
from broadcast_task_scheduler.models import TaskStatus
from broadcast_task_scheduler.store import TaskStore
from broadcast_task_scheduler.validator import validate_response

logger = logging.getLogger(__name__)


class Dispatcher:
    """Hands pending tasks to the remote compute endpoint, one per cycle."""

    def __init__(self, store: TaskStore, invoker: RemoteInvoker) -> None:
        self.store = store
        self.invoker = invoker

    def run_dispatch_cycle(self) -> Optional[str]:
        """Dispatch the oldest pending task; return its id, or None if idle.

        The task is marked DOING and committed before the endpoint is called,
        so a later cycle's pending query skips it. Two cycles that select
        before that commit can still both invoke the same task.

        On any failure the task is left DOING and the error propagates; it
        stays there until an operator resets it.
        """
        task = self.store.select_oldest_pending()
        if task is None:
            logger.debug("No pending task")
            return None

        task_id = str(task.id)
        if not self.store.set_status(task_id, TaskStatus.DOING):
            # Deleted between select and claim
            logger.warning("Task %s vanished before it could be claimed", task_id)
            return None
        logger.info("Claimed task %s (title=%r, from_time=%s)", task_id, task.title, task.from_time)

        try:
            payload = convert(task)
            response = self.invoker.invoke(payload)
            validate_response(response)
        except DispatchError as exc:
            # Traceback is reported by the trigger runtime
            logger.warning("Dispatch of task %s failed; left as doing: %s", task_id, exc)
            raise

        if not self.store.delete_by_id(task_id):
            logger.warning("Task %s was already deleted after a successful invocation", task_id)
        else:
            logger.info("Task %s completed and removed", task_id)
        return task_id


def run_dispatch_cycle() -> Optional[str]:
    """Trigger entry point: one cycle with a fresh session and invoker.

    Errors are not caught here; the trigger runtime reports them.
    """
    session: Session = db.SessionLocal()
    invoker = RemoteInvoker.from_settings(get_settings())
    try:
        return Dispatcher(TaskStore(session), invoker).run_dispatch_cycle()
    finally:
        invoker.close()
        session.close()
