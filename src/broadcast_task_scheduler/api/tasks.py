from __future__ import annotations

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from broadcast_task_scheduler import models, schemas
from broadcast_task_scheduler.api.deps import get_store, require_basic_auth
from broadcast_task_scheduler.errors import DuplicateTaskError
from broadcast_task_scheduler.models import TaskStatus
from broadcast_task_scheduler.store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_basic_auth)]
)


@router.get("", response_model=List[schemas.Task], status_code=status.HTTP_200_OK)
def list_tasks(store: TaskStore = Depends(get_store)) -> List[models.Task]:
    """
    List all tasks, newest first.
    """
    return store.list_all()


@router.post("", response_model=schemas.TaskCreated, status_code=status.HTTP_201_CREATED)
def create_task(
    task_in: schemas.TaskCreate, store: TaskStore = Depends(get_store)
) -> schemas.TaskCreated:
    """
    Create a pending task.

    A second task with the same `title` and `fromTime` is rejected.
    """
    task = models.Task(
        id=str(uuid.uuid4()),
        station_id=task_in.station_id,
        title=task_in.title,
        personality=task_in.personality,
        from_time=task_in.from_time,
        to_time=task_in.to_time,
        duration=task_in.duration,
        status=TaskStatus.PENDING,
    )
    try:
        store.add(task)
    except DuplicateTaskError as exc:
        raise HTTPException(status_code=400, detail="already created") from exc

    logger.info("Created task %s (title=%r, from_time=%s)", task.id, task.title, task.from_time)
    return schemas.TaskCreated(message="success", id=str(task.id))


@router.get("/{task_id}", response_model=schemas.Task, status_code=status.HTTP_200_OK)
def get_task(task_id: str, store: TaskStore = Depends(get_store)) -> models.Task:
    """
    Get a single task by id.
    """
    task = store.get(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.delete("/{task_id}", response_model=schemas.Message, status_code=status.HTTP_200_OK)
def delete_task(task_id: str, store: TaskStore = Depends(get_store)) -> schemas.Message:
    """
    Delete a task by id. Deleting an unknown id also succeeds.
    """
    if store.delete_by_id(task_id):
        logger.info("Deleted task %s", task_id)
    return schemas.Message(message="success")


@router.post("/{task_id}/reset", response_model=schemas.Task, status_code=status.HTTP_200_OK)
def reset_task(task_id: str, store: TaskStore = Depends(get_store)) -> models.Task:
    """
    Put a task left `doing` by a failed dispatch back to `pending`.

    Rules:
    - Only `doing` tasks can be reset.
    - Nothing resets tasks automatically; this is the operator's tool.
    """
    task = store.get(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    if task.status != TaskStatus.DOING:
        raise HTTPException(status_code=400, detail="Only a doing task can be reset")

    store.set_status(task_id, TaskStatus.PENDING)
    logger.info("Reset task %s to pending", task_id)
    return task
