from __future__ import annotations

from fastapi import APIRouter, Depends, status

from broadcast_task_scheduler import dispatcher, scheduler, schemas
from broadcast_task_scheduler.api.deps import require_basic_auth

router = APIRouter(tags=["dispatch"], dependencies=[Depends(require_basic_auth)])


@router.post("/dispatch", response_model=schemas.Message, status_code=status.HTTP_202_ACCEPTED)
def dispatch_now() -> schemas.Message:
    """
    Queue one on-demand dispatch cycle in the background scheduler.
    """
    scheduler.run_now(dispatcher.run_dispatch_cycle)
    return schemas.Message(message="scheduled")
