from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, Final, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

DISPATCH_JOB_ID: Final[str] = "dispatch-cycle"


class _SchedulerHolder:  # pylint: disable=too-few-public-methods
    """Lightweight holder to avoid using module-level `global` statements."""

    instance: Optional[BackgroundScheduler] = None


_holder = _SchedulerHolder()


def start() -> None:
    """Start a singleton BackgroundScheduler (idempotent)."""
    if _holder.instance is None:
        _holder.instance = BackgroundScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None}
        )
        _holder.instance.start()


def shutdown() -> None:
    """Shutdown the scheduler if it is running (idempotent)."""
    if _holder.instance is not None:
        _holder.instance.shutdown(wait=False)
        _holder.instance = None


def schedule_dispatch(func: Callable[[], object], interval_seconds: int) -> None:
    """Run ``func`` every ``interval_seconds``; 0 or less disables the periodic job."""
    if interval_seconds <= 0:
        return
    start()
    assert _holder.instance is not None
    _holder.instance.add_job(
        func,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=DISPATCH_JOB_ID,
        replace_existing=True,
    )


def run_now(func: Callable[[], object]) -> str:
    """Queue a one-shot run of ``func`` as soon as possible; return the job id."""
    start()
    assert _holder.instance is not None
    job_id = f"dispatch-now-{uuid.uuid4()}"
    _holder.instance.add_job(
        func,
        trigger=DateTrigger(run_date=datetime.now() + timedelta(milliseconds=100)),
        id=job_id,
    )
    return job_id


def get_job_ids() -> list[str]:
    """Return the IDs of all currently scheduled jobs."""
    if _holder.instance is None:
        return []
    return [job.id for job in _holder.instance.get_jobs()]
