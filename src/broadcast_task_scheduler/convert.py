from __future__ import annotations

from typing import Final, List, Tuple

from broadcast_task_scheduler import models
from broadcast_task_scheduler.errors import FormatError
from broadcast_task_scheduler.schemas import DateTime, InvocationPayload

DATE_TIME_LENGTH: Final[int] = 12

# (field, start, end) over "yyyymmddHHMM"
_SEGMENTS: Final[List[Tuple[str, int, int]]] = [
    ("year", 0, 4),
    ("month", 4, 6),
    ("day", 6, 8),
    ("hour", 8, 10),
    ("minute", 10, 12),
]

_DIGITS: Final[frozenset] = frozenset("0123456789")


def parse_date_time(value: str) -> DateTime:
    """Split a ``yyyymmddHHMM`` string into its five integer fields.

    Only the shape is checked: month 13 or day 32 parse fine.
    """
    if len(value) != DATE_TIME_LENGTH:
        raise FormatError(value, f"length is not {DATE_TIME_LENGTH}")

    fields = {}
    for name, start, end in _SEGMENTS:
        segment = value[start:end]
        # ASCII digits only
        if not set(segment) <= _DIGITS:
            raise FormatError(value, f"{name} segment {segment!r} is not a decimal number")
        fields[name] = int(segment)
    return DateTime(**fields)


def convert(task: models.Task) -> InvocationPayload:
    """Map a stored task to the remote endpoint's request payload."""
    return InvocationPayload(
        id=task.id,
        station_id=task.station_id,
        title=task.title,
        personality=task.personality,
        from_time=parse_date_time(task.from_time),
        to_time=parse_date_time(task.to_time),
    )
