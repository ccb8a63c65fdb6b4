"""
Error types raised by the dispatch core and the task store.

Every dispatch failure inherits from DispatchError so the trigger runtime can
catch one type; the subclasses keep the failing stage explicit.
"""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base exception for all dispatch-cycle failures."""


class FormatError(DispatchError):
    """Raised when a stored date-time string is not 12 decimal digits."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"invalid date time {value!r}: {reason}")


class SchemaError(DispatchError):
    """Raised when the remote response does not match the expected JSON shape."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"invoke error: {reason}")


class TransportError(DispatchError):
    """Raised on a non-200 invocation status or when the endpoint is unreachable."""

    def __init__(self, status_code: Optional[int], reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"fail to invoke remote endpoint: {reason}")


class ApplicationError(DispatchError):
    """Raised when the endpoint answered in shape but reported a failure."""

    def __init__(self, reason: str, body: Optional[str] = None):
        self.reason = reason
        self.body = body
        super().__init__(f"remote application error: {reason}")


class DuplicateTaskError(Exception):
    """Raised when a task with the same title and start time already exists."""

    def __init__(self, title: str, from_time: str):
        self.title = title
        self.from_time = from_time
        super().__init__(f"task already created: title={title!r}, from_time={from_time!r}")
