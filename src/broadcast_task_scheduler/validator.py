"""Layered validation of the remote endpoint's response.

The response is a document inside a document::

    HTTP 200
    {"statusCode": 200, "body": "{\\"message\\": \\"success\\"}"}

Each stage takes the previous stage's value and returns a ``StageResult``
that carries either the next value or the error that ends validation, so a
failure is always attributed to the stage that found it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Final, List, Optional

from pydantic import ValidationError

from broadcast_task_scheduler.errors import (
    ApplicationError,
    DispatchError,
    SchemaError,
    TransportError,
)
from broadcast_task_scheduler.invoker import InvocationResponse
from broadcast_task_scheduler.schemas import InvocationResult, InvocationResultBody

SUCCESS_STATUS: Final[int] = 200
SUCCESS_MESSAGE: Final[str] = "success"


@dataclass(frozen=True)
class StageResult:
    """Either a value to pass on, or the error that stopped validation."""

    value: Any = None
    error: Optional[DispatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _ok(value: Any) -> StageResult:
    return StageResult(value=value)


def _fail(error: DispatchError) -> StageResult:
    return StageResult(error=error)


def _check_transport_status(response: InvocationResponse) -> StageResult:
    if response.status_code != SUCCESS_STATUS:
        return _fail(TransportError(response.status_code, f"status code is {response.status_code}"))
    return _ok(response.body)


def _decode_result(body: str) -> StageResult:
    if not body:
        return _fail(SchemaError("response payload is empty"))
    try:
        return _ok(InvocationResult.model_validate_json(body))
    except ValidationError as exc:
        return _fail(SchemaError(f"response payload is invalid for schema, {exc.errors(include_url=False)}"))


def _check_application_status(result: InvocationResult) -> StageResult:
    if result.status_code != SUCCESS_STATUS:
        return _fail(
            ApplicationError(
                f"status code is {result.status_code} and body is {result.body}",
                body=result.body,
            )
        )
    return _ok(result.body)


def _decode_result_body(body: str) -> StageResult:
    try:
        return _ok(InvocationResultBody.model_validate_json(body))
    except ValidationError as exc:
        return _fail(SchemaError(f"payload body is invalid for schema, {exc.errors(include_url=False)}"))


def _check_message(result_body: InvocationResultBody) -> StageResult:
    if result_body.message != SUCCESS_MESSAGE:
        return _fail(
            ApplicationError(f"message is not success, {result_body.message!r}")
        )
    return _ok(result_body)


STAGES: Final[List[Callable[[Any], StageResult]]] = [
    _check_transport_status,
    _decode_result,
    _check_application_status,
    _decode_result_body,
    _check_message,
]


def check_response(response: InvocationResponse) -> StageResult:
    """Run every stage in order and return the first failure or the final value."""
    result = _ok(response)
    for stage in STAGES:
        result = stage(result.value)
        if not result.ok:
            return result
    return result


def validate_response(response: InvocationResponse) -> InvocationResultBody:
    """Like check_response, but raises the failing stage's error."""
    result = check_response(response)
    if result.error is not None:
        raise result.error
    return result.value
