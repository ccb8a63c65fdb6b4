from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from requests import RequestException

from broadcast_task_scheduler.config import Settings
from broadcast_task_scheduler.errors import TransportError
from broadcast_task_scheduler.schemas import InvocationPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationResponse:
    """Raw outcome of one invocation: transport status plus result body."""

    status_code: int
    body: str


class RemoteInvoker:
    """POSTs invocation payloads to the remote compute endpoint.

    The HTTP status stands in for the invocation status and the response body
    is the function's result document. Timeouts come from the transport
    setting only; there is no retry.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteInvoker":
        return cls(
            settings.invoke_url,
            api_key=settings.invoke_api_key,
            timeout=settings.invoke_timeout,
        )

    def invoke(self, payload: InvocationPayload) -> InvocationResponse:
        headers: Dict[str, str] = {"content-type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key

        try:
            resp = self._session.post(
                self.url,
                data=payload.model_dump_json(by_alias=True),
                headers=headers,
                timeout=self.timeout,
            )
        except RequestException as exc:
            raise TransportError(None, f"{type(exc).__name__}: {exc}") from exc

        logger.info("Invoked %s for task %s: status=%s", self.url, payload.id, resp.status_code)
        return InvocationResponse(status_code=resp.status_code, body=resp.text)

    def close(self) -> None:
        self._session.close()
