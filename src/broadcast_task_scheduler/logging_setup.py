from __future__ import annotations

import logging
import sys
import threading
from typing import Optional

import requests

_NOISY_LOGGERS = ("apscheduler", "urllib3")

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOGFLARE_URL = "https://api.logflare.app/logs"
DEFAULT_SHIP_TIMEOUT = 5.0


class LogflareHandler(logging.Handler):
    """
    Ship each record to Logflare as ``{source, message, metadata}``.

    Records from the HTTP stack itself are skipped, and a record emitted while
    another one is being shipped on the same thread is dropped, so shipping
    never feeds back into itself. Failures go to ``handleError`` (stderr).
    """

    def __init__(
        self,
        api_key: str,
        source: str,
        *,
        url: str = LOGFLARE_URL,
        timeout: float = DEFAULT_SHIP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__()
        self.api_key = api_key
        self.source = source
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._local = threading.local()

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_NOISY_LOGGERS) or getattr(self._local, "busy", False):
            return
        self._local.busy = True
        try:
            self._session.post(
                self.url,
                json={
                    "source": self.source,
                    "message": record.getMessage(),
                    "metadata": {
                        "level": record.levelname,
                        "logger": record.name,
                    },
                },
                headers={"x-api-key": self.api_key},
                timeout=self.timeout,
            ).raise_for_status()
        except requests.RequestException:
            self.handleError(record)
        finally:
            self._local.busy = False

    def close(self) -> None:
        self._session.close()
        super().close()


def setup_logging(
    level: str | int = logging.INFO,
    *,
    logflare_api_key: Optional[str] = None,
    logflare_source: Optional[str] = None,
) -> None:
    """
    Configure root logging with a single stderr handler.

    Pre-existing root handlers are removed to avoid duplicate lines when the
    app is started more than once in the same process (e.g. tests).
    Chatty third-party loggers are kept at WARNING.
    With both Logflare settings present, records are also shipped there.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    root.addHandler(handler)

    if logflare_api_key and logflare_source:
        root.addHandler(LogflareHandler(logflare_api_key, logflare_source))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
