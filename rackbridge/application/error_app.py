"""
Built-in error application object.

The default error application script runs ``ErrorApp`` inside its own
runtime. It renders the failure stored under ``rack.exception``:

- status: the exception's ``status`` attribute when it is an HTTP error
  status, 500 otherwise
- body: the status reason phrase as plain text
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

EXCEPTION_KEY = "rack.exception"

DEFAULT_ERROR_APP_SCRIPT = (
    "from rackbridge.application.error_app import ErrorApp\n"
    "run(ErrorApp())\n"
)


class ErrorApp:
    """Application object rendering ``env["rack.exception"]``."""

    def __init__(self, default_status: int = 500):
        self.default_status = default_status

    def __call__(self, env: Any) -> tuple[int, dict[str, str], list[bytes]]:
        exception = env.get(EXCEPTION_KEY)
        status = self._status_for(exception)
        try:
            phrase = HTTPStatus(status).phrase
        except ValueError:
            phrase = "Error"
        body = f"{status} {phrase}\n".encode()
        headers = {
            "Content-Type": "text/plain; charset=utf-8",
            "Content-Length": str(len(body)),
        }
        return status, headers, [body]

    def _status_for(self, exception: Any) -> int:
        status = getattr(exception, "status", None)
        if isinstance(status, int) and 400 <= status < 600:
            return status
        return self.default_status
