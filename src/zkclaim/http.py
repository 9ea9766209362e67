"""Minimal JSON-over-HTTP helper (async-wrapped sync urllib).

Blocking calls run in the event loop's default executor so the loop keeps
servicing other work while a request is outstanding.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class TransportError(OSError):
    """The request never produced an HTTP response."""


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.body)


def _post_json_sync(url: str, payload: Any, timeout: float) -> HttpResponse:
    data = json.dumps(payload).encode("utf-8")
    req = Request(
        url,
        data=data,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
        method="POST",
    )
    try:
        with urlopen(req, timeout=timeout) as response:
            body = response.read().decode("utf-8", errors="replace")
            return HttpResponse(status=response.status, body=body)
    except HTTPError as e:
        body = e.read().decode("utf-8", errors="replace") if e.fp else ""
        return HttpResponse(status=e.code, body=body)
    except (URLError, OSError) as e:
        raise TransportError(f"Network error calling {url}: {e}") from e


async def post_json(url: str, payload: Any, *, timeout: float = DEFAULT_TIMEOUT) -> HttpResponse:
    """POST `payload` as JSON and return the status and raw body.

    Non-2xx responses are returned, not raised. Connection failures raise
    TransportError.
    """
    logger.debug("POST %s", url)
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(None, lambda: _post_json_sync(url, payload, timeout))
    logger.debug("POST %s -> %s (%d bytes)", url, response.status, len(response.body))
    return response
