"""HTTP transport for the SQL API client.

The client only needs one capability from the network: send a request and
receive the status and body. Tests substitute their own Transport.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import requests

from ..errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Status code and raw body of an HTTP response."""

    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError when it is not JSON."""
        return json.loads(self.body)


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse: ...

    def close(self) -> None: ...


class RequestsTransport:
    """Transport backed by a pooled ``requests.Session``.

    Every call uses the same fixed timeout. Safe to share across threads
    as far as ``requests.Session`` is.
    """

    def __init__(
        self, timeout: float = 10.0, session: requests.Session | None = None
    ) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        logger.debug("%s %s", method, url)
        try:
            resp = self._session.request(
                method, url, headers=dict(headers), data=body, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"failed to send request: {e}") from e
        return TransportResponse(status_code=resp.status_code, body=resp.content)

    def close(self) -> None:
        self._session.close()
