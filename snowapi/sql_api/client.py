"""Statement client for the Snowflake SQL REST API.

Implements the statement lifecycle against ``/api/v2/statements``:
https://docs.snowflake.com/en/developer-guide/sql-api/index.html

Operations:
    submit: POST /api/v2/statements
    poll: GET /api/v2/statements/{handle}
    wait_until_complete: poll until the statement leaves the running state
    cancel: POST /api/v2/statements/{handle}/cancel
    query: submit, wait if needed, and return the rows
"""

from __future__ import annotations

import dataclasses
import json
import logging
import time
import uuid
from typing import Any, Callable
from urllib.parse import quote, urlencode

from .. import __version__
from ..auth import TokenIssuer
from ..config import ClientConfig
from ..errors import (
    ResponseDecodeError,
    RetriesExhaustedError,
    ServiceError,
    UnexpectedStatusError,
)
from .models import (
    ASYNC_EXECUTION_IN_PROGRESS,
    HTTP_ACCEPTED,
    HTTP_OK,
    HTTP_UNPROCESSABLE_ENTITY,
    ExecutionResult,
    StatementRequest,
    StatementStatus,
)
from .transport import RequestsTransport, Transport, TransportResponse

logger = logging.getLogger(__name__)

USER_AGENT = f"snowapi-python/{__version__}"


class Client:
    """Drives statements through submit, poll, wait and cancel.

    Holds no per-statement state: handles are plain strings owned by the
    caller, and a fresh JWT is issued for every request. One instance may
    serve several statements from independent callers as long as the
    transport allows concurrent use.

    Args:
        config: Connection settings
        transport: HTTP transport; defaults to a RequestsTransport using
            ``config.http_timeout``
        token_issuer: JWT issuer; defaults to one using the system clock
        sleep: Function used to wait between polls
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
        token_issuer: TokenIssuer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._transport = transport or RequestsTransport(timeout=config.http_timeout)
        self._token_issuer = token_issuer or TokenIssuer()
        self._sleep = sleep
        self._statements_url = f"{config.base_url}/statements"

    @property
    def config(self) -> ClientConfig:
        return self._config

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._transport.close()

    # =========================================================================
    # Statement lifecycle
    # =========================================================================

    def submit(self, request: StatementRequest, async_: bool = False) -> ExecutionResult:
        """Submit a statement for execution.

        POST /api/v2/statements?async=..&nullable=true[&requestId=..&retry=true]

        Returns:
            A RUNNING result carrying the statement handle when the service
            accepted the statement for asynchronous processing, otherwise a
            COMPLETED result with rows

        Raises:
            ServiceError: The service rejected the statement
            UnexpectedStatusError: Error response without a decodable body
            TransportError: The request could not be sent
            CredentialError: No token could be issued
        """
        request = self._with_context(request)
        url = f"{self._statements_url}?{urlencode(request.query_params(async_))}"
        body = json.dumps(request.to_payload()).encode("utf-8")

        resp = self._send("POST", url, body)
        payload = self._decode(resp)

        if payload is not None and (
            resp.status_code == HTTP_ACCEPTED
            or payload.get("code") == ASYNC_EXECUTION_IN_PROGRESS
        ):
            result = ExecutionResult.from_response(resp.status_code, payload)
            logger.info("Statement %s running asynchronously", result.statement_handle)
            return result

        if resp.status_code != HTTP_OK:
            raise self._error_from_response(resp, payload)

        if payload is None:
            raise ResponseDecodeError(
                f"failed to decode response: {resp.text[:200]!r}"
            )
        return ExecutionResult.from_response(resp.status_code, payload)

    def poll(self, handle: str, partition: int = 0) -> tuple[ExecutionResult, int]:
        """Fetch the current status of a statement, once.

        GET /api/v2/statements/{handle}[?partition=N]

        Args:
            handle: Statement handle
            partition: Result partition to fetch; 0 is the first partition

        Returns:
            The parsed response and the raw HTTP status code. Error bodies
            are parsed too; an undecodable body is kept as the message.

        Raises:
            TransportError: The request could not be sent
            CredentialError: No token could be issued
        """
        if partition < 0:
            raise ValueError(f"partition must be >= 0, got {partition}")

        url = f"{self._statements_url}/{quote(handle, safe='')}"
        if partition:
            url = f"{url}?{urlencode({'partition': partition})}"

        resp = self._send("GET", url)
        payload = self._decode(resp)
        if payload is None:
            if resp.status_code == HTTP_OK:
                raise ResponseDecodeError(
                    f"failed to decode response: {resp.text[:200]!r}"
                )
            payload = {"message": resp.text}

        result = ExecutionResult.from_response(resp.status_code, payload)
        logger.debug("Poll %s -> %s (%s)", handle, resp.status_code, result.status.value)
        return result, resp.status_code

    def wait_until_complete(
        self, handle: str, poll_interval: float, max_attempts: int
    ) -> ExecutionResult:
        """Poll a statement until it completes, fails or the budget runs out.

        Sleeps ``poll_interval`` seconds between a running probe and the next
        one, so blocking is bounded by ``max_attempts * poll_interval`` plus
        request latency. Only "still running" is retried.

        Raises:
            ServiceError: The statement failed or was cancelled
            UnexpectedStatusError: Any other status, e.g. an unknown handle
            RetriesExhaustedError: Still running after ``max_attempts`` polls
            TransportError: A poll could not be sent
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            result, status = self.poll(handle)
            logger.debug("Wait %s attempt %d/%d: %s", handle, attempt, max_attempts, status)

            if result.is_running:
                if attempt < max_attempts:
                    self._sleep(poll_interval)
                continue

            if status == HTTP_OK:
                return result

            if status == HTTP_UNPROCESSABLE_ENTITY:
                raise ServiceError(
                    code=result.code,
                    message=result.message or "statement execution failed",
                    sql_state=result.sql_state,
                    status_code=status,
                    statement_handle=result.statement_handle or handle,
                )

            raise UnexpectedStatusError(status=status, message=result.message or "")

        logger.warning("Statement %s still running after %d polls", handle, max_attempts)
        raise RetriesExhaustedError(handle=handle, attempts=max_attempts)

    def cancel(self, handle: str) -> ExecutionResult:
        """Request cancellation of a statement.

        POST /api/v2/statements/{handle}/cancel

        Does not wait for the statement to stop; poll afterwards when
        confirmation is needed.

        Raises:
            ServiceError: The service refused the cancellation
            UnexpectedStatusError: Error response without a decodable body
            TransportError: The request could not be sent
        """
        url = f"{self._statements_url}/{quote(handle, safe='')}/cancel"
        resp = self._send("POST", url, b"{}")
        payload = self._decode(resp)

        if resp.status_code != HTTP_OK:
            raise self._error_from_response(resp, payload)

        logger.info("Cancellation requested for statement %s", handle)
        result = ExecutionResult.from_response(resp.status_code, payload or {})
        return dataclasses.replace(
            result,
            status=StatementStatus.CANCELLED,
            statement_handle=result.statement_handle or handle,
        )

    def query(
        self,
        statement: str,
        poll_interval: float = 1.0,
        max_attempts: int = 60,
    ) -> list[list[Any]]:
        """Run a statement and return its rows.

        The statement is submitted with a fresh request id so the service may
        safely retry it. If it is still running when the synchronous call
        returns, this waits for it with ``wait_until_complete``.
        """
        request = StatementRequest(statement=statement, request_id=str(uuid.uuid4()))
        result = self.submit(request)
        if result.is_running:
            if not result.statement_handle:
                raise UnexpectedStatusError(
                    status=result.status_code,
                    message="running statement response has no statementHandle",
                )
            result = self.wait_until_complete(
                result.statement_handle, poll_interval, max_attempts
            )
        return result.data

    # =========================================================================
    # Helpers
    # =========================================================================

    def _with_context(self, request: StatementRequest) -> StatementRequest:
        """Fill unset context fields from the config."""
        defaults = {
            key: getattr(self._config, key)
            for key in ("database", "schema", "warehouse", "role")
            if getattr(request, key) is None and getattr(self._config, key) is not None
        }
        return dataclasses.replace(request, **defaults) if defaults else request

    def _headers(self) -> dict[str, str]:
        cfg = self._config
        token = self._token_issuer.issue(
            cfg.account,
            cfg.user,
            cfg.private_key,
            cfg.public_key,
            cfg.token_ttl,
            passphrase=cfg.private_key_passphrase,
        )
        return {
            "Authorization": f"Bearer {token}",
            "X-Snowflake-Authorization-Token-Type": "KEYPAIR_JWT",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _send(self, method: str, url: str, body: bytes | None = None) -> TransportResponse:
        return self._transport.send(method, url, self._headers(), body)

    @staticmethod
    def _decode(resp: TransportResponse) -> dict[str, Any] | None:
        """Decode a JSON object body, or return None."""
        if not resp.body:
            return None
        try:
            payload = resp.json()
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None

    @staticmethod
    def _error_from_response(
        resp: TransportResponse, payload: dict[str, Any] | None
    ) -> Exception:
        """Build the error for a non-success response."""
        if payload is None or ("code" not in payload and "message" not in payload):
            return UnexpectedStatusError(status=resp.status_code, message=resp.text)
        return ServiceError(
            code=payload.get("code"),
            message=payload.get("message") or "",
            sql_state=payload.get("sqlState"),
            status_code=resp.status_code,
            statement_handle=payload.get("statementHandle"),
        )
