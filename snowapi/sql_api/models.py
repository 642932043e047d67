"""Request and response models for the SQL REST API.

These dataclasses mirror the JSON payloads of ``/api/v2/statements``:
https://docs.snowflake.com/en/developer-guide/sql-api/reference
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from .types import convert_row

# Response code for "asynchronous execution in progress"
ASYNC_EXECUTION_IN_PROGRESS = "333334"

HTTP_OK = 200
HTTP_ACCEPTED = 202
HTTP_UNPROCESSABLE_ENTITY = 422

# SQL state reported for statements cancelled by the user
SQL_STATE_QUERY_CANCELED = "57014"


class StatementStatus(str, enum.Enum):
    """Caller-observable state of a statement, derived from one response."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def from_response(cls, status_code: int, body: dict[str, Any]) -> StatementStatus:
        code = body.get("code")
        if status_code == HTTP_ACCEPTED or code == ASYNC_EXECUTION_IN_PROGRESS:
            return cls.RUNNING
        if status_code == HTTP_OK:
            return cls.COMPLETED
        if status_code == HTTP_UNPROCESSABLE_ENTITY:
            if body.get("sqlState") == SQL_STATE_QUERY_CANCELED:
                return cls.CANCELLED
            return cls.FAILED
        return cls.UNKNOWN


@dataclass(frozen=True)
class StatementRequest:
    """A statement to submit.

    Attributes:
        statement: SQL text
        timeout: Server-side execution timeout in seconds
        result_format: Result set metadata format ("json" or "jsonv2")
        request_id: Client idempotency key, sent as ``requestId``
        retry: Ask the service to treat a resubmission with the same
            ``request_id`` as a retry; defaults to on when a request id is set
        database: Database context
        schema: Schema context
        warehouse: Warehouse to run on
        role: Role to run as
    """

    statement: str
    timeout: int = 60
    result_format: str = "json"
    request_id: str | None = None
    retry: bool | None = None
    database: str | None = None
    schema: str | None = None
    warehouse: str | None = None
    role: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "statement": self.statement,
            "timeout": self.timeout,
            "resultSetMetaData": {"format": self.result_format},
        }
        for key in ("database", "schema", "warehouse", "role"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload

    def query_params(self, async_: bool) -> dict[str, str]:
        params = {
            "async": "true" if async_ else "false",
            "nullable": "true",
        }
        if self.request_id:
            params["requestId"] = self.request_id
            if self.retry is None or self.retry:
                params["retry"] = "true"
        return params


@dataclass(frozen=True)
class ColumnMeta:
    """Descriptor of one result column (an entry of ``rowType``)."""

    name: str
    type: str
    nullable: bool = True
    database: str | None = None
    schema: str | None = None
    table: str | None = None
    scale: int | None = None
    precision: int | None = None
    length: int | None = None
    byte_length: int | None = None
    collation: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnMeta:
        return cls(
            name=data.get("name", ""),
            type=str(data.get("type", "text")),
            nullable=data.get("nullable", True),
            database=data.get("database"),
            schema=data.get("schema"),
            table=data.get("table"),
            scale=data.get("scale"),
            precision=data.get("precision"),
            length=data.get("length"),
            byte_length=data.get("byteLength"),
            collation=data.get("collation"),
        )


@dataclass(frozen=True)
class PartitionMeta:
    """Size information for one result partition."""

    row_count: int
    uncompressed_size: int = 0
    compressed_size: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartitionMeta:
        return cls(
            row_count=data.get("rowCount", 0),
            uncompressed_size=data.get("uncompressedSize", 0),
            compressed_size=data.get("compressedSize"),
        )


@dataclass(frozen=True)
class ResultSetMetaData:
    """Result set metadata: row count, column descriptors and partitions."""

    num_rows: int = 0
    format: str | None = None
    row_type: list[ColumnMeta] = field(default_factory=list)
    partition_info: list[PartitionMeta] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ResultSetMetaData:
        if not data:
            return cls()
        return cls(
            num_rows=data.get("numRows", 0),
            format=data.get("format"),
            row_type=[ColumnMeta.from_dict(c) for c in data.get("rowType") or []],
            partition_info=[
                PartitionMeta.from_dict(p) for p in data.get("partitionInfo") or []
            ],
        )

    @property
    def partition_count(self) -> int:
        return len(self.partition_info)


@dataclass(frozen=True)
class ExecutionResult:
    """One response of the statements API.

    ``data`` is only meaningful when ``status`` is COMPLETED; for running
    statements it is empty.
    """

    status: StatementStatus
    status_code: int
    code: str | None = None
    message: str | None = None
    sql_state: str | None = None
    data: list[list[Any]] = field(default_factory=list)
    result_set_meta_data: ResultSetMetaData = field(default_factory=ResultSetMetaData)
    statement_handle: str | None = None
    statement_status_url: str | None = None
    created_on: int | None = None
    stats: dict[str, int] | None = None

    @classmethod
    def from_response(cls, status_code: int, body: dict[str, Any]) -> ExecutionResult:
        status = StatementStatus.from_response(status_code, body)
        return cls(
            status=status,
            status_code=status_code,
            code=body.get("code"),
            message=body.get("message"),
            sql_state=body.get("sqlState"),
            data=(body.get("data") or []) if status is StatementStatus.COMPLETED else [],
            result_set_meta_data=ResultSetMetaData.from_dict(body.get("resultSetMetaData")),
            statement_handle=body.get("statementHandle"),
            statement_status_url=body.get("statementStatusUrl"),
            created_on=body.get("createdOn"),
            stats=body.get("stats"),
        )

    @property
    def is_running(self) -> bool:
        return self.status is StatementStatus.RUNNING

    def rows(self) -> list[list[Any]]:
        """Return ``data`` with cells converted to Python values."""
        row_type = self.result_set_meta_data.row_type
        return [convert_row(row, row_type) for row in self.data]
