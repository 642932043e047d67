"""SQL REST API client package.

Drives statements through the Snowflake SQL REST API:
https://docs.snowflake.com/en/developer-guide/sql-api/index.html

Endpoints:
    POST /api/v2/statements - Submit SQL statement
    GET /api/v2/statements/{handle} - Get statement status/results
    POST /api/v2/statements/{handle}/cancel - Cancel statement

Modules:
    client: Statement lifecycle (submit, poll, wait, cancel)
    models: Request and response dataclasses
    transport: HTTP transport protocol and requests-based implementation
    types: Conversion of result cells to Python values
"""

from .client import Client
from .models import (
    ColumnMeta,
    ExecutionResult,
    PartitionMeta,
    ResultSetMetaData,
    StatementRequest,
    StatementStatus,
)
from .transport import RequestsTransport, Transport, TransportResponse
from .types import convert_row, convert_value

__all__ = [
    # Client
    "Client",
    # Models
    "ColumnMeta",
    "ExecutionResult",
    "PartitionMeta",
    "ResultSetMetaData",
    "StatementRequest",
    "StatementStatus",
    # Transport
    "RequestsTransport",
    "Transport",
    "TransportResponse",
    # Type utilities
    "convert_row",
    "convert_value",
]
