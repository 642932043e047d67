__version__ = "0.1.0"

from .auth import TokenIssuer, issue_token, public_key_fingerprint
from .config import ClientConfig
from .errors import (
    ConfigurationError,
    CredentialError,
    InvalidKeyFormatError,
    ResponseDecodeError,
    RetriesExhaustedError,
    ServiceError,
    SigningFailedError,
    SnowAPIError,
    TransportError,
    UnexpectedStatusError,
    UnsupportedKeyTypeError,
)
from .sql_api import (
    Client,
    ExecutionResult,
    RequestsTransport,
    StatementRequest,
    StatementStatus,
    Transport,
    TransportResponse,
)

__all__ = [
    "__version__",
    # Client
    "Client",
    "ClientConfig",
    "ExecutionResult",
    "StatementRequest",
    "StatementStatus",
    # Transport
    "RequestsTransport",
    "Transport",
    "TransportResponse",
    # Auth
    "TokenIssuer",
    "issue_token",
    "public_key_fingerprint",
    # Errors
    "ConfigurationError",
    "CredentialError",
    "InvalidKeyFormatError",
    "ResponseDecodeError",
    "RetriesExhaustedError",
    "ServiceError",
    "SigningFailedError",
    "SnowAPIError",
    "TransportError",
    "UnexpectedStatusError",
    "UnsupportedKeyTypeError",
]
