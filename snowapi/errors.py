"""Exception types raised by the snowapi client.

This module contains:
- SnowAPIError, the common base class
- Credential errors raised while issuing key-pair JWTs
- Transport and service errors raised by the statement client
"""

from __future__ import annotations

from dataclasses import dataclass


class SnowAPIError(Exception):
    """Base class for all snowapi errors."""


class ConfigurationError(SnowAPIError):
    """Raised when the client configuration is incomplete or invalid."""


class CredentialError(SnowAPIError):
    """Raised when a credential cannot be issued. Never retryable."""


class InvalidKeyFormatError(CredentialError):
    """Key material is not a decodable PEM key of the expected encoding."""


class UnsupportedKeyTypeError(CredentialError):
    """Key material decoded, but it is not an RSA key."""


class SigningFailedError(CredentialError):
    """The JWT signer rejected the key or the claims."""


class TransportError(SnowAPIError):
    """Network or connection failure while talking to the service."""


class ResponseDecodeError(TransportError):
    """A success response carried a body that is not valid JSON."""


@dataclass(eq=False)
class ServiceError(SnowAPIError):
    """The service rejected the request or reported an execution failure."""

    code: str | None
    message: str
    sql_state: str | None = None
    status_code: int | None = None
    statement_handle: str | None = None

    def __str__(self) -> str:
        text = f"{self.message} (code {self.code}"
        if self.sql_state:
            text += f", sqlState {self.sql_state}"
        return text + ")"


@dataclass(eq=False)
class UnexpectedStatusError(SnowAPIError):
    """The service answered with a status outside the documented contract."""

    status: int
    message: str

    def __str__(self) -> str:
        return f"unexpected status {self.status}: {self.message}"


@dataclass(eq=False)
class RetriesExhaustedError(SnowAPIError):
    """The statement was still running after every allowed poll."""

    handle: str
    attempts: int

    def __str__(self) -> str:
        return (
            f"statement {self.handle} still running after "
            f"{self.attempts} poll attempts"
        )
