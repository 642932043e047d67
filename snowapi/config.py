"""Client configuration.

ClientConfig is an explicit value passed to the client at construction time.
``ClientConfig.from_env`` reads the ``SNOWAPI_*`` environment variables for
the command line and for scripts.
"""

from __future__ import annotations

import datetime
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .errors import ConfigurationError

DEFAULT_DOMAIN = "snowflakecomputing.com"

# Tokens may live at most one hour; stay just under it
DEFAULT_TOKEN_TTL = datetime.timedelta(minutes=59)
DEFAULT_HTTP_TIMEOUT = 10.0

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the SQL API client.

    Attributes:
        account: Account identifier, e.g. ``myorg-myaccount``
        user: Login name of the key-pair user
        private_key: PEM-encoded PKCS#8 RSA private key
        public_key: PEM-encoded public key registered for the user
        private_key_passphrase: Password for an encrypted private key
        token_ttl: Lifetime of each issued JWT
        http_timeout: Per-request timeout in seconds
        host: Explicit host override (skips account-based resolution)
        private_link: Use the ``<account>.privatelink`` host
        protocol: URL scheme
        port: Optional port
        database: Default database context for statements
        schema: Default schema context for statements
        warehouse: Default warehouse for statements
        role: Default role for statements
    """

    account: str
    user: str
    private_key: bytes
    public_key: bytes
    private_key_passphrase: bytes | None = None
    token_ttl: datetime.timedelta = DEFAULT_TOKEN_TTL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    host: str | None = None
    private_link: bool = False
    protocol: str = "https"
    port: int | None = None
    database: str | None = None
    schema: str | None = None
    warehouse: str | None = None
    role: str | None = None

    def __post_init__(self) -> None:
        if not self.account or not self.user:
            raise ConfigurationError("account and user are required")

    @property
    def resolved_host(self) -> str:
        """Host name the client talks to."""
        if self.host:
            return self.host
        if self.private_link:
            return f"{self.account}.privatelink.{DEFAULT_DOMAIN}"
        return f"{self.account}.{DEFAULT_DOMAIN}"

    @property
    def base_url(self) -> str:
        """Root of the SQL API, e.g. ``https://acct.snowflakecomputing.com/api/v2``."""
        netloc = self.resolved_host
        if self.port:
            netloc = f"{netloc}:{self.port}"
        return f"{self.protocol}://{netloc}/api/v2"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``SNOWAPI_*`` environment variables.

        Keys are read from the files named by ``SNOWAPI_PRIVATE_KEY_PATH`` and
        ``SNOWAPI_PUBLIC_KEY_PATH``.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(f"SNOWAPI_{name}") or None

        account = get("ACCOUNT")
        user = get("USER")
        if not account or not user:
            raise ConfigurationError(
                "SNOWAPI_ACCOUNT and SNOWAPI_USER must be set"
            )

        private_key_path = get("PRIVATE_KEY_PATH")
        public_key_path = get("PUBLIC_KEY_PATH")
        if not private_key_path or not public_key_path:
            raise ConfigurationError(
                "SNOWAPI_PRIVATE_KEY_PATH and SNOWAPI_PUBLIC_KEY_PATH must be set"
            )

        passphrase = get("PRIVATE_KEY_PASSPHRASE")
        port = get("PORT")
        token_ttl = get("TOKEN_TTL")
        http_timeout = get("HTTP_TIMEOUT")

        try:
            return cls(
                account=account,
                user=user,
                private_key=_read_key(private_key_path),
                public_key=_read_key(public_key_path),
                private_key_passphrase=passphrase.encode() if passphrase else None,
                token_ttl=(
                    datetime.timedelta(seconds=int(token_ttl))
                    if token_ttl
                    else DEFAULT_TOKEN_TTL
                ),
                http_timeout=float(http_timeout) if http_timeout else DEFAULT_HTTP_TIMEOUT,
                host=get("HOST"),
                private_link=(get("PRIVATELINK") or "").lower() in _TRUE_VALUES,
                protocol=get("PROTOCOL") or "https",
                port=int(port) if port else None,
                database=get("DATABASE"),
                schema=get("SCHEMA"),
                warehouse=get("WAREHOUSE"),
                role=get("ROLE"),
            )
        except ValueError as e:
            raise ConfigurationError(f"invalid SNOWAPI setting: {e}") from e


def _read_key(path: str) -> bytes:
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as e:
        raise ConfigurationError(f"cannot read key file {path}: {e}") from e
