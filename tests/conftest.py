import datetime
import json
from types import SimpleNamespace
from typing import Any, Iterator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from snowapi import Client, ClientConfig, TokenIssuer, TransportResponse

FIXED_NOW = datetime.datetime(2024, 1, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


def _serialize(private_key) -> tuple[bytes, bytes]:
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_key_pair(rsa_private_key) -> tuple[bytes, bytes]:
    """PEM-encoded (PKCS#8 private key, SubjectPublicKeyInfo public key)."""
    return _serialize(rsa_private_key)


@pytest.fixture(scope="session")
def ec_key_pair() -> tuple[bytes, bytes]:
    return _serialize(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def fixed_now() -> datetime.datetime:
    return FIXED_NOW


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(clock=lambda: FIXED_NOW)


@pytest.fixture
def config(rsa_key_pair) -> ClientConfig:
    private_pem, public_pem = rsa_key_pair
    return ClientConfig(
        account="myorg.acct",
        user="jsmith",
        private_key=private_pem,
        public_key=public_pem,
        host="sql.example.test",
    )


class FakeTransport:
    """Scripted transport: replays queued responses and records requests."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self._script: list[TransportResponse | Exception] = []
        self.closed = False

    def queue(self, status_code: int, body: Any = None) -> "FakeTransport":
        if body is None:
            raw = b""
        elif isinstance(body, (bytes, str)):
            raw = body.encode() if isinstance(body, str) else body
        else:
            raw = json.dumps(body).encode()
        self._script.append(TransportResponse(status_code=status_code, body=raw))
        return self

    def queue_error(self, error: Exception) -> "FakeTransport":
        self._script.append(error)
        return self

    def send(self, method, url, headers, body=None) -> TransportResponse:
        self.requests.append(
            {"method": method, "url": url, "headers": dict(headers), "body": body}
        )
        if not self._script:
            raise AssertionError(f"unexpected request: {method} {url}")
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def client(config, transport, token_issuer, sleeps) -> Iterator[Client]:
    with Client(config, transport=transport, token_issuer=token_issuer, sleep=sleeps) as c:
        yield c


# Canned response bodies, shaped like the service's payloads

def running_body(handle: str = "01b2-0000-handle") -> dict:
    return {
        "code": "333334",
        "sqlState": "00000",
        "message": "Asynchronous execution in progress. Use provided query id to perform query monitoring and management.",
        "statementHandle": handle,
        "statementStatusUrl": f"/api/v2/statements/{handle}",
    }


def success_body(
    handle: str = "01b2-0000-handle", data: list | None = None, message: str = "Statement executed successfully."
) -> dict:
    rows = data if data is not None else [["1", "hello"]]
    return {
        "resultSetMetaData": {
            "numRows": len(rows),
            "format": "jsonv2",
            "rowType": [
                {"name": "NUM", "type": "fixed", "nullable": False, "scale": 0, "precision": 1},
                {"name": "MSG", "type": "text", "nullable": True, "length": 16777216},
            ],
            "partitionInfo": [{"rowCount": len(rows), "uncompressedSize": 12}],
        },
        "data": rows,
        "code": "090001",
        "statementStatusUrl": f"/api/v2/statements/{handle}",
        "sqlState": "00000",
        "statementHandle": handle,
        "message": message,
        "createdOn": 1705320000000,
    }


def error_body(
    code: str = "002003", message: str = "SQL compilation error: Object 'T' does not exist.",
    sql_state: str = "02000", handle: str | None = "01b2-0000-handle",
) -> dict:
    body = {"code": code, "message": message, "sqlState": sql_state}
    if handle:
        body["statementHandle"] = handle
    return body


@pytest.fixture
def bodies() -> SimpleNamespace:
    """Factories for canned response bodies."""
    return SimpleNamespace(running=running_body, success=success_body, error=error_body)
