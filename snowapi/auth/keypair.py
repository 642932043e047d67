"""Key-pair JWT generation for the Snowflake SQL API.

This module handles:
- Loading PKCS#8 RSA private keys and PEM public keys
- Public key fingerprints (SHA256:<base64>)
- Signing RS256 bearer tokens bound to an account, user and key pair
"""

from __future__ import annotations

import base64
import datetime
import hashlib
import logging
import re
from typing import Callable

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import (
    InvalidKeyFormatError,
    SigningFailedError,
    UnsupportedKeyTypeError,
)

logger = logging.getLogger(__name__)

DEFAULT_AUDIENCE = "snowflake"

# PEM labels accepted for PKCS#8 private keys
_PKCS8_LABELS = frozenset(["PRIVATE KEY", "ENCRYPTED PRIVATE KEY"])

_PEM_LABEL = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_bytes(pem: bytes | str) -> bytes:
    return pem.encode("ascii") if isinstance(pem, str) else pem


def normalize_account(account: str) -> str:
    """Return the canonical account identifier used in JWT claims."""
    return account.replace(".", "-").upper()


def load_private_key(
    pem: bytes | str, passphrase: bytes | str | None = None
) -> rsa.RSAPrivateKey:
    """Load a PEM-encoded PKCS#8 RSA private key.

    Args:
        pem: PEM text with a ``PRIVATE KEY`` or ``ENCRYPTED PRIVATE KEY`` block
        passphrase: Password for encrypted keys

    Returns:
        The RSA private key

    Raises:
        InvalidKeyFormatError: The PEM is malformed or not PKCS#8
        UnsupportedKeyTypeError: The key is not an RSA key
    """
    pem = _as_bytes(pem)
    match = _PEM_LABEL.search(pem)
    if match is None:
        raise InvalidKeyFormatError("invalid PEM format for private key")

    label = match.group(1).decode("ascii")
    if label not in _PKCS8_LABELS:
        raise InvalidKeyFormatError(
            f"private key must be PKCS#8 encoded, got PEM block {label!r}"
        )

    password = _as_bytes(passphrase) if passphrase is not None else None
    try:
        key = serialization.load_pem_private_key(pem, password=password)
    except UnsupportedAlgorithm as e:
        raise UnsupportedKeyTypeError(f"unsupported private key: {e}") from e
    except (ValueError, TypeError) as e:
        raise InvalidKeyFormatError(f"could not decode private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise UnsupportedKeyTypeError(
            f"not an RSA private key: {type(key).__name__}"
        )
    return key


def load_public_key(pem: bytes | str) -> rsa.RSAPublicKey:
    """Load a PEM-encoded RSA public key.

    Raises:
        InvalidKeyFormatError: The PEM is malformed
        UnsupportedKeyTypeError: The key is not an RSA key
    """
    try:
        key = serialization.load_pem_public_key(_as_bytes(pem))
    except UnsupportedAlgorithm as e:
        raise UnsupportedKeyTypeError(f"unsupported public key: {e}") from e
    except ValueError as e:
        raise InvalidKeyFormatError(f"invalid PEM for public key: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise UnsupportedKeyTypeError(
            f"not an RSA public key: {type(key).__name__}"
        )
    return key


def public_key_fingerprint(pem: bytes | str) -> str:
    """Compute the ``SHA256:<base64>`` fingerprint of a PEM public key.

    The digest covers the DER encoding of the SubjectPublicKeyInfo, which is
    what the service registers for the user's ``RSA_PUBLIC_KEY``.
    """
    der = load_public_key(pem).public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashlib.sha256(der).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii")


def build_claims(
    account: str,
    user: str,
    fingerprint: str,
    valid_for: datetime.timedelta,
    now: datetime.datetime,
    audience: str = DEFAULT_AUDIENCE,
) -> dict:
    """Build the registered claims for a key-pair JWT."""
    qualified_user = f"{normalize_account(account)}.{user.upper()}"
    return {
        "iss": f"{qualified_user}.{fingerprint}",
        "sub": qualified_user,
        "aud": [audience],
        "iat": now,
        "exp": now + valid_for,
    }


def issue_token(
    account: str,
    user: str,
    private_key_pem: bytes | str,
    public_key_pem: bytes | str,
    valid_for: datetime.timedelta,
    *,
    now: datetime.datetime,
    audience: str = DEFAULT_AUDIENCE,
    passphrase: bytes | str | None = None,
) -> str:
    """Sign an RS256 JWT proving the caller's identity.

    Given the same inputs and the same ``now``, the claims are identical.

    Args:
        account: Account identifier (normalised to uppercase, '.' -> '-')
        user: User name (uppercased)
        private_key_pem: PKCS#8 RSA private key
        public_key_pem: Matching public key, used for the issuer fingerprint
        valid_for: Token lifetime
        now: Issue time
        audience: Audience claim
        passphrase: Password for an encrypted private key

    Returns:
        Compact JWS string

    Raises:
        InvalidKeyFormatError, UnsupportedKeyTypeError, SigningFailedError
    """
    if valid_for <= datetime.timedelta(0):
        raise ValueError("valid_for must be a positive duration")

    private_key = load_private_key(private_key_pem, passphrase)
    fingerprint = public_key_fingerprint(public_key_pem)
    claims = build_claims(account, user, fingerprint, valid_for, now, audience)

    try:
        token = jwt.encode(claims, private_key, algorithm="RS256")
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise SigningFailedError(f"JWT signing failed: {e}") from e

    logger.debug("Issued key-pair JWT for %s (expires %s)", claims["sub"], claims["exp"])
    return token


class TokenIssuer:
    """Issues key-pair JWTs using an injectable clock.

    Holds no per-token state, so one instance may be shared freely.
    """

    def __init__(
        self,
        clock: Callable[[], datetime.datetime] | None = None,
        audience: str = DEFAULT_AUDIENCE,
    ) -> None:
        self._clock = clock or _utcnow
        self._audience = audience

    def issue(
        self,
        account: str,
        user: str,
        private_key_pem: bytes | str,
        public_key_pem: bytes | str,
        valid_for: datetime.timedelta,
        passphrase: bytes | str | None = None,
    ) -> str:
        return issue_token(
            account,
            user,
            private_key_pem,
            public_key_pem,
            valid_for,
            now=self._clock(),
            audience=self._audience,
            passphrase=passphrase,
        )
