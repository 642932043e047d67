"""Key-pair authentication for the Snowflake SQL API.

Modules:
    keypair: PKCS#8 key loading, public key fingerprints and JWT issuance
"""

from .keypair import (
    DEFAULT_AUDIENCE,
    TokenIssuer,
    issue_token,
    load_private_key,
    load_public_key,
    normalize_account,
    public_key_fingerprint,
)

__all__ = [
    "DEFAULT_AUDIENCE",
    "TokenIssuer",
    "issue_token",
    "load_private_key",
    "load_public_key",
    "normalize_account",
    "public_key_fingerprint",
]
