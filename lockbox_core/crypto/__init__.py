"""
Cryptographic helpers for the Firefox Accounts sign-in flow.

This module provides:
- PKCE values (state, code verifier, S256 challenge)
- The ephemeral ECDH key pair advertised as keys_jwk
- Decryption of the scoped-key JWE bundle
"""

from lockbox_core.crypto.key_manager import (
    KeyManager,
    base64url_decode,
    base64url_encode,
    sha256_base64url,
)

__all__ = [
    "KeyManager",
    "base64url_decode",
    "base64url_encode",
    "sha256_base64url",
]
