"""
Key material for the Firefox Accounts sign-in flow.

Provides:
- PKCE state/verifier generation and S256 challenges
- An ephemeral P-256 ECDH key pair whose public half is sent as keys_jwk
- Decryption of the keys_jwe bundle (ECDH-ES + A256GCM, compact serialization)
"""

import base64
import hashlib
import json
import secrets
from typing import Any

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash

from lockbox_core.exceptions import JWEDecryptionError, KeyGenerationError

logger = structlog.get_logger(__name__)

_P256_COORDINATE_SIZE = 32
_SUPPORTED_ALG = "ECDH-ES"
_SUPPORTED_ENC = "A256GCM"
_CEK_BITS = 256


def base64url_encode(data: bytes) -> str:
    """Encode bytes as URL-safe base64 without '=' padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def base64url_decode(encoded: str) -> bytes:
    """Decode URL-safe base64, tolerating missing padding."""
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding)


def sha256_base64url(value: str) -> str:
    """S256 code challenge: base64url(SHA-256(value)) without padding."""
    return base64url_encode(hashlib.sha256(value.encode("ascii")).digest())


def _length_prefixed(data: bytes) -> bytes:
    return len(data).to_bytes(4, "big") + data


class KeyManager:
    """
    Generates and holds the ephemeral key pair for one sign-in flow.

    Call clear() once the flow completes or is cancelled.
    """

    def __init__(self) -> None:
        self._private_key: ec.EllipticCurvePrivateKey | None = None

    @staticmethod
    def random32() -> bytes:
        """32 bytes from the OS CSPRNG."""
        return secrets.token_bytes(32)

    @property
    def has_ephemeral_key(self) -> bool:
        return self._private_key is not None

    def ephemeral_public_jwk(self) -> dict[str, str]:
        """
        Generate a fresh ECDH key pair and return its public JWK.

        Replaces any key pair from a previous flow.

        Returns:
            Public key as a JWK dictionary (kty, crv, x, y).

        Raises:
            KeyGenerationError: If the key pair cannot be produced.
        """
        try:
            private_key = ec.generate_private_key(ec.SECP256R1())
            numbers = private_key.public_key().public_numbers()
        except Exception as e:
            logger.error("Failed to generate ephemeral key", error_type=type(e).__name__)
            msg = "Failed to generate ephemeral key"
            raise KeyGenerationError(msg) from e

        self._private_key = private_key
        return {
            "kty": "EC",
            "crv": "P-256",
            "x": base64url_encode(numbers.x.to_bytes(_P256_COORDINATE_SIZE, "big")),
            "y": base64url_encode(numbers.y.to_bytes(_P256_COORDINATE_SIZE, "big")),
        }

    def decrypt_jwe(self, jwe: str) -> str:
        """
        Decrypt a compact JWE addressed to the ephemeral key.

        Args:
            jwe: Compact serialization (five dot-separated parts).

        Returns:
            Decrypted plaintext as text.

        Raises:
            JWEDecryptionError: If the JWE is malformed, uses another algorithm,
                or fails authentication.
        """
        if self._private_key is None:
            msg = "No ephemeral key available"
            raise JWEDecryptionError(msg)

        parts = jwe.split(".")
        if len(parts) != 5:
            msg = "Malformed JWE"
            raise JWEDecryptionError(msg, parts=len(parts))
        protected, encrypted_key, iv, ciphertext, tag = parts

        try:
            header = json.loads(base64url_decode(protected))
        except (ValueError, UnicodeDecodeError) as e:
            msg = "Malformed JWE header"
            raise JWEDecryptionError(msg) from e

        if header.get("alg") != _SUPPORTED_ALG or header.get("enc") != _SUPPORTED_ENC:
            msg = "Unsupported JWE algorithm"
            raise JWEDecryptionError(msg, alg=header.get("alg"), enc=header.get("enc"))
        if encrypted_key:
            msg = "Direct key agreement must not carry an encrypted key"
            raise JWEDecryptionError(msg)

        try:
            cek = self._derive_content_key(header)
            plaintext = AESGCM(cek).decrypt(
                base64url_decode(iv),
                base64url_decode(ciphertext) + base64url_decode(tag),
                protected.encode("ascii"),
            )
        except JWEDecryptionError:
            raise
        except (InvalidTag, ValueError, KeyError, TypeError) as e:
            logger.warning("JWE decryption failed", error_type=type(e).__name__)
            msg = "JWE decryption failed"
            raise JWEDecryptionError(msg) from e

        return plaintext.decode("utf-8")

    def clear(self) -> None:
        """Drop the ephemeral key pair."""
        self._private_key = None

    def _derive_content_key(self, header: dict[str, Any]) -> bytes:
        epk = header.get("epk")
        if not isinstance(epk, dict) or epk.get("kty") != "EC" or epk.get("crv") != "P-256":
            msg = "Missing or unsupported ephemeral public key"
            raise JWEDecryptionError(msg)

        peer_key = ec.EllipticCurvePublicNumbers(
            int.from_bytes(base64url_decode(epk["x"]), "big"),
            int.from_bytes(base64url_decode(epk["y"]), "big"),
            ec.SECP256R1(),
        ).public_key()
        shared_secret = self._private_key.exchange(ec.ECDH(), peer_key)

        # RFC 7518 section 4.6.2: AlgorithmID is "enc" for direct key agreement.
        other_info = (
            _length_prefixed(_SUPPORTED_ENC.encode("ascii"))
            + _length_prefixed(base64url_decode(header.get("apu", "")))
            + _length_prefixed(base64url_decode(header.get("apv", "")))
            + _CEK_BITS.to_bytes(4, "big")
        )
        kdf = ConcatKDFHash(algorithm=hashes.SHA256(), length=_CEK_BITS // 8, otherinfo=other_info)
        return kdf.derive(shared_secret)
