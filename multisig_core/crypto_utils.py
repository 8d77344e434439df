"""
Cryptographic primitives for the multisig wallet.

secp256k1 ECDSA over SHA-256 digests, backed by the ``ecdsa`` package:
  - Key-pair generation (caller side only; the wallet never holds private keys)
  - Public-key normalisation to 65-byte uncompressed SEC1
  - Deterministic (RFC 6979), low-S signing of 32-byte digests
  - Signature verification returning a plain bool
  - Random nonces for transaction identifiers

``CryptoProvider`` is the interface the wallet consumes; ``Secp256k1Provider``
is the default implementation built on the module-level functions.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Protocol

from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigdecode_string, sigencode_string_canonize

PRIVATE_KEY_SIZE = 32
PUBLIC_KEY_SIZE = 65      # 0x04 || X || Y
SIGNATURE_SIZE = 64       # r || s
DIGEST_SIZE = 32


def sha256(data: bytes) -> bytes:
    """SHA-256 of *data* (32 bytes)."""
    return hashlib.sha256(data).digest()


def generate_nonce(nbytes: int = 16) -> str:
    """Random hex nonce; 16 bytes gives a 128-bit transaction id."""
    return secrets.token_hex(nbytes)


def generate_keypair() -> tuple[bytes, bytes]:
    """Generate a secp256k1 key-pair. Returns (private_key, public_key)."""
    sk = SigningKey.generate(curve=SECP256k1)
    return sk.to_string(), sk.get_verifying_key().to_string("uncompressed")


def public_key_from_private(private_key: bytes) -> bytes:
    """Derive the 65-byte public key for *private_key*."""
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.get_verifying_key().to_string("uncompressed")


def normalize_public_key(public_key: bytes) -> bytes:
    """
    Return *public_key* as 65-byte uncompressed SEC1.

    Accepts raw (64), compressed (33) or uncompressed (65) encodings.
    Raises ValueError when the bytes are not a point on secp256k1.
    """
    if not isinstance(public_key, (bytes, bytearray)):
        raise ValueError(f"Public key must be bytes, got {type(public_key).__name__}")
    try:
        vk = VerifyingKey.from_string(bytes(public_key), curve=SECP256k1)
    except (MalformedPointError, ValueError) as exc:
        raise ValueError(f"Not a secp256k1 public key: {exc}") from exc
    return vk.to_string("uncompressed")


def sign(private_key: bytes, digest: bytes) -> bytes:
    """Sign a 32-byte *digest*; returns a 64-byte low-S ``r || s`` signature."""
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.sign_digest_deterministic(
        digest, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize,
    )


def verify(public_key: bytes, digest: bytes, signature: bytes) -> bool:
    """Return True iff *signature* is valid for *digest* under *public_key*."""
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_SIZE:
        return False
    try:
        vk = VerifyingKey.from_string(bytes(public_key), curve=SECP256k1)
        return vk.verify_digest(bytes(signature), digest, sigdecode=sigdecode_string)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


class CryptoProvider(Protocol):
    """Hash / sign / verify oracle consumed by the wallet."""

    def hash(self, data: bytes) -> bytes: ...

    def sign(self, private_key: bytes, digest: bytes) -> bytes: ...

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool: ...


class Secp256k1Provider:
    """Default provider: secp256k1 ECDSA with SHA-256."""

    def hash(self, data: bytes) -> bytes:
        return sha256(data)

    def sign(self, private_key: bytes, digest: bytes) -> bytes:
        return sign(private_key, digest)

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool:
        return verify(public_key, digest, signature)


DEFAULT_PROVIDER = Secp256k1Provider()
