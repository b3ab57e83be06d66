"""Crypto bridge — Ed25519 signing and seed-phrase key derivation.

Bridge boundary
---------------
Signing and verification go through PyNaCl (libsodium).  Registry keys
are derived deterministically from a BIP-39 mnemonic:

1. The mnemonic is checked against the English wordlist and checksum
   (``mnemonic`` library) and stretched into a 64-byte seed.
2. SLIP-0010 Ed25519 derivation walks the hardened path
   ``m/44'/1627'/0'/0'/0'`` to a 32-byte private key.
3. That key seeds a ``nacl.signing.SigningKey``.

Ed25519 only supports hardened derivation; a non-hardened path segment
is a ``ValidationError``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

import nacl.signing
from mnemonic import Mnemonic
from nacl.exceptions import BadSignatureError

from webpub.config import DERIVATION_PATH
from webpub.errors import ValidationError

logger = logging.getLogger(__name__)

HARDENED_OFFSET = 0x80000000
_SLIP10_ED25519_CURVE = b"ed25519 seed"


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def sign_data(data: bytes, signing_key: nacl.signing.SigningKey) -> bytes:
    """Sign *data* and return the detached 64-byte signature."""
    return signing_key.sign(data).signature


def verify_data(data: bytes, signature: bytes, public_key: bytes) -> bool:
    """Return ``True`` if *signature* is valid for *data* under *public_key*.

    Fails closed: malformed keys or signatures return ``False``.
    """
    if not signature:
        return False
    try:
        nacl.signing.VerifyKey(public_key).verify(data, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def key_fingerprint(public_key: bytes) -> str:
    """First 16 hex characters of SHA-256(public key), for log lines."""
    if not public_key:
        return ""
    return hashlib.sha256(public_key).hexdigest()[:16]


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


def parse_derivation_path(path: str) -> list[int]:
    """Turn ``m/44'/1627'/0'`` into child indices (hardened offsets applied)."""
    segments = path.split("/")
    if not segments or segments[0] != "m":
        raise ValidationError(f"Derivation path must start with 'm': {path!r}")

    indices: list[int] = []
    for segment in segments[1:]:
        if not segment.endswith("'"):
            raise ValidationError(
                f"Ed25519 derivation requires hardened segments, got {segment!r}"
            )
        try:
            index = int(segment[:-1])
        except ValueError as exc:
            raise ValidationError(f"Bad derivation path segment {segment!r}") from exc
        if not 0 <= index < HARDENED_OFFSET:
            raise ValidationError(f"Derivation index out of range: {index}")
        indices.append(index + HARDENED_OFFSET)
    return indices


def slip10_derive(seed: bytes, path: str = DERIVATION_PATH) -> bytes:
    """SLIP-0010 Ed25519 derivation; returns the 32-byte private key."""
    digest = hmac.new(_SLIP10_ED25519_CURVE, seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]
    for index in parse_derivation_path(path):
        data = b"\x00" + key + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        key, chain_code = digest[:32], digest[32:]
    return key


def mnemonic_to_seed(phrase: str) -> bytes:
    """Validate a BIP-39 English mnemonic and return its 64-byte seed."""
    normalized = " ".join(phrase.split())
    if not Mnemonic("english").check(normalized):
        raise ValidationError("APP_SEED is not a valid BIP-39 mnemonic")
    return Mnemonic.to_seed(normalized)


def derive_signing_key(
    phrase: str | None, path: str = DERIVATION_PATH
) -> nacl.signing.SigningKey | None:
    """Derive the registry signing key from a seed phrase.

    Returns ``None`` when no phrase is configured; the registry step is
    skipped in that case.
    """
    if phrase is None or not phrase.strip():
        return None

    signing_key = nacl.signing.SigningKey(slip10_derive(mnemonic_to_seed(phrase), path))
    logger.debug(
        "Derived registry key %s at %s",
        key_fingerprint(bytes(signing_key.verify_key)),
        path,
    )
    return signing_key
