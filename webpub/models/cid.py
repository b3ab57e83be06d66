"""Content identifiers — hash, size and a type tag.

Binary layout::

    [type byte][hash-type byte][digest][size, little endian, zeros trimmed]

The size suffix is omitted when ``size`` is ``None`` (resolver CIDs).
String form is multibase base58btc: a ``z`` prefix followed by the
base58 (bitcoin alphabet) encoding of the binary form.
"""

from __future__ import annotations

from enum import IntEnum

import base58
from pydantic import BaseModel, ConfigDict, field_validator

from webpub.errors import ValidationError

MULTIBASE_BASE58BTC = "z"
DIGEST_LENGTH = 32


class CIDType(IntEnum):
    """Type tag carried in the first byte of every CID."""

    RAW = 0x26
    METADATA_MEDIA = 0xC5
    METADATA_WEBAPP = 0x59
    RESOLVER = 0x25
    USER_IDENTITY = 0x77
    BRIDGE = 0x3A


class HashType(IntEnum):
    """What the digest bytes are."""

    BLAKE3 = 0x1F
    ED25519 = 0xED


class ContentIdentifier(BaseModel):
    """An immutable CID.

    Two CIDs with the same digest and size but a different ``cid_type`` are
    distinct identifiers; :meth:`retag` converts between them.
    """

    model_config = ConfigDict(frozen=True)

    cid_type: CIDType
    hash_type: HashType = HashType.BLAKE3
    digest: bytes
    size: int | None = None

    @field_validator("digest")
    @classmethod
    def _digest_length(cls, value: bytes) -> bytes:
        if len(value) != DIGEST_LENGTH:
            raise ValueError(
                f"digest must be {DIGEST_LENGTH} bytes, got {len(value)}"
            )
        return value

    @field_validator("size")
    @classmethod
    def _size_unsigned(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value < 2**64:
            raise ValueError("size must fit in an unsigned 64-bit integer")
        return value

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_registry_public_key(cls, public_key: bytes) -> ContentIdentifier:
        """Resolver CID addressing the registry slot of an Ed25519 key."""
        return cls(
            cid_type=CIDType.RESOLVER,
            hash_type=HashType.ED25519,
            digest=public_key,
        )

    @classmethod
    def decode(cls, value: str | bytes) -> ContentIdentifier:
        """Parse a CID from its string or binary form.

        Raises
        ------
        ValidationError
            If the input is not a well-formed CID.
        """
        if isinstance(value, str):
            if not value.startswith(MULTIBASE_BASE58BTC):
                raise ValidationError(f"Unsupported multibase prefix in CID: {value!r}")
            try:
                raw = base58.b58decode(value[1:])
            except ValueError as exc:
                raise ValidationError(f"Invalid base58 in CID {value!r}: {exc}") from exc
        else:
            raw = bytes(value)

        header = 2 + DIGEST_LENGTH
        if len(raw) < header:
            raise ValidationError(f"CID too short: {len(raw)} bytes")
        try:
            cid_type = CIDType(raw[0])
            hash_type = HashType(raw[1])
        except ValueError as exc:
            raise ValidationError(f"Unknown CID type or hash type: {exc}") from exc

        size_bytes = raw[header:]
        if len(size_bytes) > 8:
            raise ValidationError("CID size field longer than 8 bytes")
        size = int.from_bytes(size_bytes, "little") if size_bytes else None

        return cls(
            cid_type=cid_type,
            hash_type=hash_type,
            digest=raw[2:header],
            size=size,
        )

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self) -> bytes:
        """Binary form of this CID."""
        out = bytes([self.cid_type, self.hash_type]) + self.digest
        if self.size is None:
            return out
        size_bytes = self.size.to_bytes(8, "little").rstrip(b"\x00")
        return out + (size_bytes or b"\x00")

    def to_string(self) -> str:
        """Multibase base58btc string form."""
        return MULTIBASE_BASE58BTC + base58.b58encode(self.encode()).decode("ascii")

    def __str__(self) -> str:
        return self.to_string()

    def retag(self, cid_type: CIDType) -> ContentIdentifier:
        """Return a CID with the same digest and size but a new type tag."""
        return self.model_copy(update={"cid_type": cid_type})
