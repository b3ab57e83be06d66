"""Signed registry entries binding an Ed25519 public key to a CID."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from webpub.models.cid import CIDType, ContentIdentifier, HashType

RECORD_TYPE_REGISTRY_ENTRY = 0x07
REGISTRY_TYPE_CID = 0x5A
MAX_DATA_LENGTH = 255

# "CID pointer, resolver-typed, BLAKE3-hashed"
POINTER_PREFIX = bytes([REGISTRY_TYPE_CID, CIDType.RESOLVER, HashType.BLAKE3])


def pointer_data(cid: ContentIdentifier) -> bytes:
    """Registry payload pointing at *cid*: type markers + raw digest."""
    return POINTER_PREFIX + cid.digest


def signing_message(data: bytes, revision: int) -> bytes:
    """The exact bytes an entry's signature covers."""
    return (
        bytes([RECORD_TYPE_REGISTRY_ENTRY])
        + revision.to_bytes(8, "little")
        + bytes([len(data)])
        + data
    )


class RegistryEntry(BaseModel):
    """A signed, revision-numbered registry record.

    Never mutated after signing; republishing builds a new entry with a
    strictly greater revision.
    """

    model_config = ConfigDict(frozen=True)

    public_key: bytes
    data: bytes
    revision: int = Field(ge=0, lt=2**64)
    signature: bytes

    @field_validator("public_key")
    @classmethod
    def _key_length(cls, value: bytes) -> bytes:
        if len(value) != 32:
            raise ValueError("Ed25519 public key must be 32 bytes")
        return value

    @field_validator("data")
    @classmethod
    def _data_length(cls, value: bytes) -> bytes:
        if len(value) > MAX_DATA_LENGTH:
            raise ValueError(f"registry data exceeds {MAX_DATA_LENGTH} bytes")
        return value

    @field_validator("signature")
    @classmethod
    def _signature_length(cls, value: bytes) -> bytes:
        if len(value) != 64:
            raise ValueError("Ed25519 signature must be 64 bytes")
        return value

    @property
    def message(self) -> bytes:
        """The signed message for this entry."""
        return signing_message(self.data, self.revision)
