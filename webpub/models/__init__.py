"""webpub data models — all Pydantic v2, all frozen (immutable)."""

from webpub.models.cid import CIDType, ContentIdentifier, HashType
from webpub.models.manifest import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_TRY_FILES,
    PathContent,
    UploadedFile,
    WebAppMetadata,
)
from webpub.models.registry import RegistryEntry, pointer_data, signing_message

__all__ = [
    # cid
    "CIDType",
    "ContentIdentifier",
    "HashType",
    # manifest
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_TRY_FILES",
    "PathContent",
    "UploadedFile",
    "WebAppMetadata",
    # registry
    "RegistryEntry",
    "pointer_data",
    "signing_message",
]
