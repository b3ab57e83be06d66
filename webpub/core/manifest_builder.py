"""Deterministic web app manifest assembly and msgpack serialization."""

from __future__ import annotations

import mimetypes
from collections.abc import Iterable, Sequence
from typing import Any

import msgpack
import pydantic

from webpub.errors import ValidationError
from webpub.models.cid import ContentIdentifier
from webpub.models.manifest import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_TRY_FILES,
    PathContent,
    UploadedFile,
    WebAppMetadata,
)

# Built-in table only; system mime.types files are not consulted, so the
# mapping is the same on every host.
_MIME_TYPES = mimetypes.MimeTypes()


def content_type_for(path: str) -> str:
    """MIME type for *path* from its extension, or the octet-stream default."""
    content_type, _encoding = _MIME_TYPES.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


def build_manifest(
    files: Iterable[UploadedFile],
    *,
    try_files: Sequence[str] = DEFAULT_TRY_FILES,
    name: str | None = None,
    error_pages: dict[str, str] | None = None,
) -> WebAppMetadata:
    """Assemble uploaded files into a manifest, sorted by relative path.

    Raises
    ------
    ValidationError
        On duplicate paths, paths over 255 bytes, or bad error page codes.
    """
    paths: dict[str, PathContent] = {}
    for item in sorted(files, key=lambda f: f.relative_path):
        if item.relative_path in paths:
            raise ValidationError(f"Duplicate manifest path: {item.relative_path}")
        paths[item.relative_path] = PathContent(
            cid=item.cid,
            content_type=content_type_for(item.relative_path),
            size=item.size,
        )

    try:
        return WebAppMetadata(
            paths=paths,
            try_files=list(try_files),
            name=name,
            error_pages=error_pages,
        )
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid manifest: {exc}") from exc


def serialize_manifest(metadata: WebAppMetadata) -> bytes:
    """Compact msgpack encoding; same manifest, same bytes."""
    return msgpack.packb(metadata.to_wire(), use_bin_type=True)


def deserialize_manifest(payload: bytes) -> WebAppMetadata:
    """Inverse of :func:`serialize_manifest`."""
    try:
        wire: dict[str, Any] = msgpack.unpackb(payload, raw=False)
        if not isinstance(wire, dict):
            raise ValidationError(
                f"Invalid manifest payload: expected a map, got {type(wire).__name__}"
            )
        wire["paths"] = {
            path: {**entry, "cid": ContentIdentifier.decode(entry["cid"])}
            for path, entry in wire.get("paths", {}).items()
        }
        return WebAppMetadata.model_validate(wire)
    except (ValueError, TypeError, KeyError, AttributeError, msgpack.UnpackException) as exc:
        raise ValidationError(f"Invalid manifest payload: {exc}") from exc
