"""Uploaded-file records and the web app manifest (immutable)."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from webpub.models.cid import ContentIdentifier

MAX_PATH_BYTES = 255
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_TRY_FILES: tuple[str, ...] = ("index.html",)

_STATUS_CODE_RE = re.compile(r"^\d{3}$")


class UploadedFile(BaseModel):
    """One file that reached the storage backend during this run."""

    model_config = ConfigDict(frozen=True)

    cid: ContentIdentifier
    relative_path: str
    size: int = Field(ge=0)


class PathContent(BaseModel):
    """Manifest entry for a single path."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cid: ContentIdentifier
    content_type: str | None = Field(default=None, alias="contentType")
    size: int = Field(ge=0)

    @field_serializer("cid")
    def _cid_as_string(self, cid: ContentIdentifier) -> str:
        return cid.to_string()


class WebAppMetadata(BaseModel):
    """The published manifest: relative paths to CIDs plus routing hints.

    Field order is the wire order; :meth:`to_wire` relies on it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["web_app"] = "web_app"
    paths: dict[str, PathContent] = {}
    try_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRY_FILES), alias="tryFiles"
    )
    name: str | None = None
    error_pages: dict[str, str] | None = Field(default=None, alias="errorPages")
    extra_metadata: Any | None = Field(default=None, alias="extraMetadata")

    @field_validator("paths")
    @classmethod
    def _check_paths(cls, value: dict[str, PathContent]) -> dict[str, PathContent]:
        for path in value:
            if not path or path.startswith("/"):
                raise ValueError(f"manifest path must be relative: {path!r}")
            if len(path.encode("utf-8")) > MAX_PATH_BYTES:
                raise ValueError(
                    f"manifest path exceeds {MAX_PATH_BYTES} bytes: {path!r}"
                )
        return value

    @field_validator("error_pages")
    @classmethod
    def _check_error_pages(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        if value is None:
            return value
        for code in value:
            if not _STATUS_CODE_RE.match(code):
                raise ValueError(f"error page key must be a 3-digit status code: {code!r}")
        return value

    def to_wire(self) -> dict[str, Any]:
        """Plain mapping with camelCase keys, unset optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)
