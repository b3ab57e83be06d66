"""Publish configuration — env-driven via pydantic-settings.

Reads the documented inputs straight from the environment (no prefix) or
from a ``.env`` file in the working directory::

    export PORTAL_PRIVATE_KEY=<64 hex chars>
    export DIR=./dist
    export PARALLEL_UPLOADS=10
    export APP_SEED="abandon abandon ... about"

Values passed on the command line take precedence over the environment.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webpub.errors import ValidationError

DEFAULT_PARALLEL_UPLOADS = 10
DERIVATION_PATH = "m/44'/1627'/0'/0'/0'"

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class PublishConfig(BaseSettings):
    """Settings for one publish run.

    ``portal_private_key`` and ``dir`` are required to publish but optional
    here so that the object can be built first and checked with
    :meth:`validate_for_publish`, which raises the project's own
    ``ValidationError`` instead of pydantic's.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Documented inputs
    portal_private_key: str | None = None
    dir: Path | None = None
    parallel_uploads: int = Field(default=DEFAULT_PARALLEL_UPLOADS, ge=1)
    app_seed: str | None = None

    # Storage backend: HTTP portal when a URL is set, local store otherwise
    portal_url: str | None = None
    object_store_path: Path = Path(".webpub/objects")

    # Registry node
    bootstrap_peers: list[str] = ["memory://loopback"]
    peer_timeout_seconds: float = Field(default=30.0, gt=0)

    # Observability
    log_level: str = "INFO"

    @field_validator("parallel_uploads", mode="before")
    @classmethod
    def _default_when_falsy(cls, value: Any) -> Any:
        # An unset, empty or zero value means "use the default".
        if value in (None, "", 0, "0"):
            return DEFAULT_PARALLEL_UPLOADS
        return value

    @field_validator("app_seed", "portal_url", "dir", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def derivation_path(self) -> str:
        """Hierarchical derivation path for the registry signing key."""
        return DERIVATION_PATH

    def validate_for_publish(self) -> None:
        """Check the inputs a publish run cannot proceed without.

        Raises
        ------
        ValidationError
            If the portal key is missing or not 64 hex characters, or the
            directory is missing, empty, or not a directory.
        """
        if not self.portal_private_key:
            raise ValidationError("PORTAL_PRIVATE_KEY is required")
        if not _HEX_KEY_RE.match(self.portal_private_key):
            raise ValidationError(
                "PORTAL_PRIVATE_KEY must be a 64-character hex string"
            )
        if self.dir is None or not str(self.dir).strip():
            raise ValidationError("DIR is required")
        if not self.dir.is_dir():
            raise ValidationError(f"DIR is not a directory: {self.dir}")

    @property
    def portal_key_bytes(self) -> bytes:
        """The portal private key decoded from hex."""
        if not self.portal_private_key:
            raise ValidationError("PORTAL_PRIVATE_KEY is required")
        return bytes.fromhex(self.portal_private_key)
