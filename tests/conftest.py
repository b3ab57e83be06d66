"""Shared test fixtures for webpub."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

import pytest

from webpub.bridge.storage import LocalObjectStore
from webpub.config import PublishConfig
from webpub.core.hasher import blake3_digest, iter_chunks
from webpub.errors import UploadError
from webpub.models.cid import CIDType, ContentIdentifier

# Standard BIP-39 test mnemonic (valid checksum).
TEST_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])
TEST_PORTAL_KEY = "ab" * 32


# ---------------------------------------------------------------------------
# Fake storage backends
# ---------------------------------------------------------------------------


class RecordingBackend:
    """In-memory backend that records uploads and peak concurrency.

    Parameters
    ----------
    delay:
        Seconds each upload sleeps while "in flight".
    fail_on:
        File basenames whose upload raises ``UploadError``.
    """

    def __init__(self, delay: float = 0.0, fail_on: set[str] | None = None) -> None:
        self.delay = delay
        self.fail_on = fail_on or set()
        self.uploads: list[tuple[str | None, bytes]] = []
        self.logins = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    def login(self) -> None:
        self.logins += 1

    def upload_object(
        self, source: bytes | BinaryIO, size: int | None = None
    ) -> ContentIdentifier:
        with self._lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if isinstance(source, bytes):
                name, data = None, source
            else:
                name = Path(source.name).name
                data = b"".join(iter_chunks(source))
            if name in self.fail_on:
                raise UploadError("portal rejected upload: HTTP 500")
            with self._lock:
                self.uploads.append((name, data))
            return ContentIdentifier(
                cid_type=CIDType.RAW, digest=blake3_digest(data), size=len(data)
            )
        finally:
            with self._lock:
                self.in_flight -= 1

    @property
    def manifest_uploads(self) -> list[bytes]:
        """Payloads uploaded as raw bytes rather than file handles."""
        return [data for name, data in self.uploads if name is None]


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def make_backend() -> Callable[..., RecordingBackend]:
    """Factory fixture: build a RecordingBackend with custom behavior."""
    return RecordingBackend


@pytest.fixture
def object_store(tmp_path: Path) -> LocalObjectStore:
    """Provide a fresh LocalObjectStore in a temp directory."""
    return LocalObjectStore(tmp_path / "objects")


# ---------------------------------------------------------------------------
# Directory trees
# ---------------------------------------------------------------------------


def write_tree(root: Path, files: dict[str, bytes]) -> Path:
    """Create *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """index.html (12 bytes) and css/a.css (5 bytes)."""
    return write_tree(
        tmp_path / "site",
        {"index.html": b"<h1>Hi</h1>\n", "css/a.css": b"a{}\n\n"},
    )


@pytest.fixture
def publish_config(site_dir: Path, tmp_path: Path, clean_env) -> PublishConfig:
    """A valid config for *site_dir* with no registry seed."""
    return PublishConfig(
        portal_private_key=TEST_PORTAL_KEY,
        dir=site_dir,
        object_store_path=tmp_path / "objects",
        peer_timeout_seconds=1.0,
    )


@pytest.fixture
def make_tree() -> Callable[[Path, dict[str, bytes]], Path]:
    """Factory fixture: write a tree of files and return its root."""
    return write_tree


@pytest.fixture
def mnemonic() -> str:
    """A valid 12-word BIP-39 mnemonic."""
    return TEST_MNEMONIC


@pytest.fixture
def portal_key() -> str:
    """A syntactically valid PORTAL_PRIVATE_KEY."""
    return TEST_PORTAL_KEY


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Unset every webpub variable and run from an empty directory (no .env)."""
    for name in (
        "PORTAL_PRIVATE_KEY",
        "DIR",
        "PARALLEL_UPLOADS",
        "APP_SEED",
        "PORTAL_URL",
        "OBJECT_STORE_PATH",
        "BOOTSTRAP_PEERS",
        "PEER_TIMEOUT_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return monkeypatch
