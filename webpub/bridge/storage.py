"""Storage bridge — uploads bytes or file streams, returns CIDs.

Bridge boundary
---------------
The publish pipeline depends only on the ``StorageBackend`` protocol.
Two implementations ship with the package:

1. **PortalClient** (``PORTAL_URL`` set): an authenticated HTTP session
   against a storage portal.  Uploads stream straight from the open file
   handle with a declared ``Content-Length``.

2. **LocalObjectStore** (default): a BLAKE3-keyed, immutable object store
   on local disk.  Layout: ``{base}/{hex[0:2]}/{hex[2:4]}/{hex}.dat``.
   Storing the same content twice is a no-op.

Backends are called from worker threads; both implementations are safe
for concurrent ``upload_object`` calls.
"""

from __future__ import annotations

import base64
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

import nacl.signing
import requests
from blake3 import blake3

from webpub.core.hasher import iter_chunks
from webpub.errors import FilesystemError, UploadError, ValidationError
from webpub.models.cid import CIDType, ContentIdentifier, HashType

logger = logging.getLogger(__name__)


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for content-addressed storage backends."""

    def login(self) -> None:
        """Establish whatever session the backend needs before uploading."""
        ...

    def upload_object(
        self, source: bytes | BinaryIO, size: int | None = None
    ) -> ContentIdentifier:
        """Upload *source* and return its CID.

        Parameters
        ----------
        source:
            Raw bytes, or a binary file handle that is read to EOF.
        size:
            Declared length in bytes.  A mismatch with the bytes actually
            read is an ``UploadError``.
        """
        ...


# ---------------------------------------------------------------------------
# Local object store
# ---------------------------------------------------------------------------


class LocalObjectStore:
    """BLAKE3 keyed, immutable object store on local disk.

    Parameters
    ----------
    base_path:
        Root directory for object storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot create object store {self._base}: {exc}") from exc

    def _object_path(self, hex_digest: str) -> Path:
        return self._base / hex_digest[:2] / hex_digest[2:4] / f"{hex_digest}.dat"

    def login(self) -> None:
        logger.debug("LocalObjectStore at %s needs no session.", self._base)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_object(
        self, source: bytes | BinaryIO, size: int | None = None
    ) -> ContentIdentifier:
        """Store *source* and return a raw-typed CID for it.

        File handles are copied to a temporary file in chunks while being
        hashed, then moved into place, so memory use is bounded by the
        chunk size regardless of the file size.
        """
        hasher = blake3()
        written = 0
        fd, tmp_name = tempfile.mkstemp(dir=self._base, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as tmp:
                chunks = [source] if isinstance(source, bytes) else iter_chunks(source)
                for chunk in chunks:
                    hasher.update(chunk)
                    tmp.write(chunk)
                    written += len(chunk)

            if size is not None and size != written:
                raise UploadError(
                    f"declared size {size} does not match {written} bytes read"
                )

            hex_digest = hasher.hexdigest()
            path = self._object_path(hex_digest)
            if path.exists():
                if not self.verify_digest(hex_digest):
                    raise UploadError(
                        f"Existing object at {hex_digest} failed integrity check"
                    )
            else:
                path.parent.mkdir(parents=True, exist_ok=True)
                os.replace(tmp_name, path)
        except OSError as exc:
            raise UploadError(f"local object store write failed: {exc}") from exc
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

        return ContentIdentifier(
            cid_type=CIDType.RAW,
            hash_type=HashType.BLAKE3,
            digest=hasher.digest(),
            size=written,
        )

    # ------------------------------------------------------------------
    # Retrieve and verify
    # ------------------------------------------------------------------

    def retrieve(self, cid: ContentIdentifier) -> bytes:
        """Return the bytes stored under *cid*'s digest."""
        path = self._object_path(cid.digest.hex())
        if not path.exists():
            raise FileNotFoundError(f"Object not found: {cid}")
        return path.read_bytes()

    def exists(self, cid: ContentIdentifier) -> bool:
        return self._object_path(cid.digest.hex()).exists()

    def verify_digest(self, hex_digest: str) -> bool:
        """Re-hash a stored object and compare against its address."""
        path = self._object_path(hex_digest)
        if not path.exists():
            return False
        hasher = blake3()
        with path.open("rb") as fh:
            for chunk in iter_chunks(fh):
                hasher.update(chunk)
        return hasher.hexdigest() == hex_digest


# ---------------------------------------------------------------------------
# HTTP portal
# ---------------------------------------------------------------------------


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


class PortalClient:
    """Authenticated upload session against a storage portal.

    Parameters
    ----------
    portal_url:
        Base URL of the portal, e.g. ``https://portal.example``.
    private_key:
        32-byte Ed25519 seed used to answer the login challenge.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        portal_url: str,
        private_key: bytes,
        *,
        timeout: float = 300.0,
        session: requests.Session | None = None,
    ) -> None:
        self._url = portal_url.rstrip("/")
        self._signing_key = nacl.signing.SigningKey(private_key)
        self._timeout = timeout
        self._session = session or requests.Session()
        self._logged_in = False

    @property
    def public_key(self) -> str:
        """Portal account key: Ed25519 marker byte + public key, base64url."""
        return _b64url(bytes([HashType.ED25519]) + bytes(self._signing_key.verify_key))

    def login(self) -> None:
        """Answer the portal's login challenge; the session keeps the cookie."""
        try:
            resp = self._session.get(
                f"{self._url}/s5/account/login",
                params={"pubKey": self.public_key},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            challenge = _b64url_decode(resp.json()["challenge"])
            signature = self._signing_key.sign(challenge).signature

            resp = self._session.post(
                f"{self._url}/s5/account/login",
                json={
                    "pubKey": self.public_key,
                    "response": _b64url(challenge),
                    "signature": _b64url(signature),
                },
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except (requests.RequestException, KeyError, ValueError) as exc:
            raise UploadError(f"portal login failed: {exc}") from exc

        self._logged_in = True
        logger.info("Logged in to portal %s", self._url)

    def upload_object(
        self, source: bytes | BinaryIO, size: int | None = None
    ) -> ContentIdentifier:
        """POST *source* to the portal and parse the returned CID.

        File handles are passed to ``requests`` as-is, which streams them
        and derives ``Content-Length`` from the file size.
        """
        if not self._logged_in:
            self.login()

        try:
            resp = self._session.post(
                f"{self._url}/s5/upload",
                data=source,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UploadError(str(exc)) from exc

        if not resp.ok:
            raise UploadError(f"HTTP {resp.status_code}: {resp.text.strip()}")

        try:
            cid = ContentIdentifier.decode(resp.json()["cid"])
        except (KeyError, ValueError, ValidationError) as exc:
            raise UploadError(f"portal returned no usable CID: {exc}") from exc

        if size is not None and cid.size is not None and cid.size != size:
            raise UploadError(
                f"declared size {size} does not match portal size {cid.size}"
            )
        return cid
