"""Single-file upload: open, measure, stream to the backend."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from webpub.bridge.storage import StorageBackend
from webpub.core.walker import relative_key
from webpub.errors import FilesystemError, PublishError, UploadError
from webpub.models.manifest import UploadedFile

logger = logging.getLogger(__name__)


class FileUploader:
    """Uploads files under a publish root through a storage backend.

    The file handle is passed straight to the backend, which reads it in
    chunks; the file is never loaded into memory whole.

    Parameters
    ----------
    backend:
        Storage backend to upload through.
    root:
        Absolute publish root; stripped from paths to form manifest keys.
    """

    def __init__(self, backend: StorageBackend, root: Path) -> None:
        self._backend = backend
        self._root = root

    def upload(self, path: Path) -> UploadedFile:
        """Upload one file and return its record.

        Raises
        ------
        FilesystemError
            If the file cannot be opened or measured.
        UploadError
            If the backend fails; the backend's message is kept verbatim.
        """
        relative_path = relative_key(self._root, path)
        try:
            fh = path.open("rb")
        except OSError as exc:
            raise FilesystemError(f"Cannot open {path}: {exc}") from exc

        with fh:
            try:
                size = os.fstat(fh.fileno()).st_size
            except OSError as exc:
                raise FilesystemError(f"Cannot stat {path}: {exc}") from exc

            logger.debug("Uploading %s (%d bytes)", relative_path, size)
            try:
                cid = self._backend.upload_object(fh, size)
            except UploadError as exc:
                if exc.path is None:
                    exc.path = relative_path
                raise
            except PublishError:
                raise
            except Exception as exc:
                raise UploadError(str(exc), relative_path) from exc

        logger.debug("Uploaded %s -> %s", relative_path, cid)
        return UploadedFile(cid=cid, relative_path=relative_path, size=size)
