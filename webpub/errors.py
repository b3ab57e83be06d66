"""Error taxonomy for a publish run.

Every error is fatal at the point of first occurrence.  Nothing below the
CLI layer exits the process; errors propagate as exceptions and the CLI
turns them into exit code 1.
"""

from __future__ import annotations


class PublishError(RuntimeError):
    """Base class for all errors that abort a publish run."""


class FilesystemError(PublishError):
    """Raised when the publish directory or a file under it is unreadable."""


class UploadError(PublishError):
    """Raised when the storage backend rejects or fails an upload.

    Parameters
    ----------
    message:
        The backend's error, surfaced verbatim.
    path:
        Relative path of the file that failed, or ``None`` for the manifest.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        base = super().__str__()
        if self.path is None:
            return base
        return f"{self.path}: {base}"


class ValidationError(PublishError):
    """Raised for malformed inputs: keys, seeds, directories, CIDs."""


class RegistryError(PublishError):
    """Raised when the registry step fails: no peers, signing, or publish."""
