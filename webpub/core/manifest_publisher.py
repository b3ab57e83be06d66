"""Upload the serialized manifest and re-tag its CID as web app metadata."""

from __future__ import annotations

import logging

from webpub.bridge.storage import StorageBackend
from webpub.core.manifest_builder import serialize_manifest
from webpub.errors import PublishError, UploadError
from webpub.models.cid import CIDType, ContentIdentifier
from webpub.models.manifest import WebAppMetadata

logger = logging.getLogger(__name__)


def publish_manifest(
    backend: StorageBackend, metadata: WebAppMetadata
) -> ContentIdentifier:
    """Upload *metadata* as one object; return its web app metadata CID.

    The backend returns a generic CID for the bytes.  The returned CID has
    the same digest and size, tagged ``METADATA_WEBAPP``.
    """
    payload = serialize_manifest(metadata)
    try:
        cid = backend.upload_object(payload, len(payload))
    except PublishError:
        raise
    except Exception as exc:
        raise UploadError(f"manifest upload failed: {exc}") from exc

    manifest_cid = cid.retag(CIDType.METADATA_WEBAPP)
    logger.info(
        "Published manifest with %d path(s), %d bytes: %s",
        len(metadata.paths),
        len(payload),
        manifest_cid,
    )
    return manifest_cid
