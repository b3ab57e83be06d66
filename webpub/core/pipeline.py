"""Publish orchestrator — the end-to-end run.

Walker -> bounded uploads -> join -> manifest build -> manifest upload
-> optional registry publish.  Each step's error aborts the run; nothing
partial is reported.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from webpub.bridge.crypto_bridge import derive_signing_key
from webpub.bridge.node import MemoryNode, PeerNode
from webpub.bridge.storage import LocalObjectStore, PortalClient, StorageBackend
from webpub.config import PublishConfig
from webpub.core.manifest_builder import build_manifest
from webpub.core.manifest_publisher import publish_manifest
from webpub.core.registry_publisher import RegistryPublisher
from webpub.core.scheduler import UploadScheduler
from webpub.core.uploader import FileUploader
from webpub.core.walker import list_files, resolve_root
from webpub.errors import ValidationError
from webpub.models.cid import ContentIdentifier
from webpub.models.manifest import UploadedFile, WebAppMetadata

logger = logging.getLogger(__name__)


class PublishResult(BaseModel):
    """Outcome of a successful run."""

    model_config = ConfigDict(frozen=True)

    manifest_cid: ContentIdentifier
    resolver_cid: ContentIdentifier | None = None
    manifest: WebAppMetadata
    files: list[UploadedFile]
    registry_revision: int | None = None


def make_backend(config: PublishConfig) -> StorageBackend:
    """HTTP portal when ``PORTAL_URL`` is set, local object store otherwise."""
    if config.portal_url:
        return PortalClient(config.portal_url, config.portal_key_bytes)
    return LocalObjectStore(config.object_store_path)


class Publisher:
    """Publishes one directory as a web app.

    Parameters
    ----------
    config:
        Run configuration; checked with ``validate_for_publish`` first.
    backend:
        Storage backend.  Built from *config* if not provided.
    node_factory:
        Builds the peer node for the registry step.  Defaults to a
        ``MemoryNode`` on the configured bootstrap peers.
    """

    def __init__(
        self,
        config: PublishConfig,
        *,
        backend: StorageBackend | None = None,
        node_factory: Callable[[], PeerNode] | None = None,
    ) -> None:
        config.validate_for_publish()
        self.config = config
        self.backend = backend or make_backend(config)
        self._node_factory = node_factory or (
            lambda: MemoryNode(self.config.bootstrap_peers)
        )
        self.scheduler: UploadScheduler | None = None
        self.registry: RegistryPublisher | None = None

    async def publish(self) -> PublishResult:
        """Run every step; raises the first ``PublishError`` encountered."""
        # Bad seeds fail before any upload happens.
        signing_key = derive_signing_key(self.config.app_seed)

        if self.config.dir is None:
            raise ValidationError("DIR is required")
        root = resolve_root(self.config.dir)
        files = list_files(root)

        await asyncio.to_thread(self.backend.login)

        uploader = FileUploader(self.backend, root)
        self.scheduler = UploadScheduler(uploader.upload, self.config.parallel_uploads)
        uploaded = await self.scheduler.run(files)

        manifest = build_manifest(uploaded)
        manifest_cid = await asyncio.to_thread(publish_manifest, self.backend, manifest)

        self.registry = RegistryPublisher(
            self._node_factory,
            signing_key,
            peer_timeout=self.config.peer_timeout_seconds,
        )
        resolver_cid = await self.registry.publish(manifest_cid)

        return PublishResult(
            manifest_cid=manifest_cid,
            resolver_cid=resolver_cid,
            manifest=manifest,
            files=sorted(uploaded, key=lambda f: f.relative_path),
            registry_revision=self.registry.revision,
        )

    def run(self) -> PublishResult:
        """Blocking entry point for synchronous callers."""
        return asyncio.run(self.publish())
