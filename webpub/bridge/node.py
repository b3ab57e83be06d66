"""Peer-to-peer node bridge — registry reads, signing and publishing.

Bridge boundary
---------------
The registry step depends only on the ``PeerNode`` protocol: a node that
can be started and stopped, signals its first peer connection once, and
exposes a ``registry`` service.

``MemoryNode`` is the in-process implementation.  Its key/value store is
a plain mapping of public key to msgpack-encoded entry, process-local and
discarded at exit unless the caller passes in a mapping it keeps.  Each
bootstrap address counts as one connected peer once the node starts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import MutableMapping
from typing import Protocol, runtime_checkable

import msgpack
import nacl.signing

from webpub.bridge.crypto_bridge import key_fingerprint, sign_data, verify_data
from webpub.errors import RegistryError
from webpub.models.registry import RegistryEntry, signing_message

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class RegistryService(Protocol):
    """Protocol for the registry service of a peer node."""

    async def get(self, public_key: bytes) -> RegistryEntry | None:
        """Return the current entry for *public_key*, or ``None``."""
        ...

    async def sign_registry_entry(
        self,
        signing_key: nacl.signing.SigningKey,
        data: bytes,
        revision: int,
    ) -> RegistryEntry:
        """Build and sign an entry; does not publish it."""
        ...

    async def set(self, entry: RegistryEntry) -> None:
        """Publish a signed entry."""
        ...


class NodeServices:
    """Services a node exposes once started."""

    def __init__(self, registry: RegistryService) -> None:
        self.registry = registry


@runtime_checkable
class PeerNode(Protocol):
    """Protocol for a peer-to-peer node."""

    services: NodeServices | None

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def wait_for_peer(self) -> None:
        """Return once at least one peer connection has been made."""
        ...


# ---------------------------------------------------------------------------
# In-process implementation
# ---------------------------------------------------------------------------


def _pack_entry(entry: RegistryEntry) -> bytes:
    return msgpack.packb(
        [entry.public_key, entry.data, entry.revision, entry.signature],
        use_bin_type=True,
    )


def _unpack_entry(raw: bytes) -> RegistryEntry:
    public_key, data, revision, signature = msgpack.unpackb(raw, raw=False)
    return RegistryEntry(
        public_key=public_key, data=data, revision=revision, signature=signature
    )


class MemoryRegistry:
    """Registry service backed by an in-memory key/value store.

    ``set`` enforces what a real registry enforces: the signature must
    verify, and the revision must be strictly greater than the stored one.
    """

    def __init__(self, store: MutableMapping[bytes, bytes] | None = None) -> None:
        self._store: MutableMapping[bytes, bytes] = store if store is not None else {}

    async def get(self, public_key: bytes) -> RegistryEntry | None:
        raw = self._store.get(public_key)
        if raw is None:
            return None
        return _unpack_entry(raw)

    async def sign_registry_entry(
        self,
        signing_key: nacl.signing.SigningKey,
        data: bytes,
        revision: int,
    ) -> RegistryEntry:
        try:
            signature = sign_data(signing_message(data, revision), signing_key)
            return RegistryEntry(
                public_key=bytes(signing_key.verify_key),
                data=data,
                revision=revision,
                signature=signature,
            )
        except ValueError as exc:
            raise RegistryError(f"could not sign registry entry: {exc}") from exc

    async def set(self, entry: RegistryEntry) -> None:
        if not verify_data(entry.message, entry.signature, entry.public_key):
            raise RegistryError("registry entry signature does not verify")

        current = await self.get(entry.public_key)
        if current is not None and entry.revision <= current.revision:
            raise RegistryError(
                f"revision {entry.revision} is not newer than {current.revision}"
            )

        self._store[entry.public_key] = _pack_entry(entry)
        logger.debug(
            "Registry slot %s now at revision %d",
            key_fingerprint(entry.public_key),
            entry.revision,
        )


class MemoryNode:
    """In-process peer node.

    Parameters
    ----------
    bootstrap_peers:
        Addresses to connect to on start.  With an empty list the node
        never signals a peer connection.
    store:
        Key/value mapping for the registry.  A fresh dict when omitted.
    """

    def __init__(
        self,
        bootstrap_peers: list[str],
        store: MutableMapping[bytes, bytes] | None = None,
    ) -> None:
        self._bootstrap_peers = list(bootstrap_peers)
        self._store = store
        self._peers: set[str] = set()
        self._peer_connected: asyncio.Event | None = None
        self.services: NodeServices | None = None
        self.started = False

    @property
    def peers(self) -> frozenset[str]:
        return frozenset(self._peers)

    async def start(self) -> None:
        self._peer_connected = asyncio.Event()
        self.services = NodeServices(MemoryRegistry(self._store))
        self.started = True
        loop = asyncio.get_running_loop()
        for address in self._bootstrap_peers:
            loop.call_soon(self._on_peer_connected, address)
        logger.info("Node started with %d bootstrap peer(s)", len(self._bootstrap_peers))

    def _on_peer_connected(self, address: str) -> None:
        if not self.started or self._peer_connected is None:
            return
        self._peers.add(address)
        logger.debug("Connected to peer %s", address)
        self._peer_connected.set()

    async def wait_for_peer(self) -> None:
        if self._peer_connected is None:
            raise RegistryError("node is not started")
        await self._peer_connected.wait()

    async def stop(self) -> None:
        self._peers.clear()
        self.services = None
        self.started = False
        logger.info("Node stopped")
