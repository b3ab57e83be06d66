"""Bridges to external collaborators: storage, peer node, crypto."""

from webpub.bridge.crypto_bridge import derive_signing_key, sign_data, verify_data
from webpub.bridge.node import MemoryNode, PeerNode
from webpub.bridge.storage import LocalObjectStore, PortalClient, StorageBackend

__all__ = [
    "derive_signing_key",
    "sign_data",
    "verify_data",
    "MemoryNode",
    "PeerNode",
    "LocalObjectStore",
    "PortalClient",
    "StorageBackend",
]
