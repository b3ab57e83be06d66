"""Registry publish step: point a key-addressed slot at the manifest.

State machine::

    NO_KEY -> SKIPPED
    HAVE_KEY -> START_NODE -> WAIT_FOR_PEER -> READ_REVISION
             -> SIGN_ENTRY -> PUBLISH_ENTRY -> STOP_NODE -> DONE

``STOP_NODE`` always runs once the node was created, whether or not the
steps before it succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

import nacl.signing

from webpub.bridge.crypto_bridge import key_fingerprint
from webpub.bridge.node import PeerNode
from webpub.errors import PublishError, RegistryError
from webpub.models.cid import ContentIdentifier
from webpub.models.registry import pointer_data

logger = logging.getLogger(__name__)


class RegistryState(str, Enum):
    """Steps of the registry publish sequence."""

    NO_KEY = "no_key"
    SKIPPED = "skipped"
    HAVE_KEY = "have_key"
    START_NODE = "start_node"
    WAIT_FOR_PEER = "wait_for_peer"
    READ_REVISION = "read_revision"
    SIGN_ENTRY = "sign_entry"
    PUBLISH_ENTRY = "publish_entry"
    STOP_NODE = "stop_node"
    DONE = "done"
    FAILED = "failed"


class RegistryPublisher:
    """Publishes a signed registry entry for the manifest CID.

    Parameters
    ----------
    node_factory:
        Builds a fresh, unstarted ``PeerNode`` for each publish.
    signing_key:
        Registry key, or ``None`` to skip the step entirely.
    peer_timeout:
        Seconds to wait for the first peer connection.
    """

    def __init__(
        self,
        node_factory: Callable[[], PeerNode],
        signing_key: nacl.signing.SigningKey | None,
        *,
        peer_timeout: float = 30.0,
    ) -> None:
        self._node_factory = node_factory
        self._signing_key = signing_key
        self._peer_timeout = peer_timeout
        self.history: list[RegistryState] = []
        self.revision: int | None = None

    @property
    def state(self) -> RegistryState | None:
        return self.history[-1] if self.history else None

    def _enter(self, state: RegistryState) -> None:
        self.history.append(state)
        logger.debug("Registry step: %s", state.value)

    async def publish(self, manifest_cid: ContentIdentifier) -> ContentIdentifier | None:
        """Run the sequence; return the resolver CID, or ``None`` if skipped.

        Raises
        ------
        RegistryError
            On peer timeout, signing failure, or publish failure.
        """
        if self._signing_key is None:
            self._enter(RegistryState.NO_KEY)
            self._enter(RegistryState.SKIPPED)
            logger.info("No APP_SEED configured; skipping registry publish")
            return None

        self._enter(RegistryState.HAVE_KEY)
        public_key = bytes(self._signing_key.verify_key)
        node = self._node_factory()
        try:
            self._enter(RegistryState.START_NODE)
            await node.start()

            self._enter(RegistryState.WAIT_FOR_PEER)
            try:
                await asyncio.wait_for(node.wait_for_peer(), timeout=self._peer_timeout)
            except asyncio.TimeoutError:
                raise RegistryError("no peers reachable") from None

            if node.services is None:
                raise RegistryError("node started without a registry service")
            registry = node.services.registry

            self._enter(RegistryState.READ_REVISION)
            current = await registry.get(public_key)
            revision = 0 if current is None else current.revision + 1

            self._enter(RegistryState.SIGN_ENTRY)
            entry = await registry.sign_registry_entry(
                self._signing_key, pointer_data(manifest_cid), revision
            )

            self._enter(RegistryState.PUBLISH_ENTRY)
            await registry.set(entry)
            self.revision = revision
        except PublishError:
            self._enter(RegistryState.FAILED)
            raise
        except Exception as exc:
            self._enter(RegistryState.FAILED)
            raise RegistryError(str(exc)) from exc
        finally:
            self._enter(RegistryState.STOP_NODE)
            try:
                await node.stop()
            except Exception:
                # A shutdown failure never replaces the step's own result.
                logger.warning("Node did not stop cleanly", exc_info=True)

        self._enter(RegistryState.DONE)
        logger.info(
            "Registry slot %s set to revision %d",
            key_fingerprint(public_key),
            self.revision,
        )
        return ContentIdentifier.from_registry_public_key(public_key)
