"""Exoscale SKS kubeconfig store."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import AsyncIterator, Dict, Optional, Tuple

from exoscale_store.shared import debug
from exoscale_store.shared.config import ExoscaleStoreConfig, KubeconfigStore
from exoscale_store.shared.exoscale_api import ExoscaleAPI, ExoscaleClient
from exoscale_store.shared.kubeconfig import (
    KubeconfigFormatError,
    parse_document,
    rename_identity,
    serialize_document,
)
from exoscale_store.shared.stores.base import SearchResult, StoreKind
from exoscale_store.shared.stores.errors import (
    ClusterNotFound,
    ConfigurationError,
    CredentialGenerationFailed,
    DecodeFailed,
    MalformedPath,
    ParseFailed,
    ProviderUnavailable,
    SerializeFailed,
    ZonePartialFailure,
)
from exoscale_store.shared.stores.index import ClusterIndex, DiscoveredCluster

KUBECONFIG_GROUPS = ("system:masters",)
KUBECONFIG_USER = "default"
KUBECONFIG_TTL_SECONDS = 30 * 24 * 60 * 60


def split_path(path: str) -> Tuple[str, str]:
    """Split ``zoneName/clusterName`` into its two segments."""

    zone_name, sep, cluster_name = path.partition("/")
    if not sep or not zone_name or not cluster_name or "/" in cluster_name:
        raise MalformedPath(path)
    return zone_name, cluster_name


class ExoscaleStore:
    """Discovers SKS clusters in every zone and serves their kubeconfigs.

    Discovery fills :attr:`discovered_clusters`; kubeconfig retrieval only
    reads it, so a path is only resolvable after a search has reported it.
    """

    kind = StoreKind.EXOSCALE

    def __init__(
        self,
        store: KubeconfigStore,
        client: ExoscaleAPI,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> None:
        self.kubeconfig_store = store
        self.client = client
        self.logger = logger or logging.LoggerAdapter(
            debug.get_logger("store.exoscale"), {"store": self.kind.value}
        )
        self.discovered_clusters = ClusterIndex()

    @classmethod
    def from_config(cls, store: KubeconfigStore) -> "ExoscaleStore":
        """Build a store and its API client from a SwitchConfig entry."""

        if store.config is not None and not isinstance(store.config, dict):
            raise ConfigurationError("failed to process Exoscale store config")

        config = ExoscaleStoreConfig.from_dict(store.config)
        config.validate()

        client = ExoscaleClient(
            config.exoscale_api_key,
            config.exoscale_secret_key,
            api_url=config.api_url,
            timeout=config.request_timeout,
        )
        return cls(store, client)

    def get_id(self) -> str:
        store_id = self.kubeconfig_store.id or "default"
        return f"{self.kind.value}.{store_id}"

    def get_kind(self) -> StoreKind:
        return self.kind

    def get_context_prefix(self, path: str) -> str:
        store = self.get_store_config()
        if store.show_prefix is not None and not store.show_prefix:
            return ""
        if store.id is not None:
            return store.id
        return self.kind.value

    def get_store_config(self) -> KubeconfigStore:
        return self.kubeconfig_store

    def get_logger(self) -> logging.LoggerAdapter:
        return self.logger

    def verify_kubeconfig_paths(self) -> None:
        """Paths are discovered dynamically, there is nothing to verify."""

    async def discover(self) -> AsyncIterator[SearchResult]:
        """
        Query all zones and yield ``<zoneName>/<clusterName>`` per SKS cluster.

        A failing zone listing ends the search with a single error result.
        A zone whose cluster listing fails is logged and skipped.
        """

        self.logger.debug("Exoscale: start search")

        try:
            zones = await self.client.list_zones()
        except Exception as exc:
            error = ProviderUnavailable(f"failed to list zones: {exc}")
            error.__cause__ = exc
            yield SearchResult(error=error)
            return

        if not zones:
            self.logger.debug("No Exoscale zones found")
            return

        for zone in zones:
            try:
                clusters = await self.client.list_sks_clusters(zone.api_endpoint)
            except Exception as exc:
                # One broken zone must not hide the others.
                failure = ZonePartialFailure(zone.name, exc)
                self.logger.warning("%s", failure)
                continue

            if not clusters:
                self.logger.debug("No SKS clusters found in zone %s", zone.name)
                continue

            for cluster in clusters:
                discovered = DiscoveredCluster(
                    id=cluster.id,
                    name=cluster.name,
                    zone_name=zone.name,
                    zone_endpoint=zone.api_endpoint,
                )
                self.discovered_clusters.add(discovered)
                self.logger.debug(
                    "Discovered SKS cluster name: %s and id: %s in zone %s",
                    cluster.name,
                    cluster.id,
                    zone.name,
                )
                yield SearchResult(kubeconfig_path=discovered.path)

    async def start_search(self, channel: asyncio.Queue[SearchResult]) -> None:
        """Publish every search result onto ``channel``.

        ``put`` waits while the queue is full, so a bounded queue throttles
        discovery to the consumer's pace.
        """

        async for result in self.discover():
            await channel.put(result)

    async def get_kubeconfig_for_path(
        self, path: str, tags: Optional[Dict[str, str]] = None
    ) -> bytes:
        """
        Return the kubeconfig of a discovered cluster.

        The provider names the cluster, its context and the current-context
        after the cluster UUID; all three are renamed to the cluster name.

        Args:
            path: ``zoneName/clusterName`` as reported by :meth:`discover`
            tags: Unused, accepted for interface compatibility

        Returns:
            The kubeconfig as YAML bytes
        """

        zone_name, cluster_name = split_path(path)

        match = self.discovered_clusters.lookup(zone_name, cluster_name)
        if match is None:
            raise ClusterNotFound(path)

        try:
            encoded = await self.client.generate_sks_cluster_kubeconfig(
                match.zone_endpoint,
                match.id,
                groups=KUBECONFIG_GROUPS,
                user=KUBECONFIG_USER,
                ttl=KUBECONFIG_TTL_SECONDS,
            )
        except Exception as exc:
            raise CredentialGenerationFailed(path, exc) from exc

        try:
            raw_kubeconfig = base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError, TypeError, AttributeError) as exc:
            raise DecodeFailed(path, exc) from exc

        try:
            document = rename_identity(parse_document(raw_kubeconfig), cluster_name)
        except KubeconfigFormatError as exc:
            raise ParseFailed(path, exc) from exc

        try:
            return serialize_document(document)
        except KubeconfigFormatError as exc:
            raise SerializeFailed(path, exc) from exc
