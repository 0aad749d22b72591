"""Kubeconfig store abstraction."""

from .base import SearchResult, Store, StoreKind
from .errors import (
    ClusterNotFound,
    ConfigurationError,
    CredentialGenerationFailed,
    DecodeFailed,
    MalformedPath,
    ParseFailed,
    ProviderUnavailable,
    SerializeFailed,
    StoreError,
    StoreNotFoundError,
    ZonePartialFailure,
)
from .index import ClusterIndex, DiscoveredCluster
from .registry import ensure_default_stores, get_store_registry

__all__ = [
    "ClusterIndex",
    "ClusterNotFound",
    "ConfigurationError",
    "CredentialGenerationFailed",
    "DecodeFailed",
    "DiscoveredCluster",
    "MalformedPath",
    "ParseFailed",
    "ProviderUnavailable",
    "SearchResult",
    "SerializeFailed",
    "Store",
    "StoreError",
    "StoreKind",
    "StoreNotFoundError",
    "ZonePartialFailure",
    "ensure_default_stores",
    "get_store_registry",
]
