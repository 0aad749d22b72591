"""Store interfaces shared across CLI and host integrations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator, Dict, Optional, Protocol

if TYPE_CHECKING:
    from exoscale_store.shared.config import KubeconfigStore


class StoreKind(str, Enum):
    """Supported kubeconfig store kinds."""

    EXOSCALE = "exoscale"


@dataclass
class SearchResult:
    """One discovered kubeconfig path, or the error that ended a search."""

    kubeconfig_path: str = ""
    error: Optional[Exception] = None


class Store(Protocol):
    """Abstraction for kubeconfig discovery and retrieval."""

    def get_id(self) -> str:
        """Stable identifier of this store instance."""

    def get_kind(self) -> StoreKind:
        """Kind of the store."""

    def get_context_prefix(self, path: str) -> str:
        """Prefix shown in front of contexts found at ``path``."""

    def get_store_config(self) -> "KubeconfigStore":
        """Configuration the store was built from."""

    def get_logger(self) -> logging.LoggerAdapter:
        """Logger tagged with the store kind."""

    def discover(self) -> AsyncIterator[SearchResult]:
        """Yield every kubeconfig path the store can serve."""

    async def get_kubeconfig_for_path(
        self, path: str, tags: Optional[Dict[str, str]] = None
    ) -> bytes:
        """Return the kubeconfig bytes for a discovered path."""

    def verify_kubeconfig_paths(self) -> None:
        """Validate configured paths, raising on error."""
