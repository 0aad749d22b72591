"""Registry for kubeconfig store factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional

from exoscale_store.shared.stores.base import Store, StoreKind
from exoscale_store.shared.stores.errors import StoreNotFoundError

if TYPE_CHECKING:
    from exoscale_store.shared.config import KubeconfigStore

StoreFactory = Callable[["KubeconfigStore"], Store]


@dataclass
class StoreEntry:
    factory: StoreFactory


class StoreRegistry:
    """Singleton registry for store factories."""

    def __init__(self):
        self._stores: Dict[StoreKind, StoreEntry] = {}

    def register(self, kind: StoreKind, factory: StoreFactory) -> None:
        self._stores[kind] = StoreEntry(factory=factory)

    def get(self, kind: StoreKind) -> Optional[StoreFactory]:
        entry = self._stores.get(kind)
        return entry.factory if entry else None

    def available_kinds(self) -> Iterable[StoreKind]:
        return self._stores.keys()

    def has_kind(self, kind: StoreKind) -> bool:
        return kind in self._stores

    def create_store(self, config: "KubeconfigStore") -> Store:
        """Build the store configured by ``config``."""

        try:
            kind = StoreKind(config.kind)
        except ValueError as exc:
            raise StoreNotFoundError(f"unknown kubeconfig store kind {config.kind!r}") from exc

        factory = self.get(kind)
        if factory is None:
            raise StoreNotFoundError(f"no kubeconfig store registered for kind {kind.value!r}")
        return factory(config)


_REGISTRY: Optional[StoreRegistry] = None


def get_store_registry() -> StoreRegistry:
    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = StoreRegistry()
    return _REGISTRY


def ensure_default_stores() -> StoreRegistry:
    """Register built-in stores if none are registered yet."""

    registry = get_store_registry()
    if not any(True for _ in registry.available_kinds()):
        from exoscale_store.shared.stores.exoscale import ExoscaleStore

        registry.register(StoreKind.EXOSCALE, ExoscaleStore.from_config)

    return registry
