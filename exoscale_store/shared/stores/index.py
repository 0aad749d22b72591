"""Thread-safe index of discovered SKS clusters."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class DiscoveredCluster:
    """One SKS cluster found in one zone."""

    id: str
    name: str
    zone_name: str
    zone_endpoint: str

    @property
    def path(self) -> str:
        return f"{self.zone_name}/{self.name}"


class ClusterIndex:
    """Clusters keyed by id, with a ``(zone, name)`` lookup.

    Entries are only ever added or overwritten; a cluster deleted upstream
    stays until the process exits. The lock is held for a single operation.
    """

    def __init__(self) -> None:
        self._by_id: Dict[str, DiscoveredCluster] = {}
        self._by_path: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def add(self, cluster: DiscoveredCluster) -> None:
        with self._lock:
            previous = self._by_id.get(cluster.id)
            if previous is not None:
                key = (previous.zone_name, previous.name)
                if self._by_path.get(key) == cluster.id:
                    del self._by_path[key]
            self._by_id[cluster.id] = cluster
            # Same name twice in a zone: the later cluster wins.
            self._by_path[(cluster.zone_name, cluster.name)] = cluster.id

    def get(self, cluster_id: str) -> Optional[DiscoveredCluster]:
        with self._lock:
            return self._by_id.get(cluster_id)

    def lookup(self, zone_name: str, cluster_name: str) -> Optional[DiscoveredCluster]:
        with self._lock:
            cluster_id = self._by_path.get((zone_name, cluster_name))
            if cluster_id is None:
                return None
            return self._by_id.get(cluster_id)

    def clusters(self) -> List[DiscoveredCluster]:
        with self._lock:
            return list(self._by_id.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)
