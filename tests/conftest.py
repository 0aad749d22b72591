"""Shared fixtures: an in-memory Exoscale API and sample kubeconfigs."""

import base64
from typing import Dict, List, Optional, Sequence

import pytest

from exoscale_store.shared.config import KubeconfigStore
from exoscale_store.shared.exoscale_api import ExoscaleAPIError, SKSClusterSummary, Zone
from exoscale_store.shared.stores.exoscale import ExoscaleStore

RAW_KUBECONFIG = """\
apiVersion: v1
kind: Config
clusters:
- name: abc-123
  cluster:
    certificate-authority-data: Q0EtREFUQQ==
    server: https://abc-123.sks-ch-gva-2.exo.io:443
contexts:
- name: abc-123
  context:
    cluster: abc-123
    user: default
current-context: abc-123
preferences: {}
users:
- name: default
  user:
    client-certificate-data: Q0VSVA==
    client-key-data: S0VZ
"""


def encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeExoscaleAPI:
    """Records calls and answers from canned data."""

    def __init__(
        self,
        clusters: Optional[Dict[str, List[SKSClusterSummary]]] = None,
        *,
        zone_error: Optional[Exception] = None,
        failing_zones: Sequence[str] = (),
        kubeconfigs: Optional[Dict[str, str]] = None,
    ) -> None:
        self.clusters = clusters or {}
        self.zone_error = zone_error
        self.failing_zones = set(failing_zones)
        self.kubeconfigs = kubeconfigs or {}
        self.kubeconfig_requests: List[dict] = []

    @staticmethod
    def endpoint(zone: str) -> str:
        return f"https://api-{zone}.exoscale.com/v2"

    async def list_zones(self) -> List[Zone]:
        if self.zone_error is not None:
            raise self.zone_error
        return [Zone(name=z, api_endpoint=self.endpoint(z)) for z in self.clusters]

    async def list_sks_clusters(self, endpoint: str) -> List[SKSClusterSummary]:
        zone = endpoint.split("api-", 1)[1].split(".", 1)[0]
        if zone in self.failing_zones:
            raise ExoscaleAPIError("forbidden", status=403)
        return list(self.clusters[zone])

    async def generate_sks_cluster_kubeconfig(
        self, endpoint, cluster_id, *, groups, user, ttl
    ) -> str:
        self.kubeconfig_requests.append(
            {
                "endpoint": endpoint,
                "cluster_id": cluster_id,
                "groups": list(groups),
                "user": user,
                "ttl": ttl,
            }
        )
        if cluster_id not in self.kubeconfigs:
            raise ExoscaleAPIError("cluster not found", status=404)
        return self.kubeconfigs[cluster_id]


@pytest.fixture
def fake_api():
    return FakeExoscaleAPI(
        {
            "ch-gva-2": [
                SKSClusterSummary(id="abc-123", name="mycluster"),
                SKSClusterSummary(id="def-456", name="staging"),
            ],
            "de-fra-1": [SKSClusterSummary(id="ghi-789", name="mycluster")],
            "at-vie-1": [],
        },
        kubeconfigs={"abc-123": encode(RAW_KUBECONFIG)},
    )


@pytest.fixture
def store(fake_api):
    return ExoscaleStore(KubeconfigStore(kind="exoscale"), fake_api)
