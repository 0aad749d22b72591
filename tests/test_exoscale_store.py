"""Tests for the Exoscale SKS store."""

import asyncio
import logging

import pytest
import yaml

from exoscale_store.shared.config import KubeconfigStore
from exoscale_store.shared.exoscale_api import ExoscaleAPIError, SKSClusterSummary
from exoscale_store.shared.kubeconfig import KubeconfigFormatError
from exoscale_store.shared.stores import (
    ClusterNotFound,
    ConfigurationError,
    CredentialGenerationFailed,
    DecodeFailed,
    MalformedPath,
    ParseFailed,
    ProviderUnavailable,
    SerializeFailed,
)
from exoscale_store.shared.stores import exoscale as exoscale_module
from exoscale_store.shared.stores.exoscale import (
    KUBECONFIG_TTL_SECONDS,
    ExoscaleStore,
    split_path,
)

from conftest import RAW_KUBECONFIG, FakeExoscaleAPI, encode


async def _collect(store):
    return [result async for result in store.discover()]


@pytest.mark.asyncio
async def test_discover_reports_every_cluster(store):
    results = await _collect(store)

    assert [r.error for r in results] == [None, None, None]
    assert [r.kubeconfig_path for r in results] == [
        "ch-gva-2/mycluster",
        "ch-gva-2/staging",
        "de-fra-1/mycluster",
    ]
    assert len(store.discovered_clusters) == 3
    cluster = store.discovered_clusters.get("ghi-789")
    assert cluster.zone_name == "de-fra-1"
    assert cluster.zone_endpoint == "https://api-de-fra-1.exoscale.com/v2"


@pytest.mark.asyncio
async def test_zone_listing_failure_yields_single_error():
    store = ExoscaleStore(
        KubeconfigStore(kind="exoscale"),
        FakeExoscaleAPI(zone_error=ExoscaleAPIError("unauthorized", status=401)),
    )

    results = await _collect(store)

    assert len(results) == 1
    assert isinstance(results[0].error, ProviderUnavailable)
    assert "failed to list zones" in str(results[0].error)
    assert isinstance(results[0].error.__cause__, ExoscaleAPIError)
    assert results[0].kubeconfig_path == ""
    assert len(store.discovered_clusters) == 0


@pytest.mark.asyncio
async def test_no_zones_is_not_an_error():
    store = ExoscaleStore(KubeconfigStore(kind="exoscale"), FakeExoscaleAPI({}))
    assert await _collect(store) == []


@pytest.mark.asyncio
async def test_failing_zone_is_logged_and_skipped(caplog):
    api = FakeExoscaleAPI(
        {
            "ch-gva-2": [SKSClusterSummary(id="a", name="one")],
            "de-fra-1": [SKSClusterSummary(id="b", name="two")],
            "at-vie-1": [SKSClusterSummary(id="c", name="three")],
        },
        failing_zones=["de-fra-1"],
    )
    store = ExoscaleStore(KubeconfigStore(kind="exoscale"), api)

    with caplog.at_level(logging.WARNING, logger="exoscale_store"):
        results = await _collect(store)

    assert [r.kubeconfig_path for r in results] == ["ch-gva-2/one", "at-vie-1/three"]
    assert all(r.error is None for r in results)
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "de-fra-1" in warnings[0].getMessage()
    assert store.discovered_clusters.get("b") is None


@pytest.mark.asyncio
async def test_discover_twice_is_idempotent(store):
    first = {r.kubeconfig_path for r in await _collect(store)}
    snapshot = sorted(store.discovered_clusters.clusters(), key=lambda c: c.id)

    second = {r.kubeconfig_path for r in await _collect(store)}

    assert first == second
    assert sorted(store.discovered_clusters.clusters(), key=lambda c: c.id) == snapshot


@pytest.mark.asyncio
async def test_start_search_publishes_to_queue(store):
    queue = asyncio.Queue(maxsize=1)
    received = []

    async def consumer():
        while len(received) < 3:
            received.append(await queue.get())

    await asyncio.wait_for(
        asyncio.gather(store.start_search(queue), consumer()), timeout=1
    )
    assert [r.kubeconfig_path for r in received] == [
        "ch-gva-2/mycluster",
        "ch-gva-2/staging",
        "de-fra-1/mycluster",
    ]


@pytest.mark.asyncio
async def test_kubeconfig_is_renamed_to_cluster_name(store, fake_api):
    await _collect(store)

    data = await store.get_kubeconfig_for_path("ch-gva-2/mycluster")

    config = yaml.safe_load(data)
    assert [c["name"] for c in config["clusters"]] == ["mycluster"]
    assert config["clusters"][0]["cluster"]["server"] == (
        "https://abc-123.sks-ch-gva-2.exo.io:443"
    )
    assert config["contexts"] == [
        {"name": "mycluster", "context": {"cluster": "mycluster", "user": "default"}}
    ]
    assert config["current-context"] == "mycluster"
    assert config["users"] == yaml.safe_load(RAW_KUBECONFIG)["users"]

    assert fake_api.kubeconfig_requests == [
        {
            "endpoint": "https://api-ch-gva-2.exoscale.com/v2",
            "cluster_id": "abc-123",
            "groups": ["system:masters"],
            "user": "default",
            "ttl": KUBECONFIG_TTL_SECONDS,
        }
    ]


@pytest.mark.asyncio
async def test_each_request_fetches_a_fresh_kubeconfig(store, fake_api):
    await _collect(store)
    await store.get_kubeconfig_for_path("ch-gva-2/mycluster")
    await store.get_kubeconfig_for_path("ch-gva-2/mycluster")
    assert len(fake_api.kubeconfig_requests) == 2


@pytest.mark.asyncio
async def test_same_name_in_other_zone_resolves_to_its_own_cluster(store, fake_api):
    await _collect(store)
    with pytest.raises(CredentialGenerationFailed):
        await store.get_kubeconfig_for_path("de-fra-1/mycluster")
    assert fake_api.kubeconfig_requests[-1]["cluster_id"] == "ghi-789"


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["onlyonesegment", "/mycluster", "ch-gva-2/", "a/b/c"])
async def test_malformed_path(store, path):
    await _collect(store)
    with pytest.raises(MalformedPath) as excinfo:
        await store.get_kubeconfig_for_path(path)
    assert repr(path) in str(excinfo.value)


@pytest.mark.asyncio
async def test_unknown_cluster(store):
    await _collect(store)
    with pytest.raises(ClusterNotFound) as excinfo:
        await store.get_kubeconfig_for_path("ch-gva-2/doesnotexist")
    assert "ch-gva-2/doesnotexist" in str(excinfo.value)


@pytest.mark.asyncio
async def test_lookup_before_discovery_is_not_found(store):
    with pytest.raises(ClusterNotFound):
        await store.get_kubeconfig_for_path("ch-gva-2/mycluster")


@pytest.mark.asyncio
async def test_provider_failure_wraps_cause(store):
    await _collect(store)
    with pytest.raises(CredentialGenerationFailed) as excinfo:
        await store.get_kubeconfig_for_path("ch-gva-2/staging")
    assert isinstance(excinfo.value.__cause__, ExoscaleAPIError)
    assert excinfo.value.path == "ch-gva-2/staging"


@pytest.mark.asyncio
async def test_invalid_base64_is_decode_failure(store, fake_api):
    fake_api.kubeconfigs["abc-123"] = "not base64!!"
    await _collect(store)
    with pytest.raises(DecodeFailed):
        await store.get_kubeconfig_for_path("ch-gva-2/mycluster")


@pytest.mark.asyncio
async def test_line_wrapped_base64_is_accepted(store, fake_api):
    payload = encode(RAW_KUBECONFIG)
    fake_api.kubeconfigs["abc-123"] = "\r\n".join(
        payload[i : i + 76] for i in range(0, len(payload), 76)
    ) + "\n"
    await _collect(store)

    data = await store.get_kubeconfig_for_path("ch-gva-2/mycluster")

    assert yaml.safe_load(data)["current-context"] == "mycluster"


@pytest.mark.asyncio
async def test_unparseable_kubeconfig_is_parse_failure(store, fake_api):
    fake_api.kubeconfigs["abc-123"] = encode("- just\n- a list\n")
    await _collect(store)
    with pytest.raises(ParseFailed):
        await store.get_kubeconfig_for_path("ch-gva-2/mycluster")


@pytest.mark.asyncio
async def test_kubeconfig_with_two_clusters_is_rejected(store, fake_api):
    doc = yaml.safe_load(RAW_KUBECONFIG)
    doc["clusters"].append({"name": "other", "cluster": {"server": "https://x"}})
    fake_api.kubeconfigs["abc-123"] = encode(yaml.safe_dump(doc))
    await _collect(store)
    with pytest.raises(ParseFailed) as excinfo:
        await store.get_kubeconfig_for_path("ch-gva-2/mycluster")
    assert "exactly one cluster" in str(excinfo.value)


def test_split_path():
    assert split_path("ch-gva-2/mycluster") == ("ch-gva-2", "mycluster")


def test_store_identity():
    api = FakeExoscaleAPI()
    assert ExoscaleStore(KubeconfigStore(kind="exoscale"), api).get_id() == "exoscale.default"

    named = ExoscaleStore(KubeconfigStore(kind="exoscale", id="prod"), api)
    assert named.get_id() == "exoscale.prod"
    assert named.get_context_prefix("ch-gva-2/x") == "prod"

    default = ExoscaleStore(KubeconfigStore(kind="exoscale"), api)
    assert default.get_context_prefix("ch-gva-2/x") == "exoscale"

    hidden = ExoscaleStore(KubeconfigStore(kind="exoscale", id="prod", show_prefix=False), api)
    assert hidden.get_context_prefix("ch-gva-2/x") == ""
    assert hidden.verify_kubeconfig_paths() is None


def test_from_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("EXOSCALE_API_KEY", raising=False)
    monkeypatch.delenv("EXOSCALE_API_SECRET", raising=False)
    with pytest.raises(ConfigurationError, match="API key"):
        ExoscaleStore.from_config(
            KubeconfigStore(kind="exoscale", config={"exoscaleSecretKey": "s"})
        )


def test_from_config_requires_secret_key(monkeypatch):
    monkeypatch.delenv("EXOSCALE_API_KEY", raising=False)
    monkeypatch.delenv("EXOSCALE_API_SECRET", raising=False)
    with pytest.raises(ConfigurationError, match="secret key"):
        ExoscaleStore.from_config(
            KubeconfigStore(kind="exoscale", config={"exoscaleAPIKey": "EXOkey"})
        )


def test_from_config_builds_store():
    store = ExoscaleStore.from_config(
        KubeconfigStore(
            kind="exoscale",
            id="prod",
            config={"exoscaleAPIKey": "EXOkey", "exoscaleSecretKey": "secret"},
        )
    )
    assert store.get_id() == "exoscale.prod"
    assert store.get_store_config().id == "prod"
    assert len(store.discovered_clusters) == 0


@pytest.mark.asyncio
async def test_serialize_error_is_reported(store, monkeypatch):
    def broken(document):
        raise KubeconfigFormatError("cannot serialize")

    monkeypatch.setattr(exoscale_module, "serialize_document", broken)
    await _collect(store)
    with pytest.raises(SerializeFailed):
        await store.get_kubeconfig_for_path("ch-gva-2/mycluster")
