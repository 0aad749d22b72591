"""SwitchConfig loading and store configuration dataclasses."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from exoscale_store.shared.stores.errors import ConfigurationError

DEFAULT_API_URL = "https://api-ch-gva-2.exoscale.com/v2"
DEFAULT_REQUEST_TIMEOUT = 60.0

API_KEY_ENV = "EXOSCALE_API_KEY"
API_SECRET_ENV = "EXOSCALE_API_SECRET"
SWITCH_CONFIG_ENV = "KUBESWITCHCONFIG"


@dataclass
class KubeconfigStore:
    """One entry of ``kubeconfigStores`` in a SwitchConfig file."""

    kind: str
    id: Optional[str] = None
    show_prefix: Optional[bool] = None
    paths: List[str] = field(default_factory=list)
    config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KubeconfigStore":
        if not isinstance(data, dict):
            raise ConfigurationError("kubeconfig store entry must be a mapping")
        kind = data.get("kind")
        if not kind:
            raise ConfigurationError("kubeconfig store entry is missing 'kind'")
        config = data.get("config")
        if config is not None and not isinstance(config, dict):
            raise ConfigurationError(
                f"config of the {kind} kubeconfig store must be a mapping"
            )
        return cls(
            kind=str(kind),
            id=data.get("id"),
            show_prefix=data.get("showPrefix"),
            paths=list(data.get("paths") or []),
            config=config,
        )


@dataclass
class ExoscaleStoreConfig:
    """Provider-specific settings found under a store's ``config`` key."""

    exoscale_api_key: str = ""
    exoscale_secret_key: str = ""
    api_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExoscaleStoreConfig":
        data = data or {}
        try:
            timeout = float(data.get("requestTimeout", DEFAULT_REQUEST_TIMEOUT))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"failed to process Exoscale store config: invalid requestTimeout: {exc}"
            ) from exc
        return cls(
            exoscale_api_key=data.get("exoscaleAPIKey") or os.environ.get(API_KEY_ENV, ""),
            exoscale_secret_key=data.get("exoscaleSecretKey")
            or os.environ.get(API_SECRET_ENV, ""),
            api_url=data.get("apiURL") or DEFAULT_API_URL,
            request_timeout=timeout,
        )

    def validate(self) -> None:
        """Raise when one of the required secrets is missing."""

        if not self.exoscale_api_key:
            raise ConfigurationError(
                "when using the Exoscale kubeconfig store, the API key for Exoscale "
                "has to be provided via a SwitchConfig file"
            )
        if not self.exoscale_secret_key:
            raise ConfigurationError(
                "when using the Exoscale kubeconfig store, the secret key for Exoscale "
                "has to be provided via a SwitchConfig file"
            )


@dataclass
class SwitchConfig:
    kind: str = "SwitchConfig"
    version: str = "v1alpha1"
    kubeconfig_stores: List[KubeconfigStore] = field(default_factory=list)

    def stores_of_kind(self, kind: str) -> List[KubeconfigStore]:
        return [store for store in self.kubeconfig_stores if store.kind == kind]


def default_config_path() -> str:
    """Return $KUBESWITCHCONFIG or ~/.kube/switch-config.yaml."""

    path = os.environ.get(SWITCH_CONFIG_ENV)
    if path:
        return path
    return str(Path.home() / ".kube" / "switch-config.yaml")


def load_switch_config(path: Optional[str] = None) -> SwitchConfig:
    """
    Load a SwitchConfig file.

    Args:
        path: Path to the file (defaults to $KUBESWITCHCONFIG or
            ~/.kube/switch-config.yaml)

    Returns:
        The parsed SwitchConfig

    Raises:
        ConfigurationError: If the file is missing or malformed
    """

    path = path or default_config_path()
    if not os.path.exists(path):
        raise ConfigurationError(f"SwitchConfig file not found at: {path}")

    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"failed to parse SwitchConfig {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"SwitchConfig {path} must be a mapping")

    stores = [KubeconfigStore.from_dict(item) for item in raw.get("kubeconfigStores") or []]
    return SwitchConfig(
        kind=raw.get("kind", "SwitchConfig"),
        version=raw.get("version", "v1alpha1"),
        kubeconfig_stores=stores,
    )
