"""Shared store errors."""

from __future__ import annotations

from typing import Optional


class StoreError(RuntimeError):
    """Base class for every error raised by a kubeconfig store."""


class StoreNotFoundError(StoreError):
    """Raised when the desired store kind is not registered."""


class ConfigurationError(StoreError):
    """Raised when a store cannot be built from its configuration."""


class ProviderUnavailable(StoreError):
    """Raised when the account-wide zone listing fails."""


class ZonePartialFailure(StoreError):
    """Raised when listing clusters of a single zone fails."""

    def __init__(self, zone: str, cause: Exception) -> None:
        super().__init__(f"failed to list SKS clusters for zone {zone}: {cause}")
        self.zone = zone
        self.cause = cause


class PathError(StoreError):
    """Base class for errors tied to one kubeconfig path."""

    message = "kubeconfig path error"

    def __init__(self, path: str, cause: Optional[Exception] = None) -> None:
        detail = f"{self.message} for {path!r}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
        self.path = path
        self.cause = cause


class MalformedPath(PathError):
    message = "invalid cluster path (expected 'zoneName/clusterName')"


class ClusterNotFound(PathError):
    message = "no cluster found"


class CredentialGenerationFailed(PathError):
    message = "failed to generate kubeconfig"


class DecodeFailed(PathError):
    message = "failed to decode base64 kubeconfig"


class ParseFailed(PathError):
    message = "failed to parse kubeconfig"


class SerializeFailed(PathError):
    message = "failed to marshal updated kubeconfig"
