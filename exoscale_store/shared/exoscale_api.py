"""Minimal async client for the Exoscale v2 API.

Only the three calls the SKS store needs are implemented: zone listing,
SKS cluster listing and kubeconfig generation. Requests are signed with the
``EXO2-HMAC-SHA256`` scheme.
"""

from __future__ import annotations

import base64
import hmac
import json
import time
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import parse_qs, urlparse

import aiohttp

from exoscale_store.shared import debug
from exoscale_store.shared.config import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT

SIGNATURE_VALIDITY_SECONDS = 600


class ExoscaleAPIError(RuntimeError):
    """Raised when the Exoscale API cannot be reached or answers with an error."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message if status is None else f"HTTP {status}: {message}")
        self.status = status


@dataclass(frozen=True)
class Zone:
    name: str
    api_endpoint: str


@dataclass(frozen=True)
class SKSClusterSummary:
    id: str
    name: str


class ExoscaleAPI(Protocol):
    """Subset of the Exoscale API consumed by the SKS store."""

    async def list_zones(self) -> List[Zone]:
        """Return every zone visible to the account."""

    async def list_sks_clusters(self, endpoint: str) -> List[SKSClusterSummary]:
        """Return the SKS clusters of the zone served by ``endpoint``."""

    async def generate_sks_cluster_kubeconfig(
        self,
        endpoint: str,
        cluster_id: str,
        *,
        groups: Sequence[str],
        user: str,
        ttl: int,
    ) -> str:
        """Return a base64-encoded kubeconfig for the cluster."""


def sign_request(
    api_key: str,
    api_secret: str,
    method: str,
    url: str,
    body: bytes = b"",
    expires: Optional[int] = None,
) -> str:
    """Build the ``Authorization`` header value for one request."""

    if expires is None:
        expires = int(time.time()) + SIGNATURE_VALIDITY_SECONDS

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    signed_params = sorted(params.keys())

    message = b"\n".join(
        [
            f"{method.upper()} {parsed.path}".encode("utf-8"),
            body or b"",
            "".join(params[p][0] for p in signed_params).encode("utf-8"),
            b"",
            str(expires).encode("utf-8"),
        ]
    )
    signature = hmac.new(api_secret.encode("utf-8"), message, sha256).digest()

    header = f"EXO2-HMAC-SHA256 credential={api_key}"
    if signed_params:
        header += f",signed-query-args={';'.join(signed_params)}"
    return (
        f"{header},expires={expires},"
        f"signature={base64.standard_b64encode(signature).decode('utf-8')}"
    )


class ExoscaleClient:
    """aiohttp based implementation of :class:`ExoscaleAPI`."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._api_key = api_key
        self._api_secret = api_secret
        self._api_url = api_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    async def _request(
        self,
        method: str,
        endpoint: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{endpoint.rstrip('/')}{path}"
        body = json.dumps(payload).encode("utf-8") if payload is not None else b""
        headers = {
            "Accept": "application/json",
            "Authorization": sign_request(
                self._api_key, self._api_secret, method, url, body
            ),
        }
        if payload is not None:
            headers["Content-Type"] = "application/json"

        debug.log_request(f"{method} {url}", payload or {})
        try:
            if self._session is not None:
                data = await self._send(self._session, method, url, body, headers)
            else:
                async with aiohttp.ClientSession(timeout=self._timeout) as session:
                    data = await self._send(session, method, url, body, headers)
        except aiohttp.ClientError as exc:
            raise ExoscaleAPIError(f"{method} {url} failed: {exc}") from exc
        debug.log_response(f"{method} {url}", data)
        return data

    @staticmethod
    async def _send(
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        body: bytes,
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        async with session.request(
            method, url, data=body or None, headers=headers
        ) as response:
            text = await response.text()
            if response.status >= 400:
                try:
                    message = json.loads(text).get("message", text)
                except (json.JSONDecodeError, AttributeError):
                    message = text
                raise ExoscaleAPIError(message, status=response.status)
            if not text:
                return {}
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ExoscaleAPIError(f"invalid JSON from {url}: {exc}") from exc
            if not isinstance(data, dict):
                raise ExoscaleAPIError(f"unexpected response from {url}")
            return data

    async def list_zones(self) -> List[Zone]:
        data = await self._request("GET", self._api_url, "/zone")
        return [
            Zone(name=z["name"], api_endpoint=z["api-endpoint"])
            for z in data.get("zones", [])
            if z.get("name") and z.get("api-endpoint")
        ]

    async def list_sks_clusters(self, endpoint: str) -> List[SKSClusterSummary]:
        data = await self._request("GET", endpoint, "/sks-cluster")
        return [
            SKSClusterSummary(id=c["id"], name=c["name"])
            for c in data.get("sks-clusters", [])
            if c.get("id") and c.get("name")
        ]

    async def generate_sks_cluster_kubeconfig(
        self,
        endpoint: str,
        cluster_id: str,
        *,
        groups: Sequence[str],
        user: str,
        ttl: int,
    ) -> str:
        data = await self._request(
            "POST",
            endpoint,
            f"/sks-cluster-kubeconfig/{cluster_id}",
            {"groups": list(groups), "user": user, "ttl": ttl},
        )
        kubeconfig = data.get("kubeconfig")
        if not kubeconfig:
            raise ExoscaleAPIError(
                f"no kubeconfig returned for SKS cluster {cluster_id}"
            )
        return kubeconfig
