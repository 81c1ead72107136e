"""
Upstream Telemetry Client

Thin async JSON-RPC client for the monitoring backend. Only transport
and explicit error payloads are failures here; the shape of a
successful payload is left to the adapter.
"""

import hashlib
import itertools
from typing import Any, Optional

import httpx

from ..config import settings
from ..utils.logger import get_logger

logger = get_logger("netchart.ingest")

NODES_METHOD = "common:getNodes"
RECORDS_METHOD = "common:getRecords"


class UpstreamError(Exception):
    """Raised when the backend call fails or returns an error payload."""
    pass


def normalize_hours(hours: float) -> int:
    """Convert a requested range to whole hours, at least 1."""
    try:
        value = int(hours // 1)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, value)


def node_numeric_id(node_id: str) -> int:
    """
    Map a backend node identifier to the numeric server id used by
    the dashboard.

    Numeric identifiers map to themselves; anything else (UUIDs) maps
    to a stable 32-bit hash.
    """
    if node_id.isdigit():
        return int(node_id)
    digest = hashlib.sha256(node_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def _raise_for_error(payload: Any) -> None:
    if isinstance(payload, dict) and payload.get("error"):
        error = payload["error"]
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        raise UpstreamError(str(error))


class TelemetryClient:
    """
    JSON-RPC client for node and ping record queries.

    Accepts an existing httpx.AsyncClient so tests (and the API
    lifespan) control the transport and connection pool.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rpc_url: Optional[str] = None,
        token: Optional[str] = None,
        max_count: Optional[int] = None,
    ):
        self.rpc_url = rpc_url or settings.upstream_rpc_url
        self.max_count = max_count or settings.upstream_max_count
        headers = {}
        token = token or settings.upstream_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout_seconds, connect=5.0),
            headers=headers,
        )
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, params: Optional[dict] = None) -> Any:
        """
        Invoke a JSON-RPC method and return its result.

        Raises:
            UpstreamError: on transport failure, non-2xx status, a
                non-JSON body, or an 'error' field in the response
        """
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }
        try:
            response = await self._client.post(self.rpc_url, json=request)
        except httpx.HTTPError as e:
            logger.warning("Upstream call %s failed: %s", method, e)
            raise UpstreamError(f"{method}: {e}") from e

        if response.status_code >= 400:
            logger.warning("Upstream call %s returned HTTP %d", method, response.status_code)
            raise UpstreamError(f"{method}: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(f"{method}: invalid JSON response") from e

        _raise_for_error(body)
        result = body.get("result", body) if isinstance(body, dict) and "jsonrpc" in body else body
        _raise_for_error(result)
        return result

    async def get_nodes(self) -> dict[str, dict]:
        """Return backend nodes keyed by node identifier."""
        result = await self.call(NODES_METHOD)
        if isinstance(result, dict):
            return {str(key): value for key, value in result.items() if isinstance(value, dict)}
        if isinstance(result, list):
            return {
                str(node["uuid"]): node
                for node in result
                if isinstance(node, dict) and node.get("uuid")
            }
        return {}

    async def resolve_node(self, server_id: int) -> Optional[tuple[str, str]]:
        """
        Find the backend node for a numeric server id.

        Returns:
            (node_id, server_name), or None when no node matches
        """
        nodes = await self.get_nodes()
        for node_id, node in nodes.items():
            if node_numeric_id(node_id) == server_id:
                name = node.get("name") or str(server_id)
                return node_id, str(name)
        return None

    async def fetch_ping_records(self, node_id: str, hours: float) -> Any:
        """Fetch raw ping records for a node over the last `hours`."""
        return await self.call(
            RECORDS_METHOD,
            {
                "type": "ping",
                "uuid": node_id,
                "maxCount": self.max_count,
                "hours": normalize_hours(hours),
            },
        )

    async def fetch_load_records(self, node_id: str, hours: float) -> Any:
        """Fetch raw host load records for a node over the last `hours`."""
        return await self.call(
            RECORDS_METHOD,
            {
                "type": "load",
                "uuid": node_id,
                "hours": normalize_hours(hours),
                "maxCount": self.max_count,
                "load_type": "all",
            },
        )
