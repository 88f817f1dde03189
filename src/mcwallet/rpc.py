"""
Node transports.

Nodes are reached through two kinds of clients:
- EthRpcClient: JSON-RPC 2.0 (eth-like nodes), call(node_url, method, params)
- FiberApiClient: REST API of fiber nodes (v1 and v2 endpoints)

Both are stateless apart from the pooled HTTP connections, so a single
instance is shared by every operator and every coin.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from mcwallet.errors import RpcError

# Timeout for regular node calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0


def hex_to_int(value: str) -> int:
    """Decode a 0x-prefixed hex quantity, as used by eth-like nodes."""
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise ValueError(f"Invalid hex quantity: {value!r}")
    return int(value[2:] or "0", 16)


def int_to_hex(value: int) -> str:
    if value < 0:
        raise ValueError("Hex quantities can't be negative")
    return hex(value)


class EthRpcClient:
    """JSON-RPC client for eth-like nodes."""

    def __init__(self, timeout: float = DEFAULT_RPC_TIMEOUT, client: httpx.AsyncClient | None = None):
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def call(self, node_url: str, method: str, params: list[Any] | None = None) -> Any:
        """
        Make an RPC call to a node.

        Args:
            node_url: URL of the node
            method: RPC method name
            params: Positional method parameters

        Returns:
            RPC result

        Raises:
            RpcError: If the node replied with an error
            httpx.HTTPError: On connection/timeout errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self.client.post(node_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"RPC call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.warning(f"RPC call failed: {method} - {e}")
            raise

        if "error" in data and data["error"]:
            error_info = data["error"]
            error_code = error_info.get("code", "unknown")
            error_msg = error_info.get("message", str(error_info))
            raise RpcError(f"RPC error {error_code}: {error_msg}", code=error_code)

        return data.get("result")

    async def close(self) -> None:
        await self.client.aclose()


class FiberApiClient:
    """REST client for the API of fiber nodes."""

    def __init__(self, timeout: float = DEFAULT_RPC_TIMEOUT, client: httpx.AsyncClient | None = None):
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def _url(node_url: str, endpoint: str, use_v2: bool) -> str:
        version = "v2" if use_v2 else "v1"
        return f"{node_url.rstrip('/')}/api/{version}/{endpoint.lstrip('/')}"

    @staticmethod
    def _process_reply(response: httpx.Response, use_v2: bool) -> Any:
        if use_v2:
            # v2 endpoints report errors inside the body, even with non 2xx codes
            try:
                data = response.json()
            except ValueError:
                response.raise_for_status()
                raise
            if isinstance(data, dict) and data.get("error"):
                error = data["error"]
                raise RpcError(error.get("message", str(error)), code=error.get("code"))
            response.raise_for_status()
            return data.get("data") if isinstance(data, dict) else data

        if response.is_error:
            message = response.text.strip() or response.reason_phrase
            raise RpcError(message, code=response.status_code)
        return response.json()

    async def get(
        self,
        node_url: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        use_v2: bool = False,
    ) -> Any:
        url = self._url(node_url, endpoint, use_v2)
        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Node API call failed: GET {endpoint} - {e}")
            raise
        return self._process_reply(response, use_v2)

    async def post(
        self,
        node_url: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        use_v2: bool = False,
    ) -> Any:
        url = self._url(node_url, endpoint, use_v2)
        try:
            response = await self.client.post(url, json=data or {})
        except httpx.HTTPError as e:
            logger.warning(f"Node API call failed: POST {endpoint} - {e}")
            raise
        return self._process_reply(response, use_v2)

    async def close(self) -> None:
        await self.client.aclose()
