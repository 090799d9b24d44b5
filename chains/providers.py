"""
chains/providers.py - RPC provider management with failover.

Provides reliable RPC access with:
- Multiple endpoint failover
- Request timeout handling
- Connection pooling
- Latency tracking
"""

import os
import time
from dataclasses import dataclass
from typing import Any

import httpx
from dotenv import load_dotenv

from core.logging import get_logger
from core.exceptions import InfraError, ErrorCode

logger = get_logger(__name__)

# Load environment variables
load_dotenv()


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str


class RPCProvider:
    """
    RPC provider with failover support.

    Tries multiple endpoints in order until one succeeds.
    Tracks statistics per endpoint for monitoring.

    A JSON-RPC "error" object from a node is final: execution reverts
    and estimateGas failures are deterministic, so the next endpoint is
    only tried on transport failures.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: int = 10,
    ):
        self.chain_id = chain_id
        self.timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

        # Resolve API keys in URLs
        self.rpc_urls = self._resolve_urls(rpc_urls)

        # Track stats per endpoint
        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.rpc_urls
        }

    def _resolve_urls(self, urls: list[str]) -> list[str]:
        """Resolve environment variables in URLs."""
        override = os.getenv("LENDSIM_RPC_URL")
        if override:
            return [override]

        api_key = os.getenv("ALCHEMY_API_KEY", "")
        resolved = []
        for url in urls:
            resolved_url = url.replace("${ALCHEMY_API_KEY}", api_key)
            # Only include if API key present or not needed
            if api_key or "${ALCHEMY_API_KEY}" not in url:
                resolved.append(resolved_url)
        return resolved

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RPCProvider":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _next_request_id(self) -> int:
        """Generate next request ID."""
        self._request_id += 1
        return self._request_id

    async def call(
        self,
        method: str,
        params: list | None = None,
    ) -> RPCResponse:
        """
        Make an RPC call with failover.

        Args:
            method: RPC method name
            params: Method parameters

        Returns:
            RPCResponse with result and metadata

        Raises:
            InfraError: On a node error, or if all endpoints fail
        """
        if not self.rpc_urls:
            raise InfraError(
                code=ErrorCode.INFRA_RPC_ERROR,
                message="No RPC endpoints configured",
                details={"chain_id": self.chain_id},
            )

        client = await self._get_client()
        last_error: Exception | None = None
        last_code = ErrorCode.INFRA_RPC_ERROR

        for url in self.rpc_urls:
            stats = self.stats[url]
            stats.total_requests += 1

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params or [],
                "id": self._next_request_id(),
            }

            start_ms = int(time.time() * 1000)

            try:
                resp = await client.post(url, json=payload)
                latency_ms = int(time.time() * 1000) - start_ms
                resp.raise_for_status()
                result = resp.json()
                if not isinstance(result, dict):
                    raise ValueError(f"Unexpected JSON-RPC response: {type(result).__name__}")

            except httpx.TimeoutException as e:
                latency_ms = int(time.time() * 1000) - start_ms
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = e
                last_code = ErrorCode.INFRA_TIMEOUT
                logger.debug(
                    "RPC timeout",
                    extra={"context": {"url": url, "method": method, "latency_ms": latency_ms}},
                )
                continue

            except (httpx.HTTPError, ValueError) as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = e
                last_code = ErrorCode.INFRA_RPC_ERROR
                logger.debug(
                    "RPC transport failure",
                    extra={"context": {"url": url, "method": method, "error": str(e)}},
                )
                continue

            if "error" in result:
                error = result["error"]
                error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                stats.failed_requests += 1
                stats.last_error = error_msg
                logger.debug(
                    "RPC error",
                    extra={"context": {"url": url, "method": method, "error": error_msg}},
                )
                raise InfraError(
                    code=ErrorCode.INFRA_RPC_ERROR,
                    message=f"RPC error: {error_msg}",
                    details={"url": url, "method": method, "rpc_error": error},
                )

            # Success
            stats.successful_requests += 1
            stats.total_latency_ms += latency_ms
            stats.last_success_ts = int(time.time() * 1000)

            return RPCResponse(
                result=result.get("result"),
                latency_ms=latency_ms,
                endpoint_used=url,
            )

        # All endpoints failed
        raise InfraError(
            code=last_code,
            message=f"All RPC endpoints failed for chain {self.chain_id}: {last_error}",
            details={
                "chain_id": self.chain_id,
                "method": method,
                "endpoints_tried": len(self.rpc_urls),
                "last_error": str(last_error),
            },
        )

    async def eth_call(
        self,
        to: str,
        data: str,
        block: str = "latest",
    ) -> RPCResponse:
        """
        Make eth_call.

        Args:
            to: Contract address
            data: Encoded call data
            block: Block number or "latest"

        Returns:
            RPCResponse with call result
        """
        return await self.call(
            "eth_call",
            [{"to": to, "data": data}, block],
        )

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        """
        Estimate gas for a transaction.

        Args:
            tx: Dict with to, data, from and value (int or hex)

        Returns:
            Gas units
        """
        params = {k: v for k, v in tx.items() if v is not None}
        if isinstance(params.get("value"), int):
            params["value"] = hex(params["value"])
        response = await self.call("eth_estimateGas", [params])
        return int(response.result, 16)

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
