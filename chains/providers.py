"""
chains/providers.py - JSON-RPC provider management with failover.

Provides reliable RPC access with:
- Multiple endpoint failover
- Request timeout handling (the only wall-clock timeout on chain calls)
- Per-endpoint latency and error stats
- Transaction broadcast and receipt polling
"""

import asyncio
import os
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from core.constants import DEFAULT_RECEIPT_POLL_SECONDS, ErrorCode
from core.exceptions import InfraError
from core.logging import get_logger

logger = get_logger(__name__)

_ENV_PLACEHOLDER = re.compile(r"\$\{([A-Z0-9_]+)\}")


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


def resolve_url(url: str) -> str | None:
    """
    Substitute ${VAR} placeholders from the environment.

    Returns None if any referenced variable is unset.
    """
    missing = False

    def _sub(match: re.Match) -> str:
        nonlocal missing
        value = os.getenv(match.group(1))
        if not value:
            missing = True
            return ""
        return value

    resolved = _ENV_PLACEHOLDER.sub(_sub, url)
    return None if missing else resolved


class RPCProvider:
    """
    RPC provider with failover support.

    Tries endpoints in order until one succeeds. A JSON-RPC error object
    (e.g. an execution revert) is not retried on the next endpoint.
    """

    def __init__(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: int = 10,
        client: httpx.AsyncClient | None = None,
    ):
        self.chain_id = chain_id
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0

        self.rpc_urls = [u for u in (resolve_url(url) for url in rpc_urls) if u]

        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.rpc_urls
        }

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

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def call(
        self,
        method: str,
        params: list | None = None,
    ) -> RPCResponse:
        """
        Make an RPC call with failover.

        Raises:
            InfraError: If the node returned an error object or all endpoints failed
        """
        if not self.rpc_urls:
            raise InfraError(
                code=ErrorCode.INFRA_RPC_ERROR,
                message="No RPC endpoints configured",
                details={"chain_id": self.chain_id},
            )

        client = await self._get_client()
        last_error: Exception | None = None

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
                result = resp.json()
            except httpx.TimeoutException as e:
                latency_ms = int(time.time() * 1000) - start_ms
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = e
                logger.debug(f"RPC timeout for {url}: {latency_ms}ms")
                continue
            except (httpx.HTTPError, ValueError) as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = e
                logger.debug(f"RPC failed for {url}: {e}")
                continue

            if "error" in result:
                error = result["error"]
                error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                stats.failed_requests += 1
                stats.last_error = error_msg
                raise InfraError(
                    code=ErrorCode.INFRA_RPC_ERROR,
                    message=f"RPC error: {error_msg}",
                    details={"url": url, "method": method, "chain_id": self.chain_id},
                )

            stats.successful_requests += 1
            stats.total_latency_ms += latency_ms
            stats.last_success_ts = int(time.time() * 1000)

            return RPCResponse(
                result=result.get("result"),
                latency_ms=latency_ms,
                endpoint_used=url,
            )

        code = (
            ErrorCode.INFRA_TIMEOUT
            if isinstance(last_error, httpx.TimeoutException)
            else ErrorCode.INFRA_RPC_ERROR
        )
        raise InfraError(
            code=code,
            message=f"All RPC endpoints failed for chain {self.chain_id}",
            details={
                "chain_id": self.chain_id,
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
        """Make eth_call against a contract."""
        return await self.call(
            "eth_call",
            [{"to": to, "data": data}, block],
        )

    async def get_gas_price(self) -> int:
        """Current gas price in wei as reported by the node."""
        response = await self.call("eth_gasPrice")
        return int(response.result, 16)

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Account nonce."""
        response = await self.call("eth_getTransactionCount", [address, block])
        return int(response.result, 16)

    async def send_raw_transaction(self, raw_tx: str) -> str:
        """Broadcast a signed transaction. Returns the tx hash."""
        response = await self.call("eth_sendRawTransaction", [raw_tx])
        return response.result

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        """Receipt, or None while the transaction is pending."""
        response = await self.call("eth_getTransactionReceipt", [tx_hash])
        return response.result

    async def wait_for_receipt(
        self,
        tx_hash: str,
        poll_interval: float = DEFAULT_RECEIPT_POLL_SECONDS,
    ) -> dict:
        """
        Poll until the transaction is mined.

        No overall timeout: a swap is bounded by its on-chain deadline and
        each poll by the HTTP client timeout.
        """
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            await asyncio.sleep(poll_interval)

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


class ProviderRegistry:
    """
    Registry of RPC providers by chain.

    Owns provider lifecycle for the process.
    """

    def __init__(self):
        self._providers: dict[int, RPCProvider] = {}

    def register(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: int = 10,
    ) -> RPCProvider:
        """Register a provider for a chain."""
        provider = RPCProvider(chain_id, rpc_urls, timeout_seconds)
        self._providers[chain_id] = provider
        return provider

    def stats_summary(self) -> dict[str, dict]:
        """Per-endpoint stats for every registered chain, keyed by chain id."""
        return {
            str(chain_id): provider.get_stats_summary()
            for chain_id, provider in self._providers.items()
        }

    async def close_all(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()

    @property
    def chain_ids(self) -> list[int]:
        return list(self._providers.keys())
