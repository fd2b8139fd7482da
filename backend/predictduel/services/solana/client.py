from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import SolanaConfig
from .exceptions import SolanaRateLimitError, SolanaRPCError
from .models import SolanaTransaction

logger = logging.getLogger(__name__)


class SolanaClient:
    """Minimal async JSON-RPC client with endpoint fallback."""

    def __init__(
        self,
        config: SolanaConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or SolanaConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

        logger.info(
            f"Initialized SolanaClient (endpoints={len(self.config.rpc_urls)}, "
            f"paper_mode={self.config.paper_mode})"
        )

    async def __aenter__(self) -> SolanaClient:
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed SolanaClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("SolanaClient must be used as async context manager")
        return self._client

    async def _post(self, url: str, payload: dict[str, Any]) -> Any:
        retry_count = 0

        while retry_count < self.config.max_retries:
            response = await self.client.post(url, json=payload)

            if response.status_code == 429 or response.status_code >= 500:
                wait_time = self.config.retry_backoff_seconds * (2 ** retry_count)
                logger.warning(
                    f"RPC {url} returned {response.status_code}, "
                    f"retrying in {wait_time}s..."
                )
                await asyncio.sleep(wait_time)
                retry_count += 1
                continue

            response.raise_for_status()
            body = response.json()
            if body.get("error"):
                error = body["error"]
                raise SolanaRPCError(
                    f"RPC error {error.get('code')}: {error.get('message')}",
                    status_code=response.status_code,
                )
            return body.get("result")

        raise SolanaRateLimitError(
            f"RPC {url} unavailable after {retry_count} retries", status_code=429
        )

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        last_error: Exception | None = None
        for index, url in enumerate(self.config.rpc_urls):
            try:
                result = await self._post(url, payload)
                if index > 0:
                    logger.info(f"Using fallback RPC endpoint {index + 1}: {url}")
                return result
            except (httpx.RequestError, SolanaRateLimitError) as e:
                last_error = e
                logger.warning(f"RPC endpoint {url} failed: {e}")

        raise SolanaRPCError(f"All RPC endpoints failed: {last_error}")

    async def get_transaction(self, signature: str) -> SolanaTransaction | None:
        """Fetch a confirmed transaction; None when the signature is unknown."""
        result = await self._rpc(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.config.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            return None
        return SolanaTransaction.from_rpc(signature, result)


def create_solana_client(config: SolanaConfig | None = None) -> SolanaClient:
    return SolanaClient(config=config)
