"""On-chain transaction verification.

Verification never raises for lookup problems: a failed or ambiguous
lookup becomes an unverified TransactionVerification, and callers decide
whether that is a warning or a hard failure.
"""

from __future__ import annotations

import logging

import httpx

from .client import SolanaClient
from .exceptions import SolanaRPCError
from .models import TransactionVerification

logger = logging.getLogger(__name__)


class TransactionVerifier:
    def __init__(self, client: SolanaClient):
        self.client = client

    async def verify(
        self, signature: str, market: str | None = None
    ) -> TransactionVerification:
        """Check that ``signature`` succeeded and, if given, touched ``market``."""
        if self.client.config.paper_mode:
            logger.info(f"Paper mode: treating {signature} as verified")
            return TransactionVerification(
                signature=signature,
                found=True,
                succeeded=True,
                accounts=[market] if market else [],
                paper=True,
            )

        try:
            transaction = await self.client.get_transaction(signature)
        except (SolanaRPCError, httpx.HTTPError, RuntimeError) as e:
            logger.warning(f"Transaction lookup failed for {signature}: {e}")
            return TransactionVerification(signature=signature, error=str(e))

        if transaction is None:
            return TransactionVerification(signature=signature, found=False)

        return TransactionVerification(
            signature=signature,
            found=True,
            succeeded=transaction.succeeded,
            accounts=transaction.accounts,
            market_matched=market is None or market in transaction.accounts,
            error=transaction.error,
        )
