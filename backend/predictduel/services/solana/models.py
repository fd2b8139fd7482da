from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class SolanaTransaction(BaseModel):
    signature: str
    slot: int = 0
    block_time: datetime | None = None
    succeeded: bool = False
    error: str | None = None
    accounts: list[str] = Field(default_factory=list)

    @classmethod
    def from_rpc(cls, signature: str, data: dict[str, Any]) -> SolanaTransaction:
        meta = data.get("meta") or {}
        message = (data.get("transaction") or {}).get("message") or {}

        accounts: list[str] = []
        for key in message.get("accountKeys", []):
            # jsonParsed encoding returns objects, json encoding plain strings
            accounts.append(key["pubkey"] if isinstance(key, dict) else key)
        loaded = meta.get("loadedAddresses") or {}
        accounts.extend(loaded.get("writable", []))
        accounts.extend(loaded.get("readonly", []))

        block_time = data.get("blockTime")
        err = meta.get("err")
        return cls(
            signature=signature,
            slot=data.get("slot", 0),
            block_time=(
                datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time else None
            ),
            succeeded=err is None,
            error=None if err is None else str(err),
            accounts=accounts,
        )


class TransactionVerification(BaseModel):
    """Outcome of checking a signature on chain.

    ``ok`` is the only field callers need; the rest explains a failure.
    """

    signature: str
    found: bool = False
    succeeded: bool = False
    market_matched: bool = True
    accounts: list[str] = Field(default_factory=list)
    error: str | None = None
    paper: bool = False

    @property
    def ok(self) -> bool:
        return self.found and self.succeeded and self.market_matched

    def describe(self) -> str:
        if self.ok:
            return f"Transaction {self.signature} verified"
        if self.error:
            return f"Transaction {self.signature} unverified: {self.error}"
        if not self.found:
            return f"Transaction {self.signature} not found"
        if not self.succeeded:
            return f"Transaction {self.signature} failed on chain"
        return f"Transaction {self.signature} did not touch the duel market"
