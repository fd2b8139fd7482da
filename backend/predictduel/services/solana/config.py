from typing import Literal

from pydantic import BaseModel, Field, field_validator


class SolanaConfig(BaseModel):
    """Configuration for the Solana JSON-RPC client."""

    rpc_urls: list[str] = Field(
        default_factory=lambda: [
            "https://api.devnet.solana.com",
            "https://rpc.ankr.com/solana_devnet",
        ]
    )
    commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_backoff_seconds: float = 1.0
    paper_mode: bool = False

    @field_validator("rpc_urls", mode="before")
    @classmethod
    def parse_rpc_urls(cls, v):
        """Accept a comma-separated string from the environment."""
        if isinstance(v, str):
            return [url.strip() for url in v.split(",") if url.strip()]
        return v

    @property
    def primary_url(self) -> str:
        return self.rpc_urls[0]
