class SolanaRPCError(Exception):
    """Base exception for Solana RPC errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SolanaRateLimitError(SolanaRPCError):
    """Rate limit exceeded on every endpoint."""

    pass