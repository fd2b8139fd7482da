from .client import SolanaClient, create_solana_client
from .config import SolanaConfig
from .exceptions import SolanaRateLimitError, SolanaRPCError
from .models import SolanaTransaction, TransactionVerification
from .verifier import TransactionVerifier

__all__ = [
    "SolanaClient",
    "create_solana_client",
    "SolanaConfig",
    "SolanaRPCError",
    "SolanaRateLimitError",
    "SolanaTransaction",
    "TransactionVerification",
    "TransactionVerifier",
]
