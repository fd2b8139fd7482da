"""
MongoDB connection and Beanie ODM initialization.

This module provides:
- MongoDB client connection via PyMongo's async client
- Beanie ODM initialization
- Health check utilities
"""

import logging
from typing import Any

from beanie import init_beanie
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from predictduel.config import DatabaseConfig

from .documents import DOCUMENT_MODELS

logger = logging.getLogger(__name__)


def sanitize_mongodb_url(url: str) -> str:
    """Hide password in MongoDB URL for safe logging."""
    if "@" not in url or "://" not in url:
        return url
    protocol, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        username = credentials.split(":", 1)[0]
        return f"{protocol}://{username}:***@{host}"
    return url


class Database:
    """Owns the client; Beanie documents are usable once ``connect`` returns."""

    def __init__(self, config: DatabaseConfig | None = None):
        self.config = config or DatabaseConfig()
        self._client: AsyncMongoClient | None = None

    async def connect(self) -> None:
        self._client = AsyncMongoClient(
            self.config.mongodb_url,
            tz_aware=True,
            serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
        )
        await init_beanie(
            database=self._client[self.config.database_name],
            document_models=DOCUMENT_MODELS,
        )
        logger.info(
            f"Connected to MongoDB ({sanitize_mongodb_url(self.config.mongodb_url)}, "
            f"database={self.config.database_name})"
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Closed MongoDB client")

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def info(self) -> dict[str, Any]:
        return {
            "status": "connected" if self._client is not None else "disconnected",
            "url": sanitize_mongodb_url(self.config.mongodb_url),
            "database": self.config.database_name,
        }
