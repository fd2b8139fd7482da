"""
MongoDB persistence for PredictDuel via Beanie.

This package provides:
- Database: client lifecycle and Beanie initialization
- Documents binding duels, users and notifications to collections
- Repositories wrapping the queries and conditional writes
"""

from .connection import Database, sanitize_mongodb_url
from .documents import DOCUMENT_MODELS, DuelDocument, NotificationDocument, UserDocument
from .repositories import DuelRepository, NotificationRepository, UserRepository

__all__ = [
    "Database",
    "sanitize_mongodb_url",
    "DOCUMENT_MODELS",
    "DuelDocument",
    "NotificationDocument",
    "UserDocument",
    "DuelRepository",
    "NotificationRepository",
    "UserRepository",
]
