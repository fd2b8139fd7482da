"""
Base document class for Beanie ODM.

This module provides:
- BaseDocument: Document with timestamps and revision-checked writes
"""

from beanie import Document

from predictduel.models.base import TimestampMixin


class BaseDocument(TimestampMixin, Document):
    """
    Base document class for all PredictDuel collections.

    Provides:
    - Automatic timestamps (created_at, updated_at)
    - A revision id that every conditional write checks and renews, so a
      write based on a stale read matches nothing
    """

    class Settings:
        use_revision = True
