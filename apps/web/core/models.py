"""
Core models - shared abstract bases.

All persisted records inherit created/updated timestamps from TimestampedModel.
"""

from django.db import models


class TimestampedModel(models.Model):
    """
    Abstract base with creation and modification timestamps.

    created_at is set once on insert and never touched again.
    """

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
