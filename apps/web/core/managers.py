"""
Custom querysets for owner-scoped records.

OwnedQuerySet filters queries by the actor that placed them.
"""

from typing import TypeVar

from django.db import models

_T = TypeVar("_T", bound=models.Model)


class OwnedQuerySet(models.QuerySet[_T]):
    """
    QuerySet for models carrying an ``owner_ref`` column.

    SECURITY: Customer views must scope through for_owner(request.owner_ref),
    never a raw queryset.
    """

    def for_owner(self, owner_ref: str) -> "OwnedQuerySet[_T]":
        """Filter to records placed by ``owner_ref``."""
        return self.filter(owner_ref=owner_ref)
