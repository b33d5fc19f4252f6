from django.db import models
from django.db.models import F

from socialgraph.exceptions import Conflict


class VersionedModel(models.Model):
    """
    Abstract base for rows that are mutated in place.

    ``version`` is bumped on every conditional update. ``update_if_current``
    writes only when the stored version still equals the one this instance
    was loaded with, and raises ``Conflict`` otherwise, so two writers racing
    on the same row cannot silently overwrite each other.
    """
    version = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True

    def update_if_current(self, extra_filter=None, **fields):
        queryset = type(self).objects.filter(pk=self.pk, version=self.version)
        if extra_filter:
            queryset = queryset.filter(**extra_filter)

        updated = queryset.update(version=F("version") + 1, **fields)
        if updated != 1:
            raise Conflict()

        for name, value in fields.items():
            setattr(self, name, value)
        self.version += 1
