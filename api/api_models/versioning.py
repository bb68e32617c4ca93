from django.db import models
from django.utils import timezone

from api.exceptions import ConflictError


class VersionedModel(models.Model):
    """
    Abstract model with an optimistic concurrency counter.

    `save_versioned()` writes only when the row still carries the version this
    instance was loaded with, so a request that lost a race gets a
    ConflictError instead of overwriting the winner.
    """

    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save_versioned(self, update_fields):
        expected = self.version
        values = {field: getattr(self, field) for field in update_fields}
        values['version'] = expected + 1
        values['updated_at'] = timezone.now()

        updated = type(self).objects.filter(pk=self.pk, version=expected).update(**values)
        if not updated:
            raise ConflictError(
                f"{type(self).__name__} {self.pk} was modified concurrently, reload and retry",
                expected_version=expected,
            )

        self.version = expected + 1
        self.updated_at = values['updated_at']
