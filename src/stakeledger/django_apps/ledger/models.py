from django.db import models


class StoredRecord(models.Model):
    """One ledger record: an orjson envelope addressed by (region, key)."""
    region = models.CharField(max_length=64)
    key = models.PositiveBigIntegerField()
    value = models.BinaryField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["region", "key"]
        constraints = [
            models.UniqueConstraint(fields=["region", "key"], name="uniq_region_key"),
        ]
        indexes = [
            models.Index(fields=["region", "key"]),
        ]

    def __str__(self) -> str:
        return f"{self.region}/{self.key} ({len(self.value)} bytes)"
