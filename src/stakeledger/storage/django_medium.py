"""
Storage medium backed by the Django ORM (one StoredRecord row per record).

Import only after django.setup(); see stakeledger.storage.init_db.
"""
from contextlib import contextmanager

import structlog
from django.db import DatabaseError, transaction

from stakeledger.django_apps.ledger.models import StoredRecord
from stakeledger.storage.medium import StorageFault, StorageMedium, check_key

logger = structlog.get_logger("django_medium")


@contextmanager
def _storage_errors(op: str, region: str):
    try:
        yield
    except DatabaseError as e:
        logger.critical("storage_write_failed", op=op, region=region, error=str(e))
        raise StorageFault(f"{op} failed on region {region!r}: {e}") from e


def _as_bytes(value):
    # sqlite hands back bytes, postgres a memoryview
    return None if value is None else bytes(value)


class DjangoMedium(StorageMedium):

    def __init__(self, using: str = "default"):
        self.using = using

    def _records(self, region: str):
        return StoredRecord.objects.using(self.using).filter(region=region)

    def get(self, region, key):
        with _storage_errors("get", region):
            value = self._records(region).filter(key=check_key(key)).values_list("value", flat=True).first()
        return _as_bytes(value)

    def put(self, region, key, data):
        with _storage_errors("put", region), transaction.atomic(using=self.using):
            prior = self._records(region).select_for_update().filter(key=check_key(key)).values_list("value", flat=True).first()
            self._write(region, key, data)
        return _as_bytes(prior)

    def delete(self, region, key):
        with _storage_errors("delete", region), transaction.atomic(using=self.using):
            prior = self._records(region).select_for_update().filter(key=check_key(key)).values_list("value", flat=True).first()
            if prior is not None:
                self._records(region).filter(key=key).delete()
        return _as_bytes(prior)

    def scan(self, region):
        with _storage_errors("scan", region):
            rows = list(self._records(region).order_by("key").values_list("key", "value"))
        for key, value in rows:
            yield key, bytes(value)

    def apply(self, batch):
        regions = ",".join(sorted({op.region for op in batch.ops}))
        with _storage_errors("apply", regions), transaction.atomic(using=self.using):
            for op in batch.ops:
                if op.data is None:
                    self._records(op.region).filter(key=op.key).delete()
                else:
                    self._write(op.region, op.key, op.data)

    def _write(self, region: str, key: int, data: bytes) -> None:
        StoredRecord.objects.using(self.using).update_or_create(
            region=region, key=key, defaults={"value": data}
        )
