"""
Byte-level storage media behind the ledger.

A medium is partitioned into named regions; every region is an ordered map of
unsigned 64-bit integer keys to opaque bytes. Single-key writes are atomic, and
a bounded WriteBatch of puts/deletes is applied all-or-nothing.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

MAX_KEY = 2**64 - 1
MAX_BATCH_SIZE = 64


class StorageFault(Exception):
    """The medium could not complete a read or write. Not recoverable by the ledger."""


@dataclass
class WriteOp:
    region: str
    key: int
    data: Optional[bytes]  # None means delete


@dataclass
class WriteBatch:
    """Bounded set of writes applied atomically by StorageMedium.apply()"""
    ops: List[WriteOp] = field(default_factory=list)

    def put(self, region: str, key: int, data: bytes) -> None:
        self._append(WriteOp(region, check_key(key), data))

    def delete(self, region: str, key: int) -> None:
        self._append(WriteOp(region, check_key(key), None))

    def _append(self, op: WriteOp) -> None:
        if len(self.ops) >= MAX_BATCH_SIZE:
            raise StorageFault(f"write batch exceeds {MAX_BATCH_SIZE} operations")
        self.ops.append(op)

    def __len__(self) -> int:
        return len(self.ops)


def check_key(key: int) -> int:
    if not isinstance(key, int) or isinstance(key, bool) or not 0 <= key <= MAX_KEY:
        raise StorageFault(f"invalid storage key: {key!r}")
    return key


class StorageMedium(ABC):

    @abstractmethod
    def get(self, region: str, key: int) -> Optional[bytes]:
        ...

    @abstractmethod
    def put(self, region: str, key: int, data: bytes) -> Optional[bytes]:
        """Insert or overwrite, returning the prior value if any."""

    @abstractmethod
    def delete(self, region: str, key: int) -> Optional[bytes]:
        ...

    @abstractmethod
    def scan(self, region: str) -> Iterator[Tuple[int, bytes]]:
        """Committed records of a region in ascending key order."""

    @abstractmethod
    def apply(self, batch: WriteBatch) -> None:
        ...


class InMemoryMedium(StorageMedium):
    """Process-local medium. Durable only for the lifetime of the object."""

    def __init__(self):
        self._regions: dict = {}
        self._lock = threading.Lock()

    def _region(self, region: str) -> dict:
        return self._regions.setdefault(region, {})

    def get(self, region, key):
        with self._lock:
            return self._region(region).get(check_key(key))

    def put(self, region, key, data):
        with self._lock:
            records = self._region(region)
            prior = records.get(check_key(key))
            records[key] = bytes(data)
            return prior

    def delete(self, region, key):
        with self._lock:
            return self._region(region).pop(check_key(key), None)

    def scan(self, region):
        # Snapshot under the lock so iteration never sees a half-applied batch
        with self._lock:
            items = sorted(self._region(region).items())
        yield from items

    def apply(self, batch):
        with self._lock:
            for op in batch.ops:
                records = self._region(op.region)
                if op.data is None:
                    records.pop(op.key, None)
                else:
                    records[op.key] = op.data
