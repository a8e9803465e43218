from typing import Generic, Iterator, List, Optional, Tuple, Type, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from stakeledger.storage.medium import StorageFault, StorageMedium, WriteBatch

RECORD_VERSION = 1

V = TypeVar("V", bound=BaseModel)


class PersistentStore(Generic[V]):
    """
    Typed, ordered key-value view over one region of a storage medium.

    Records are stored as orjson envelopes {"v": RECORD_VERSION, "data": {...}}
    so that the layout can evolve without misreading older bytes.
    """

    def __init__(self, medium: StorageMedium, region: str, model: Type[V]):
        self.medium = medium
        self.region = region
        self.model = model

    def encode(self, value: V) -> bytes:
        return orjson.dumps({"v": RECORD_VERSION, "data": value.model_dump(mode="json")})

    def decode(self, raw: Optional[bytes]) -> Optional[V]:
        if raw is None:
            return None
        try:
            envelope = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise StorageFault(f"corrupt record in region {self.region!r}") from e

        version = envelope.get("v")
        if version != RECORD_VERSION:
            raise StorageFault(f"unsupported record version {version!r} in region {self.region!r}")
        try:
            return self.model.model_validate(envelope["data"])
        except (KeyError, ValidationError) as e:
            raise StorageFault(f"undecodable {self.model.__name__} in region {self.region!r}") from e

    def get(self, key: int) -> Optional[V]:
        return self.decode(self.medium.get(self.region, key))

    def insert(self, key: int, value: V) -> Optional[V]:
        return self.decode(self.medium.put(self.region, key, self.encode(value)))

    def remove(self, key: int) -> Optional[V]:
        return self.decode(self.medium.delete(self.region, key))

    def iter(self) -> Iterator[Tuple[int, V]]:
        for key, raw in self.medium.scan(self.region):
            yield key, self.decode(raw)

    def __iter__(self):
        return self.iter()

    def keys(self) -> List[int]:
        return [key for key, _ in self.medium.scan(self.region)]

    def values(self) -> List[V]:
        return [value for _, value in self.iter()]

    def __len__(self) -> int:
        return sum(1 for _ in self.medium.scan(self.region))

    def stage_insert(self, batch: WriteBatch, key: int, value: V) -> None:
        batch.put(self.region, key, self.encode(value))

    def stage_remove(self, batch: WriteBatch, key: int) -> None:
        batch.delete(self.region, key)
