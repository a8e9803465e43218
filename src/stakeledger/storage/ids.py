import threading

import orjson
import structlog

from stakeledger.storage.medium import StorageFault, StorageMedium

logger = structlog.get_logger("id_generator")

COUNTER_KEY = 0
FIRST_ID = 1


class IdGenerationError(StorageFault):
    """The id counter could not be read or persisted. Fatal for the ledger."""


class IdGenerator:
    """
    Persisted monotonic counter for one entity kind.

    The cell lives in its own region ("<namespace>.seq") and always holds the
    next id to issue, so a fresh generator on the same medium resumes the sequence.
    """

    def __init__(self, medium: StorageMedium, namespace: str):
        self.medium = medium
        self.region = f"{namespace}.seq"
        self._lock = threading.Lock()

    def peek(self) -> int:
        raw = self.medium.get(self.region, COUNTER_KEY)
        return FIRST_ID if raw is None else orjson.loads(raw)

    def next_id(self) -> int:
        with self._lock:
            try:
                current = self.peek()
                self.medium.put(self.region, COUNTER_KEY, orjson.dumps(current + 1))
            except StorageFault as e:
                logger.critical("id_counter_unavailable", region=self.region, error=str(e))
                raise IdGenerationError(f"cannot advance id counter {self.region!r}") from e
            return current
