"""Per-run suppression of repeated (name, city) shop records."""

from __future__ import annotations

from typing import Iterable, List, Set

from quiltshops.models import ShopRecord


class Deduplicator:
    """Remembers record keys for a single extraction run."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def admit(self, record: ShopRecord) -> bool:
        key = record.key()
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def filter(self, records: Iterable[ShopRecord]) -> List[ShopRecord]:
        return [record for record in records if self.admit(record)]

    def __len__(self) -> int:
        return len(self._seen)
