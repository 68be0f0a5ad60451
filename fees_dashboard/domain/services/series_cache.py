from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from fees_dashboard.domain.entities.fee_series import DailyFeeRecord


class SeriesCache:
    """Daily fee records per metric id.

    Entries are write-once: ``merge`` only fills days that are absent, so
    re-merging the same or older data never changes what is stored. Nothing
    is ever evicted.
    """

    def __init__(self, initial: Mapping[str, Mapping[date, DailyFeeRecord]] | None = None):
        self._buckets: dict[str, dict[date, DailyFeeRecord]] = {}
        for metric_id, records in (initial or {}).items():
            self.merge(metric_id, records)

    def get(self, metric_id: str, day: date) -> DailyFeeRecord | None:
        bucket = self._buckets.get(metric_id)
        if bucket is None:
            return None
        return bucket.get(day)

    def has(self, metric_id: str, day: date) -> bool:
        bucket = self._buckets.get(metric_id)
        return bucket is not None and day in bucket

    def merge(self, metric_id: str, records: Mapping[date, DailyFeeRecord]) -> int:
        bucket = self._buckets.setdefault(metric_id, {})
        inserted = 0
        for day, record in records.items():
            if day in bucket:
                continue
            bucket[day] = record
            inserted += 1
        return inserted

    def merge_records(self, metric_id: str, records: Iterable[DailyFeeRecord]) -> int:
        by_day: dict[date, DailyFeeRecord] = {}
        for record in records:
            # first record of a day wins, same as against the cache
            by_day.setdefault(record.day, record)
        return self.merge(metric_id, by_day)

    def metric_ids(self) -> list[str]:
        return sorted(self._buckets)

    def count(self, metric_id: str) -> int:
        return len(self._buckets.get(metric_id, ()))
