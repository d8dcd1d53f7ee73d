"""
Per-month aggregation of classified records, with a yearly rollup.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tqdm import tqdm

from ..core.errors import ConfigError, ParseError
from ..core.records import AggregateRow, Record, UserType
from .classification import classify_counts
from .rules import PatternRegistry

logger = logging.getLogger(__name__)

TOTAL_LABEL = "total"
MONTH_BUCKET_RE = re.compile(r"[0-9]{4}(0[1-9]|1[0-2])")


def parse_bucket(bucket: Any) -> str:
    """
    Validate a year+month bucket key such as "200607".

    Raises:
        ParseError: If the key is not six digits with a month of 01-12
    """
    if not isinstance(bucket, str) or not MONTH_BUCKET_RE.fullmatch(bucket):
        raise ParseError(f"Malformed time bucket {bucket!r}, expected YYYYMM", bucket=bucket)
    return bucket


def year_of(bucket: str) -> str:
    """Year key of a monthly bucket."""
    return parse_bucket(bucket)[:4]


def group_by_bucket(records: Iterable[Record]) -> Dict[str, List[Record]]:
    """
    Group records by month, validating every bucket key first.

    Returns:
        Mapping of bucket to its records, keys in sorted order
    """
    groups: Dict[str, List[Record]] = {}
    for record in records:
        groups.setdefault(parse_bucket(record.time_bucket), []).append(record)
    return {bucket: groups[bucket] for bucket in sorted(groups)}


def rollup_yearly(monthly_rows: Iterable[AggregateRow]) -> List[AggregateRow]:
    """
    Sum monthly rows into yearly rows.

    Counts are added per (year, category); nothing is reclassified, so a
    yearly count is always the sum of that category's monthly counts.
    Categories keep the order in which they first appear in the input.

    Raises:
        ParseError: If a monthly bucket key is malformed
    """
    totals: Dict[Tuple[str, str], int] = {}
    category_order: Dict[str, int] = {}

    for row in monthly_rows:
        key = (year_of(row.bucket), row.category)
        totals[key] = totals.get(key, 0) + row.count
        category_order.setdefault(row.category, len(category_order))

    ordered = sorted(totals, key=lambda key: (key[0], category_order[key[1]]))
    return [AggregateRow(bucket=year, category=category, count=totals[(year, category)])
            for year, category in ordered]


class BucketedAggregator:
    """
    Classify records month by month and emit aggregate count rows.

    Each bucket is classified independently against the shared registry,
    optionally on a thread pool. Every bucket yields one row per rule, one
    for the fallback and one diagnostic total equal to the bucket size.
    """

    __slots__ = (
        "_registry",
        "_total_label",
        "_display_names",
        "_max_workers",
        "_progress",
        "_stats",
    )

    def __init__(
        self,
        registry: PatternRegistry,
        total_label: str = TOTAL_LABEL,
        display_names: Optional[Mapping[str, str]] = None,
        max_workers: Optional[int] = None,
        progress: bool = False,
    ):
        """
        Initialize bucketed aggregator.

        Args:
            registry: Rules to classify with
            total_label: Category name of the per-bucket diagnostic total
            display_names: Optional renaming of categories in the output
            max_workers: Thread pool size; None or 1 classifies sequentially
            progress: Show a progress bar over buckets
        """
        if total_label in registry.categories:
            raise ConfigError(f"Total label {total_label!r} collides with a rule category")

        self._registry = registry
        self._total_label = total_label
        self._display_names = dict(display_names or {})
        self._max_workers = max_workers
        self._progress = progress
        self._stats = {
            "runs": 0,
            "buckets_processed": 0,
            "records_classified": 0,
        }

        output_names = [self._display(category) for category in self.categories]
        if len(set(output_names)) != len(output_names):
            raise ConfigError(f"Display names map several categories to one name: {output_names}")

    @property
    def categories(self) -> List[str]:
        """Output categories per bucket before renaming, in row order."""
        return self._registry.categories + [self._total_label]

    def aggregate_monthly(self, records: Iterable[Record]) -> List[AggregateRow]:
        """
        Aggregate records into per-month category counts.

        All bucket keys are validated before any classification runs; one
        malformed key aborts the whole run.

        Args:
            records: Records to aggregate

        Returns:
            Rows sorted by bucket, then by category order

        Raises:
            ParseError: If any record has a malformed bucket key
            InvalidRecordError: If any record has no reason text
        """
        buckets = group_by_bucket(records)
        record_count = sum(len(pool) for pool in buckets.values())
        logger.info("Aggregating %d records across %d monthly buckets", record_count, len(buckets))

        results = self._classify_buckets(buckets)

        rows: List[AggregateRow] = []
        for bucket in buckets:
            rows.extend(results[bucket])

        self._stats["runs"] += 1
        self._stats["buckets_processed"] += len(buckets)
        self._stats["records_classified"] += record_count
        return rows

    def rollup_yearly(self, monthly_rows: Iterable[AggregateRow]) -> List[AggregateRow]:
        """Sum monthly rows into yearly rows."""
        return rollup_yearly(monthly_rows)

    def aggregate_by_user_type(self, records: Iterable[Record]) -> Dict[UserType, List[AggregateRow]]:
        """
        Aggregate each kind of account as its own monthly series.

        Returns:
            Mapping of user type to its monthly rows, for user types present
        """
        by_type: Dict[UserType, List[Record]] = {}
        for record in records:
            by_type.setdefault(record.user_type, []).append(record)

        return {
            user_type: self.aggregate_monthly(by_type[user_type])
            for user_type in UserType
            if user_type in by_type
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get aggregation statistics."""
        return {
            "runs": self._stats["runs"],
            "buckets_processed": self._stats["buckets_processed"],
            "records_classified": self._stats["records_classified"],
            "rules_loaded": len(self._registry),
            "max_workers": self._max_workers,
        }

    def _display(self, category: str) -> str:
        return self._display_names.get(category, category)

    def _classify_bucket(self, bucket: str, pool: Sequence[Record]) -> List[AggregateRow]:
        """Classify one bucket into its count rows."""
        counts = classify_counts(pool, self._registry)
        rows = [AggregateRow(bucket=bucket, category=self._display(label), count=count)
                for label, count in counts]
        rows.append(AggregateRow(bucket=bucket, category=self._display(self._total_label), count=len(pool)))
        logger.debug("Bucket %s: %s", bucket, counts)
        return rows

    def _classify_buckets(self, buckets: Dict[str, List[Record]]) -> Dict[str, List[AggregateRow]]:
        """Classify every bucket, sequentially or on a thread pool."""
        if not self._max_workers or self._max_workers <= 1 or len(buckets) <= 1:
            items = tqdm(
                buckets.items(),
                desc="Classifying",
                unit="buckets",
                total=len(buckets),
                disable=not self._progress,
            )
            return {bucket: self._classify_bucket(bucket, pool) for bucket, pool in items}

        results: Dict[str, List[AggregateRow]] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {
                bucket: executor.submit(self._classify_bucket, bucket, pool)
                for bucket, pool in buckets.items()
            }
            for bucket in tqdm(futures, desc="Classifying", unit="buckets", disable=not self._progress):
                results[bucket] = futures[bucket].result()
        return results


def aggregate_monthly(
    records: Iterable[Record],
    registry: PatternRegistry,
    total_label: str = TOTAL_LABEL,
    display_names: Optional[Mapping[str, str]] = None,
    max_workers: Optional[int] = None,
) -> List[AggregateRow]:
    """Aggregate records into per-month category counts."""
    aggregator = BucketedAggregator(
        registry,
        total_label=total_label,
        display_names=display_names,
        max_workers=max_workers,
    )
    return aggregator.aggregate_monthly(records)
