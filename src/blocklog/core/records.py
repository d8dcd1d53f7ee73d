"""
Data model for block log records and the tables derived from them.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import InvalidRecordError


class UserType(Enum):
    """Kind of account an action was taken against."""

    REGISTERED = "registered"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Record:
    """A single block or log entry."""

    reason_text: Optional[str]
    time_bucket: str
    user_type: UserType = UserType.REGISTERED

    def __post_init__(self):
        try:
            user_type = UserType(self.user_type)
        except ValueError as exc:
            raise InvalidRecordError(
                f"Record in bucket {self.time_bucket!r} has unknown user type {self.user_type!r}"
            ) from exc
        object.__setattr__(self, "user_type", user_type)


@dataclass(frozen=True)
class ClassificationOutcome:
    """A record tagged with the category it was attributed to."""

    record: Record
    matched_label: str

    def to_dict(self) -> Dict[str, str]:
        """Flatten outcome into a single tabular row."""
        return {
            "reason": self.record.reason_text or "",
            "timestamp": self.record.time_bucket,
            "user_type": self.record.user_type.value,
            "matched_regex": self.matched_label,
        }


@dataclass(frozen=True)
class AggregateRow:
    """Count of records in one bucket attributed to one category."""

    bucket: str
    category: str
    count: int


@dataclass(frozen=True)
class SampleDraw:
    """A labeled sample together with the population it was drawn from."""

    requested_size: int
    population: Tuple[Record, ...]
    drawn: Tuple[ClassificationOutcome, ...]
    remaining: Tuple[Record, ...] = field(default_factory=tuple)

    def label_counts(self) -> List[Tuple[str, int]]:
        """
        Count drawn rows per label.

        Labels appear in the order the classifier emitted them, which is
        registry order followed by the fallback label.
        """
        counts = Counter(outcome.matched_label for outcome in self.drawn)
        ordered = []
        seen = set()
        for outcome in self.drawn:
            if outcome.matched_label not in seen:
                seen.add(outcome.matched_label)
                ordered.append((outcome.matched_label, counts[outcome.matched_label]))
        return ordered

    def proportions(self) -> Dict[str, float]:
        """Share of the drawn rows attributed to each label."""
        if not self.drawn:
            return {}
        total = len(self.drawn)
        return {label: count / total for label, count in self.label_counts()}


def filter_user_type(records: Iterable[Record], user_type: UserType) -> List[Record]:
    """Keep only records taken against the given kind of account."""
    return [record for record in records if record.user_type == user_type]


def pivot_rows(rows: Iterable[AggregateRow]) -> Dict[str, Dict[str, int]]:
    """
    Reshape long aggregate rows into a wide table.

    Args:
        rows: Aggregate rows in any order

    Returns:
        Mapping of bucket to an ordered mapping of category to count
    """
    table: Dict[str, Dict[str, int]] = {}
    for row in rows:
        table.setdefault(row.bucket, {})[row.category] = row.count
    return table
