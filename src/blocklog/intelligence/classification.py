"""
Cascade classification of record pools against a pattern registry.

A pool is partitioned rule by rule: each rule takes the records it matches
out of the pool before the next rule runs, so every record is attributed to
the first rule in registry order that matches it. Whatever is left after the
last rule goes to the fallback category.
"""

from enum import Enum
from typing import Iterator, List, Sequence, Tuple, Union

from ..core.errors import InvalidRecordError
from ..core.records import ClassificationOutcome, Record
from .rules import PatternRegistry, Rule


class OutputMode(Enum):
    """What the cascade reports for each category."""

    COUNTS = "counts"
    ROWS = "rows"


def _validate_pool(pool: Sequence[Record]) -> None:
    """Reject pools containing records without reason text."""
    for index, record in enumerate(pool):
        if not isinstance(record.reason_text, str):
            raise InvalidRecordError(
                f"Record {index} in bucket {record.time_bucket!r} has no reason text",
                index=index,
            )


def _split(rule: Rule, remaining: List[Record]) -> Tuple[List[Record], List[Record]]:
    """Separate the records a rule matches from the ones it does not."""
    matched = []
    unmatched = []
    for record in remaining:
        if rule.matches(record.reason_text):
            matched.append(record)
        else:
            unmatched.append(record)
    return matched, unmatched


def _cascade(pool: Sequence[Record], registry: PatternRegistry) -> Iterator[Tuple[str, List[Record]]]:
    """
    Yield (label, records) for each rule, then for the fallback.

    The unmatched remainder is threaded from one rule to the next. Once it
    is empty, later rules are reported with no records and never evaluated.
    """
    remaining = list(pool)
    for rule in registry:
        if remaining:
            matched, remaining = _split(rule, remaining)
        else:
            matched = []
        yield rule.label, matched
    yield registry.fallback_label, remaining


def classify(
    pool: Sequence[Record],
    registry: PatternRegistry,
    mode: OutputMode = OutputMode.COUNTS,
) -> Union[List[Tuple[str, int]], List[ClassificationOutcome]]:
    """
    Run the cascade over a pool in the requested output mode.

    Args:
        pool: Records to classify; never modified
        registry: Rules to apply, in precedence order
        mode: COUNTS for (label, count) pairs, ROWS for labeled records

    Returns:
        In COUNTS mode, one (label, count) pair per rule in registry order
        followed by the fallback. In ROWS mode, one outcome per input record,
        grouped by label in the same order.

    Raises:
        InvalidRecordError: If any record has no reason text
    """
    _validate_pool(pool)

    if mode is OutputMode.COUNTS:
        return [(label, len(records)) for label, records in _cascade(pool, registry)]

    return [
        ClassificationOutcome(record=record, matched_label=label)
        for label, records in _cascade(pool, registry)
        for record in records
    ]


def classify_counts(pool: Sequence[Record], registry: PatternRegistry) -> List[Tuple[str, int]]:
    """Count how many records of the pool fall into each category."""
    return classify(pool, registry, OutputMode.COUNTS)


def classify_rows(pool: Sequence[Record], registry: PatternRegistry) -> List[ClassificationOutcome]:
    """Tag every record of the pool with the category it falls into."""
    return classify(pool, registry, OutputMode.ROWS)
