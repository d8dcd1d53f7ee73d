"""Rule-based classification, aggregation and sampling of block records."""

# Pattern registry
from .rules import PatternRegistry, Rule, build_registry, FALLBACK_LABEL

# Cascade classification
from .classification import OutputMode, classify, classify_counts, classify_rows

# Monthly aggregation and yearly rollup
from .aggregation import (
    BucketedAggregator,
    aggregate_monthly,
    rollup_yearly,
    parse_bucket,
    TOTAL_LABEL,
)

# Hand-coding samples
from .sampling import StratifiedSampler, draw_sample

__all__ = [
    # Pattern registry
    "PatternRegistry",
    "Rule",
    "build_registry",
    "FALLBACK_LABEL",

    # Cascade classification
    "OutputMode",
    "classify",
    "classify_counts",
    "classify_rows",

    # Aggregation
    "BucketedAggregator",
    "aggregate_monthly",
    "rollup_yearly",
    "parse_bucket",
    "TOTAL_LABEL",

    # Sampling
    "StratifiedSampler",
    "draw_sample",
]
