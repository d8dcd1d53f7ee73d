"""
blocklog - rule-based rationale classification for block and log records.

Classifies free-text block reasons into mutually exclusive categories with an
ordered cascade of patterns, aggregates the results by month and year, and
draws labeled samples for hand-coding validation.
"""

# Core data model and configuration
from .core.errors import (
    BlocklogError,
    ConfigError,
    PatternError,
    ParseError,
    InvalidRecordError,
    SamplingError,
)
from .core.records import (
    UserType,
    Record,
    ClassificationOutcome,
    AggregateRow,
    SampleDraw,
    filter_user_type,
    pivot_rows,
)
from .core.config import ClassifierConfig, load_config, default_config
from .core.serializers import TableEncoder

# Rule-based intelligence
from .intelligence.rules import PatternRegistry, Rule, build_registry, FALLBACK_LABEL
from .intelligence.classification import OutputMode, classify, classify_counts, classify_rows
from .intelligence.aggregation import (
    BucketedAggregator,
    aggregate_monthly,
    rollup_yearly,
    TOTAL_LABEL,
)
from .intelligence.sampling import StratifiedSampler, draw_sample

__version__ = "0.1.0"
__all__ = [
    # Errors
    "BlocklogError",
    "ConfigError",
    "PatternError",
    "ParseError",
    "InvalidRecordError",
    "SamplingError",
    # Data model
    "UserType",
    "Record",
    "ClassificationOutcome",
    "AggregateRow",
    "SampleDraw",
    "filter_user_type",
    "pivot_rows",
    # Configuration
    "ClassifierConfig",
    "load_config",
    "default_config",
    # Serialization
    "TableEncoder",
    # Registry and classification
    "PatternRegistry",
    "Rule",
    "build_registry",
    "FALLBACK_LABEL",
    "OutputMode",
    "classify",
    "classify_counts",
    "classify_rows",
    # Aggregation
    "BucketedAggregator",
    "aggregate_monthly",
    "rollup_yearly",
    "TOTAL_LABEL",
    # Sampling
    "StratifiedSampler",
    "draw_sample",
]
