"""Core data model, configuration and serialization."""

from .errors import (
    BlocklogError,
    ConfigError,
    PatternError,
    ParseError,
    InvalidRecordError,
    SamplingError,
)
from .records import (
    UserType,
    Record,
    ClassificationOutcome,
    AggregateRow,
    SampleDraw,
    filter_user_type,
    pivot_rows,
)
from .config import ClassifierConfig, load_config, default_config
from .serializers import TableEncoder

__all__ = [
    "BlocklogError",
    "ConfigError",
    "PatternError",
    "ParseError",
    "InvalidRecordError",
    "SamplingError",
    "UserType",
    "Record",
    "ClassificationOutcome",
    "AggregateRow",
    "SampleDraw",
    "filter_user_type",
    "pivot_rows",
    "ClassifierConfig",
    "load_config",
    "default_config",
    "TableEncoder",
]
