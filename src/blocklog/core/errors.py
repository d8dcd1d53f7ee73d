"""
Error taxonomy for rule loading, classification, aggregation and sampling.
"""

from typing import Optional


class BlocklogError(Exception):
    """Base class for all blocklog errors."""


class ConfigError(BlocklogError):
    """Raised when a rule configuration file is missing or malformed."""


class PatternError(BlocklogError):
    """Raised when a rule cannot be compiled into a usable registry."""

    def __init__(self, message: str, label: Optional[str] = None, pattern: Optional[str] = None):
        super().__init__(message)
        self.label = label
        self.pattern = pattern


class ParseError(BlocklogError):
    """Raised when a time bucket is not a valid year+month key."""

    def __init__(self, message: str, bucket: object = None):
        super().__init__(message)
        self.bucket = bucket


class InvalidRecordError(BlocklogError):
    """Raised when a record in a pool has no reason text."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class SamplingError(BlocklogError):
    """Raised when a sample of the requested size cannot be drawn."""

    def __init__(self, message: str, requested_size: int, population_size: int):
        super().__init__(message)
        self.requested_size = requested_size
        self.population_size = population_size
