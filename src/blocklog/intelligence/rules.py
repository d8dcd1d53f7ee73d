"""
Ordered registry of rationale classification rules.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Pattern, Sequence, Tuple

from ..core.errors import PatternError

logger = logging.getLogger(__name__)

FALLBACK_LABEL = "misc"


@dataclass(frozen=True)
class Rule:
    """A single classification rule and its place in the cascade."""

    label: str
    pattern: Pattern[str]
    precedence: int

    def matches(self, text: str) -> bool:
        """Check whether the rule's pattern occurs anywhere in text."""
        return self.pattern.search(text) is not None


class PatternRegistry:
    """
    Immutable, precedence-ordered set of classification rules.

    Rules are compiled case-insensitively once, at build time. A registry
    holds no mutable state and can be shared across threads.
    """

    __slots__ = ("_rules", "_fallback_label")

    def __init__(self, rules: Sequence[Rule], fallback_label: str = FALLBACK_LABEL):
        self._rules: Tuple[Rule, ...] = tuple(rules)
        self._fallback_label = fallback_label

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"PatternRegistry(labels={self.labels!r}, fallback={self._fallback_label!r})"

    @property
    def fallback_label(self) -> str:
        """Label given to records no rule matches."""
        return self._fallback_label

    @property
    def labels(self) -> List[str]:
        """Rule labels in precedence order, fallback excluded."""
        return [rule.label for rule in self._rules]

    @property
    def categories(self) -> List[str]:
        """Every label the classifier can emit, in output order."""
        return self.labels + [self._fallback_label]


def compile_rule(label: str, source: str, precedence: int) -> Rule:
    """
    Compile one (label, pattern) pair.

    Raises:
        PatternError: If the label is empty or the pattern does not compile
    """
    if not isinstance(label, str) or not label:
        raise PatternError(f"Rule {precedence} has no label", label=label, pattern=source)
    if not isinstance(source, str) or not source:
        raise PatternError(f"Rule {label!r} has no pattern", label=label, pattern=source)

    try:
        pattern = re.compile(source, re.IGNORECASE)
    except re.error as exc:
        raise PatternError(
            f"Rule {label!r} has an invalid pattern: {exc}", label=label, pattern=source
        ) from exc

    return Rule(label=label, pattern=pattern, precedence=precedence)


def build_registry(
    rules: Iterable[Tuple[str, str]],
    fallback_label: str = FALLBACK_LABEL,
) -> PatternRegistry:
    """
    Build a registry from ordered (label, pattern source) pairs.

    Order is significant: a record matching several rules is attributed
    to the earliest one.

    Args:
        rules: Ordered (label, pattern source) pairs
        fallback_label: Label for records no rule matches

    Returns:
        PatternRegistry ready for classification

    Raises:
        PatternError: On an invalid pattern, a duplicate label, or a label
            that collides with the fallback
    """
    if not isinstance(fallback_label, str) or not fallback_label:
        raise PatternError("Fallback label must be a non-empty string", label=fallback_label)

    compiled: List[Rule] = []
    seen = set()

    for precedence, (label, source) in enumerate(rules):
        rule = compile_rule(label, source, precedence)
        if rule.label == fallback_label:
            raise PatternError(
                f"Rule label {label!r} collides with the fallback label",
                label=label,
                pattern=source,
            )
        if rule.label in seen:
            raise PatternError(f"Duplicate rule label {label!r}", label=label, pattern=source)
        seen.add(rule.label)
        compiled.append(rule)

    logger.info("Built pattern registry with %d rules", len(compiled))
    return PatternRegistry(compiled, fallback_label=fallback_label)
