"""
Configuration for rule sets and aggregation runs.

Rule sets are YAML documents::

    fallback_label: misc
    total_label: total
    display_names:
      sockpuppetry: sockpuppets
    rules:
      - label: spam
        pattern: 'spam|advertis(ement|ing)'

Only ``rules`` is required. Rule order is precedence order.
"""

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .errors import ConfigError
from ..intelligence.aggregation import TOTAL_LABEL, BucketedAggregator
from ..intelligence.rules import FALLBACK_LABEL, PatternRegistry, build_registry

DEFAULT_RULES_RESOURCE = "default_rules.yaml"


@dataclass(frozen=True)
class ClassifierConfig:
    """Rule set and run settings for classification."""

    rules: Tuple[Tuple[str, str], ...]
    fallback_label: str = FALLBACK_LABEL
    total_label: str = TOTAL_LABEL
    display_names: Dict[str, str] = field(default_factory=dict)
    max_workers: Optional[int] = None

    def build_registry(self) -> PatternRegistry:
        """Compile the rule set into a registry."""
        return build_registry(self.rules, fallback_label=self.fallback_label)

    def build_aggregator(
        self,
        registry: Optional[PatternRegistry] = None,
        progress: bool = False,
    ) -> BucketedAggregator:
        """Create an aggregator using this configuration's run settings."""
        return BucketedAggregator(
            registry or self.build_registry(),
            total_label=self.total_label,
            display_names=self.display_names,
            max_workers=self.max_workers,
            progress=progress,
        )


def _parse_config(data: Any, source: str) -> ClassifierConfig:
    """Validate a loaded YAML document and convert it to a config."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping at the top level")

    raw_rules = data.get("rules")
    if not isinstance(raw_rules, list) or not raw_rules:
        raise ConfigError(f"{source}: missing required section 'rules'")

    rules = []
    for position, entry in enumerate(raw_rules):
        if not isinstance(entry, dict) or "label" not in entry or "pattern" not in entry:
            raise ConfigError(f"{source}: rule {position} needs 'label' and 'pattern'")
        label, pattern = entry["label"], entry["pattern"]
        if not isinstance(label, str) or not isinstance(pattern, str):
            raise ConfigError(f"{source}: rule {position} label and pattern must be strings")
        rules.append((label, pattern))

    labels = [label for label, _ in rules]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ConfigError(f"{source}: duplicate rule labels {duplicates}")

    fallback_label = data.get("fallback_label", FALLBACK_LABEL)
    total_label = data.get("total_label", TOTAL_LABEL)
    for key, value in (("fallback_label", fallback_label), ("total_label", total_label)):
        if not isinstance(value, str) or not value:
            raise ConfigError(f"{source}: '{key}' must be a non-empty string")
    if fallback_label in labels:
        raise ConfigError(f"{source}: rule label {fallback_label!r} collides with the fallback label")
    if total_label in labels or total_label == fallback_label:
        raise ConfigError(f"{source}: total label {total_label!r} collides with a rule category")

    display_names = data.get("display_names") or {}
    if not isinstance(display_names, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in display_names.items()
    ):
        raise ConfigError(f"{source}: 'display_names' must map category names to strings")

    max_workers = data.get("max_workers")
    if max_workers is not None and (
        isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1
    ):
        raise ConfigError(f"{source}: 'max_workers' must be a positive integer")

    return ClassifierConfig(
        rules=tuple(rules),
        fallback_label=fallback_label,
        total_label=total_label,
        display_names=dict(display_names),
        max_workers=max_workers,
    )


def load_config(path: Union[str, Path]) -> ClassifierConfig:
    """
    Load a rule set from a YAML file.

    Args:
        path: Path to the YAML document

    Returns:
        ClassifierConfig; patterns are compiled later by build_registry()

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{config_path}: invalid YAML: {exc}") from exc

    return _parse_config(data, str(config_path))


def default_config() -> ClassifierConfig:
    """Load the packaged block rationale rule set."""
    text = resources.files(__package__).joinpath(DEFAULT_RULES_RESOURCE).read_text(encoding="utf-8")
    return _parse_config(yaml.safe_load(text), DEFAULT_RULES_RESOURCE)
