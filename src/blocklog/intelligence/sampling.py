"""
Fixed-size, labeled samples for hand-coding validation.
"""

import logging
import random
from typing import Any, Dict, Iterable, Optional, Sequence, Union

from ..core.errors import SamplingError
from ..core.records import Record, SampleDraw
from .aggregation import group_by_bucket
from .classification import classify_rows
from .rules import PatternRegistry

logger = logging.getLogger(__name__)


def draw_sample(
    population: Sequence[Record],
    requested_size: int,
    registry: PatternRegistry,
    random_seed: Optional[Union[int, str]] = None,
) -> SampleDraw:
    """
    Draw records without replacement and label them.

    Only the drawn records are run through the cascade, so their labels
    depend on their own text alone.

    Args:
        population: Records to draw from
        requested_size: Number of records to draw
        registry: Rules used to label the drawn records
        random_seed: Seed for a reproducible draw; None draws freshly

    Returns:
        SampleDraw whose remaining records keep population order

    Raises:
        SamplingError: If the size is negative, larger than the population,
            or zero for a non-empty population
    """
    population = tuple(population)
    size = len(population)

    if requested_size > size or requested_size < 0 or (requested_size == 0 and size > 0):
        raise SamplingError(
            f"Cannot draw {requested_size} records from a population of {size}",
            requested_size=requested_size,
            population_size=size,
        )

    # Isolated random source per call
    rng = random.Random(random_seed)
    indices = rng.sample(range(size), requested_size)
    chosen = set(indices)

    drawn = classify_rows([population[i] for i in indices], registry)
    remaining = tuple(record for i, record in enumerate(population) if i not in chosen)

    logger.debug("Drew %d of %d records, %d remaining", requested_size, size, len(remaining))
    return SampleDraw(
        requested_size=requested_size,
        population=population,
        drawn=tuple(drawn),
        remaining=remaining,
    )


class StratifiedSampler:
    """
    Draw hand-coding samples against a fixed registry.

    Supports single draws over a population and per-month draws, where
    every bucket contributes the same number of labeled records.
    """

    __slots__ = ("_registry", "_stats")

    def __init__(self, registry: PatternRegistry):
        self._registry = registry
        self._stats = {"draws": 0, "records_drawn": 0}

    def draw(
        self,
        population: Sequence[Record],
        size: int,
        seed: Optional[Union[int, str]] = None,
    ) -> SampleDraw:
        """Draw and label `size` records from the population."""
        sample = draw_sample(population, size, self._registry, random_seed=seed)
        self._stats["draws"] += 1
        self._stats["records_drawn"] += len(sample.drawn)
        return sample

    def draw_per_bucket(
        self,
        records: Iterable[Record],
        size_per_bucket: int,
        seed: Optional[Union[int, str]] = None,
    ) -> Dict[str, SampleDraw]:
        """
        Draw `size_per_bucket` records from every month independently.

        Each bucket's seed is derived from the run seed and the bucket key,
        so adding or removing a month leaves the other draws unchanged.

        Raises:
            ParseError: If a bucket key is malformed
            SamplingError: If a bucket holds fewer records than requested
        """
        samples = {}
        for bucket, pool in group_by_bucket(records).items():
            bucket_seed = None if seed is None else f"{seed}:{bucket}"
            samples[bucket] = self.draw(pool, size_per_bucket, seed=bucket_seed)
        return samples

    def get_statistics(self) -> Dict[str, Any]:
        """Get sampler statistics."""
        return {
            "draws": self._stats["draws"],
            "records_drawn": self._stats["records_drawn"],
            "rules_loaded": len(self._registry),
        }
