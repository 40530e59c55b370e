"""Simulator tying the role table, generator and publisher together.

A presentation layer asks for one selection (role, batch size, variance) and
gets back everything it draws:

- the series for the selected batch size
- one comparison series per supported batch size
- the summary cards (cycle time, dip depth, estimated completions)

Nothing is cached; every run recomputes from scratch.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Config
from .generators import (
    ProductivitySample,
    ProductivitySeriesGenerator,
    RandomSource,
    make_random_source,
)
from .mqtt_client import MQTTClient
from .stats import ShiftSummary, series_statistics, summarize

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Everything produced for one role/batch/variance selection."""

    role: str
    batch_size: int
    variance_pct: float
    series: List[ProductivitySample]
    summary: ShiftSummary
    comparison: Dict[int, List[ProductivitySample]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "batch_size": self.batch_size,
            "variance_pct": self.variance_pct,
            "summary": self.summary.to_dict(),
            "series": [s.to_dict() for s in self.series],
            "comparison": {
                str(batch): [s.to_dict() for s in samples]
                for batch, samples in self.comparison.items()
            },
        }


class ProductivitySimulator:
    """Runs selections against a configured role table."""

    NAMESPACE = "_productivity"

    def __init__(
        self,
        config: Config,
        mqtt_client: Optional[MQTTClient] = None,
        random_source: Optional[RandomSource] = None,
    ):
        self.config = config
        self._mqtt = mqtt_client

        if random_source is None:
            random_source = make_random_source(config.simulation.random_seed)
        self._random_source = random_source

        self.generator = self._make_generator(random_source)

    def _make_generator(self, random_source: RandomSource) -> ProductivitySeriesGenerator:
        return ProductivitySeriesGenerator(
            table=self.config.roles,
            shift=self.config.shift,
            variance=self.config.variance,
            random_source=random_source,
        )

    @property
    def roles(self):
        return self.config.roles

    def run(
        self,
        role: Optional[str] = None,
        batch_size: Optional[int] = None,
        variance_pct: Optional[float] = None,
        compare: bool = True,
    ) -> SimulationResult:
        """Generate the selected series, the comparison set and the summary."""
        sim = self.config.simulation
        role = role if role is not None else sim.default_role
        batch_size = batch_size if batch_size is not None else sim.default_batch_size
        variance_pct = variance_pct if variance_pct is not None else sim.default_variance_pct

        profile = self.roles.get(role)
        num_points = self.config.shift.num_points

        series = self.generator.generate_series(role, batch_size, variance_pct, num_points)
        summary = summarize(
            profile,
            batch_size,
            variance_pct,
            num_points,
            depth_scale=self.config.variance.depth_scale,
        )

        comparison = {}
        if compare:
            comparison = self.compare(role, variance_pct)

        logger.info(
            f"Simulated {profile.name} batch {batch_size} at {variance_pct}% variance "
            f"({len(series)} minutes, {len(comparison)} comparison series)"
        )
        return SimulationResult(
            role=role,
            batch_size=batch_size,
            variance_pct=variance_pct,
            series=series,
            summary=summary,
            comparison=comparison,
        )

    def compare(self, role: str, variance_pct: float) -> Dict[int, List[ProductivitySample]]:
        """One series per supported batch size, generated independently.

        Each batch size gets its own random source, seeded in order from the
        simulator's source before any work starts, so a seeded simulator gives
        the same comparison whether or not it runs in a thread pool.
        """
        batch_sizes = self.roles.batch_sizes
        num_points = self.config.shift.num_points
        seeds = [int(self._random_source() * 2**32) for _ in batch_sizes]

        def _generate(batch_size: int, seed: int) -> List[ProductivitySample]:
            generator = self._make_generator(make_random_source(seed))
            return generator.generate_series(role, batch_size, variance_pct, num_points)

        if self.config.simulation.parallel:
            with ThreadPoolExecutor(max_workers=len(batch_sizes)) as pool:
                results = list(pool.map(_generate, batch_sizes, seeds))
        else:
            results = [_generate(b, s) for b, s in zip(batch_sizes, seeds)]

        return dict(zip(batch_sizes, results))

    def publish(self, result: SimulationResult) -> int:
        """Publish a result through the MQTT client. Returns messages queued."""
        if self._mqtt is None:
            raise RuntimeError("No MQTT client configured")

        base = f"{self.NAMESPACE}/{result.role}"
        queued = 0

        if self._mqtt.publish(f"{base}/summary", result.summary.to_dict(), retain=True):
            queued += 1

        series_by_batch = dict(result.comparison)
        # Selected series wins over its comparison twin
        series_by_batch[result.batch_size] = result.series

        for batch_size, samples in series_by_batch.items():
            topic = f"{base}/batch_{batch_size}"
            payload = {
                "role": result.role,
                "batch_size": batch_size,
                "variance_pct": result.variance_pct,
                "selected": batch_size == result.batch_size,
                "samples": [s.to_dict() for s in samples],
            }
            if self._mqtt.publish(f"{topic}/series", payload, retain=True):
                queued += 1
            if self._mqtt.publish(f"{topic}/stats", series_statistics(samples), retain=True):
                queued += 1

        logger.info(f"Queued {queued} messages under {base}")
        return queued
