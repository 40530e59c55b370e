"""Synthetic productivity series for a single worker over one shift.

Each minute of the shift is computed independently, in a fixed order:

1. Start from the baseline (100).
2. Subtract the break penalty inside the ±window around each break minute.
3. Subtract the fatigue drift, linear in the position within the shift.
4. At cycle boundaries outside a break window, draw a dip with probability
   ``variance_pct / 100`` and depth ``depth * variance_pct / 10``.
5. Add uniform noise.
6. Clamp to [0, 100].

The variance percentage drives both the dip probability and the dip depth.
Randomness comes from an injectable source so runs can be replayed.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import ShiftConfig, VarianceConfig
from .errors import InvalidArgumentError
from .roles import DEFAULT_ROLE_TABLE, RoleTable

logger = logging.getLogger(__name__)

# Zero-argument callable returning a uniform float in [0, 1)
RandomSource = Callable[[], float]

DEFAULT_NUM_POINTS = 480


def make_random_source(seed: Optional[int] = None) -> RandomSource:
    """Return a random source, seeded when a seed is given."""
    if seed is None:
        return random.random
    return random.Random(seed).random


@dataclass(frozen=True)
class ProductivitySample:
    """Productivity at one minute of the shift."""

    minute: int
    productivity: float

    def to_dict(self) -> Dict[str, Any]:
        return {"minute": self.minute, "productivity": self.productivity}


@dataclass
class SimulationRequest:
    """Parameters for one generated series."""

    role: str
    batch_size: int
    variance_pct: float
    num_points: int = DEFAULT_NUM_POINTS


class ProductivitySeriesGenerator:
    """Generates per-minute productivity series from a role table."""

    def __init__(
        self,
        table: Optional[RoleTable] = None,
        shift: Optional[ShiftConfig] = None,
        variance: Optional[VarianceConfig] = None,
        random_source: Optional[RandomSource] = None,
    ):
        self.table = table if table is not None else DEFAULT_ROLE_TABLE
        self.shift = shift or ShiftConfig()
        self.variance = variance or VarianceConfig()
        self.random_source = random_source or random.random

    def is_break_minute(self, minute: int) -> bool:
        """True if the minute falls inside any break window."""
        window = self.shift.break_window
        return any(abs(minute - b) <= window for b in self.shift.break_minutes)

    def dip_probability(self, variance_pct: float) -> float:
        return variance_pct / self.variance.probability_scale

    def dip_multiplier(self, variance_pct: float) -> float:
        """Depth multiplier; 1.0 at variance_pct == depth_scale."""
        return variance_pct / self.variance.depth_scale

    def validate(self, request: SimulationRequest) -> Tuple[float, float]:
        """Check a request and return its (cycle, depth) lookups."""
        profile = self.table.get(request.role)
        cycle = profile.cycle_for(request.batch_size)
        depth = profile.depth_for(request.batch_size)

        num_points = request.num_points
        if isinstance(num_points, bool) or not isinstance(num_points, int) or num_points <= 0:
            raise InvalidArgumentError(
                f"num_points must be a positive integer, got {num_points!r}"
            )

        pct = request.variance_pct
        low, high = self.variance.min_pct, self.variance.max_pct
        if isinstance(pct, bool) or not isinstance(pct, (int, float)) or not low <= pct <= high:
            raise InvalidArgumentError(
                f"variance_pct must be between {low} and {high}, got {pct!r}"
            )

        return cycle, depth

    def generate(self, request: SimulationRequest) -> List[ProductivitySample]:
        """Generate the full series for a request."""
        cycle, depth = self.validate(request)

        shift = self.shift
        num_points = request.num_points
        probability = self.dip_probability(request.variance_pct)
        dip_depth = depth * self.dip_multiplier(request.variance_pct)
        rand = self.random_source

        samples = []
        dips = 0
        for minute in range(num_points):
            productivity = shift.baseline

            near_break = self.is_break_minute(minute)
            if near_break:
                productivity -= shift.break_penalty

            productivity -= shift.fatigue_drift * (minute / num_points)

            if minute % cycle == 0 and not near_break:
                if rand() < probability:
                    productivity -= dip_depth
                    dips += 1

            productivity += (rand() - 0.5) * shift.noise_amplitude

            productivity = max(0.0, min(100.0, productivity))
            samples.append(ProductivitySample(minute, round(productivity, 1)))

        logger.debug(
            f"Generated {num_points} points for {request.role}/batch {request.batch_size} "
            f"at {request.variance_pct}% variance ({dips} dips)"
        )
        return samples

    def generate_series(
        self,
        role: str,
        batch_size: int,
        variance_pct: float,
        num_points: Optional[int] = None,
    ) -> List[ProductivitySample]:
        if num_points is None:
            num_points = self.shift.num_points
        return self.generate(SimulationRequest(role, batch_size, variance_pct, num_points))


def generate_series(
    role: str,
    batch_size: int,
    variance_pct: float,
    num_points: int = DEFAULT_NUM_POINTS,
    *,
    table: Optional[RoleTable] = None,
    shift: Optional[ShiftConfig] = None,
    variance: Optional[VarianceConfig] = None,
    random_source: Optional[RandomSource] = None,
) -> List[ProductivitySample]:
    """Generate one productivity series.

    Raises ConfigurationError for an unknown role or batch size, and
    InvalidArgumentError for a non-positive ``num_points`` or a variance
    outside the configured range.
    """
    generator = ProductivitySeriesGenerator(table, shift, variance, random_source)
    return generator.generate(SimulationRequest(role, batch_size, variance_pct, num_points))
