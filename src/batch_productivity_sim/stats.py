"""Summary figures shown next to the productivity charts.

These use the same cycle and depth lookups as the generator so the cards and
the chart always agree.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Sequence

from .errors import InvalidArgumentError
from .generators import DEFAULT_NUM_POINTS, ProductivitySample
from .roles import RoleProfile

DEPTH_SCALE = 10.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def cycle_time(profile: RoleProfile, batch_size: int) -> float:
    """Minutes per unit completed."""
    return profile.cycle_for(batch_size)


def variance_dip(
    profile: RoleProfile,
    batch_size: int,
    variance_pct: float,
    depth_scale: float = DEPTH_SCALE,
) -> int:
    """Rounded depth of a single variance dip, in percentage points."""
    return _round_half_up(profile.depth_for(batch_size) * variance_pct / depth_scale)


def estimated_completions(
    profile: RoleProfile,
    batch_size: int,
    num_points: int = DEFAULT_NUM_POINTS,
) -> int:
    """Units completed over the shift at one unit per cycle."""
    if num_points <= 0:
        raise InvalidArgumentError(f"num_points must be positive, got {num_points!r}")
    return int(math.floor(num_points / profile.cycle_for(batch_size)))


@dataclass(frozen=True)
class ShiftSummary:
    """Derived figures for one role/batch/variance selection."""

    role: str
    batch_size: int
    variance_pct: float
    cycle_time: float
    variance_dip: int
    estimated_completions: int
    shift_hours: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def summarize(
    profile: RoleProfile,
    batch_size: int,
    variance_pct: float,
    num_points: int = DEFAULT_NUM_POINTS,
    depth_scale: float = DEPTH_SCALE,
) -> ShiftSummary:
    return ShiftSummary(
        role=profile.role_id,
        batch_size=batch_size,
        variance_pct=variance_pct,
        cycle_time=cycle_time(profile, batch_size),
        variance_dip=variance_dip(profile, batch_size, variance_pct, depth_scale),
        estimated_completions=estimated_completions(profile, batch_size, num_points),
        shift_hours=num_points / 60,
    )


def series_statistics(
    samples: Sequence[ProductivitySample],
    threshold: float = 50.0,
) -> Dict[str, Any]:
    """Mean/min/max productivity and minutes spent below ``threshold``."""
    if not samples:
        raise InvalidArgumentError("Cannot compute statistics of an empty series")

    values = [s.productivity for s in samples]
    return {
        "points": len(values),
        "mean_pct": round(sum(values) / len(values), 2),
        "min_pct": min(values),
        "max_pct": max(values),
        "minutes_below_threshold": sum(1 for v in values if v < threshold),
        "threshold_pct": threshold,
    }
