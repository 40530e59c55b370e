"""Role parameter table.

Each role carries the timing data measured on the floor:

    Fridge Filler            avg 34s/order   -> batch 30: 17min | 15: 9min | 5: 3min
    Pharmacist Verification  avg 7.5s/order  -> batch 30: 4min  | 15: 2min | 5: 1min
    Shippers                 avg 12.5s/order -> batch 30: 6min  | 15: 3min | 5: 1min
    Tech Verification        avg 9s/cooler   -> batch 30: 5min  | 15: 2min | 5: 1min

The table is validated once when it is built; lookups afterwards only check
the identifiers passed in.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from .errors import ConfigurationError

BATCH_SIZES: Tuple[int, ...] = (30, 15, 5)


@dataclass(frozen=True)
class RoleProfile:
    """Timing parameters for one job role."""

    role_id: str
    name: str
    time_per_unit: float  # seconds per order, descriptive only
    cycles_by_batch: Mapping[int, float] = field(default_factory=dict)
    depths_by_batch: Mapping[int, float] = field(default_factory=dict)
    icon: str = ""
    color: str = ""

    def __post_init__(self):
        # Read-only views; callers cannot mutate a loaded table
        object.__setattr__(
            self, "cycles_by_batch", MappingProxyType(dict(self.cycles_by_batch))
        )
        object.__setattr__(
            self, "depths_by_batch", MappingProxyType(dict(self.depths_by_batch))
        )

    def cycle_for(self, batch_size: int) -> float:
        """Minutes to complete one unit at the given batch size."""
        try:
            return self.cycles_by_batch[batch_size]
        except KeyError:
            raise ConfigurationError(
                f"Unsupported batch size {batch_size!r} for role '{self.role_id}'"
            ) from None

    def depth_for(self, batch_size: int) -> float:
        """Base dip depth (percentage points) at the given batch size."""
        try:
            return self.depths_by_batch[batch_size]
        except KeyError:
            raise ConfigurationError(
                f"Unsupported batch size {batch_size!r} for role '{self.role_id}'"
            ) from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "time_per_unit": self.time_per_unit,
            "cycles": dict(self.cycles_by_batch),
            "depths": dict(self.depths_by_batch),
            "icon": self.icon,
            "color": self.color,
        }


class RoleTable:
    """Immutable, validated mapping of role id to RoleProfile."""

    def __init__(
        self,
        profiles: Iterable[RoleProfile],
        batch_sizes: Iterable[int] = BATCH_SIZES,
    ):
        try:
            self._batch_sizes = tuple(int(b) for b in batch_sizes)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid batch sizes {batch_sizes!r}: {e}") from e
        self._profiles: Mapping[str, RoleProfile] = MappingProxyType(
            {p.role_id: p for p in profiles}
        )
        self._validate()

    @property
    def batch_sizes(self) -> Tuple[int, ...]:
        return self._batch_sizes

    @property
    def role_ids(self) -> Tuple[str, ...]:
        return tuple(self._profiles)

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._profiles

    def __iter__(self) -> Iterator[RoleProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, role_id: str) -> RoleProfile:
        """Return the profile for a role, or raise ConfigurationError."""
        try:
            return self._profiles[role_id]
        except KeyError:
            raise ConfigurationError(f"Undefined role: {role_id!r}") from None

    def _validate(self) -> None:
        if not self._batch_sizes:
            raise ConfigurationError("At least one batch size must be supported")
        if not self._profiles:
            raise ConfigurationError("Role table is empty")

        for profile in self._profiles.values():
            for batch_size in self._batch_sizes:
                for label, table in (
                    ("cycle", profile.cycles_by_batch),
                    ("depth", profile.depths_by_batch),
                ):
                    if batch_size not in table:
                        raise ConfigurationError(
                            f"Role '{profile.role_id}' has no {label} for batch size {batch_size}"
                        )
                    if table[batch_size] <= 0:
                        raise ConfigurationError(
                            f"Role '{profile.role_id}' {label} for batch size "
                            f"{batch_size} must be positive, got {table[batch_size]}"
                        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        batch_sizes: Iterable[int] = BATCH_SIZES,
    ) -> "RoleTable":
        """Build a table from YAML-shaped data.

        Expected shape::

            fridge:
              name: Fridge Filler
              time_per_unit: 34
              cycles: {30: 17, 15: 9, 5: 3}
              depths: {30: 35, 15: 20, 5: 8}
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Roles must be a mapping of role id to role data, got {type(data).__name__}"
            )
        profiles = []
        for role_id, role_data in data.items():
            if not isinstance(role_data, Mapping):
                raise ConfigurationError(f"Role '{role_id}' must be a mapping")
            try:
                profiles.append(
                    RoleProfile(
                        role_id=str(role_id),
                        name=role_data.get("name", str(role_id)),
                        time_per_unit=float(role_data.get("time_per_unit", 0.0)),
                        cycles_by_batch=_batch_table(role_data.get("cycles", {})),
                        depths_by_batch=_batch_table(role_data.get("depths", {})),
                        icon=role_data.get("icon", ""),
                        color=role_data.get("color", ""),
                    )
                )
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid data for role '{role_id}': {e}") from e
        return cls(profiles, batch_sizes)

    def to_dict(self) -> Dict[str, Any]:
        return {role_id: p.to_dict() for role_id, p in self._profiles.items()}


def _batch_table(table: Mapping[Any, Any]) -> Dict[int, float]:
    if not isinstance(table, Mapping):
        raise TypeError(f"expected a batch size mapping, got {table!r}")
    result = {}
    for key, value in table.items():
        number = float(value)
        result[int(key)] = int(number) if number.is_integer() else number
    return result


DEFAULT_ROLE_TABLE = RoleTable(
    [
        RoleProfile(
            role_id="fridge",
            name="Fridge Filler",
            icon="❄️",
            color="#e05c5c",
            time_per_unit=34,
            cycles_by_batch={30: 17, 15: 9, 5: 3},
            depths_by_batch={30: 35, 15: 20, 5: 8},
        ),
        RoleProfile(
            role_id="pharma",
            name="Pharmacist Verification",
            icon="💊",
            color="#e09a3a",
            time_per_unit=7.5,
            cycles_by_batch={30: 4, 15: 2, 5: 1},
            depths_by_batch={30: 30, 15: 15, 5: 6},
        ),
        RoleProfile(
            role_id="shippers",
            name="Shippers",
            icon="📦",
            color="#5b9bd5",
            time_per_unit=12.5,
            cycles_by_batch={30: 6, 15: 3, 5: 1},
            depths_by_batch={30: 32, 15: 18, 5: 7},
        ),
        RoleProfile(
            role_id="tech",
            name="Tech Verification",
            icon="✅",
            color="#4caf82",
            time_per_unit=9,
            cycles_by_batch={30: 5, 15: 2, 5: 1},
            depths_by_batch={30: 31, 15: 16, 5: 6},
        ),
    ]
)


def get_role_profile(role_id: str, table: Optional[RoleTable] = None) -> RoleProfile:
    """Look up a role in the given table (default table if omitted)."""
    if table is None:
        table = DEFAULT_ROLE_TABLE
    return table.get(role_id)
