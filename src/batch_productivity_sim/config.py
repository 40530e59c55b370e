"""Configuration management for the productivity simulator."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .roles import BATCH_SIZES, DEFAULT_ROLE_TABLE, RoleTable


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Read an integer environment variable; unset or empty keeps the default."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data[name]
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' section must be a mapping")
    return section


@dataclass
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: str = ""
    password: str = ""
    client_id: str = "batch-productivity-sim"
    qos: int = 1


@dataclass
class UNSConfig:
    """Unified Namespace configuration for published results."""

    enterprise: str = "acme_pharmacy"
    site: str = "fulfillment_center"
    topic_prefix: str = "umh/v1"


@dataclass
class ShiftConfig:
    """Shape of the simulated shift."""

    num_points: int = 480  # minutes, 8-hour shift
    baseline: float = 100.0
    break_minutes: List[int] = field(default_factory=lambda: [120, 240, 360])
    break_window: int = 4  # ±minutes around each break
    break_penalty: float = 40.0
    fatigue_drift: float = 8.0  # points lost by the end of the shift
    noise_amplitude: float = 5.0  # full width, centred on zero


@dataclass
class VarianceConfig:
    """Variance knob range and normalisation."""

    min_pct: int = 1
    max_pct: int = 20
    probability_scale: float = 100.0  # variance_pct / scale = dip probability
    depth_scale: float = 10.0  # variance_pct / scale = depth multiplier


@dataclass
class SimulationConfig:
    """Simulation defaults."""

    random_seed: Optional[int] = None
    default_role: str = "fridge"
    default_batch_size: int = 30
    default_variance_pct: int = 8
    parallel: bool = False  # generate comparison series in a thread pool


@dataclass
class Config:
    """Main configuration container."""

    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    uns: UNSConfig = field(default_factory=UNSConfig)
    shift: ShiftConfig = field(default_factory=ShiftConfig)
    variance: VarianceConfig = field(default_factory=VarianceConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    roles: RoleTable = field(default_factory=lambda: DEFAULT_ROLE_TABLE)

    @classmethod
    def from_yaml(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file."""
        if not config_path.exists():
            return cls.default()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")

        return cls._from_dict(data)

    @classmethod
    def from_env(cls, config: Optional["Config"] = None) -> "Config":
        """Apply environment variable overrides on top of a config."""
        config = config or cls.default()

        # Override MQTT settings from env
        config.mqtt.broker = os.getenv("MQTT_BROKER", config.mqtt.broker)
        config.mqtt.port = _env_int("MQTT_PORT", config.mqtt.port)
        config.mqtt.username = os.getenv("MQTT_USERNAME", config.mqtt.username)
        config.mqtt.password = os.getenv("MQTT_PASSWORD", config.mqtt.password)

        # Override UNS settings
        config.uns.enterprise = os.getenv("UNS_ENTERPRISE", config.uns.enterprise)
        config.uns.site = os.getenv("UNS_SITE", config.uns.site)

        # Override simulation settings
        config.simulation.random_seed = _env_int("SIM_RANDOM_SEED", config.simulation.random_seed)
        config.shift.num_points = _env_int("SIM_NUM_POINTS", config.shift.num_points)

        return config

    @classmethod
    def default(cls) -> "Config":
        """Create default configuration with the standard role table."""
        return cls()

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary."""
        config = cls.default()

        # MQTT config
        if "mqtt" in data:
            mqtt_data = _section(data, "mqtt")
            config.mqtt = MQTTConfig(
                broker=mqtt_data.get("broker", config.mqtt.broker),
                port=mqtt_data.get("port", config.mqtt.port),
                username=mqtt_data.get("username", config.mqtt.username),
                password=mqtt_data.get("password", config.mqtt.password),
                client_id=mqtt_data.get("client_id", config.mqtt.client_id),
                qos=mqtt_data.get("qos", config.mqtt.qos),
            )

        # UNS config
        if "uns" in data:
            uns_data = _section(data, "uns")
            config.uns = UNSConfig(
                enterprise=uns_data.get("enterprise", config.uns.enterprise),
                site=uns_data.get("site", config.uns.site),
                topic_prefix=uns_data.get("topic_prefix", config.uns.topic_prefix),
            )

        # Shift shape
        if "shift" in data:
            shift_data = _section(data, "shift")
            break_minutes = shift_data.get("break_minutes", config.shift.break_minutes)
            if not isinstance(break_minutes, list):
                raise ConfigurationError("shift.break_minutes must be a list of minutes")
            config.shift = ShiftConfig(
                num_points=shift_data.get("num_points", config.shift.num_points),
                baseline=shift_data.get("baseline", config.shift.baseline),
                break_minutes=list(break_minutes),
                break_window=shift_data.get("break_window", config.shift.break_window),
                break_penalty=shift_data.get("break_penalty", config.shift.break_penalty),
                fatigue_drift=shift_data.get("fatigue_drift", config.shift.fatigue_drift),
                noise_amplitude=shift_data.get(
                    "noise_amplitude", config.shift.noise_amplitude
                ),
            )

        # Variance normalisation
        if "variance" in data:
            var_data = _section(data, "variance")
            config.variance = VarianceConfig(
                min_pct=var_data.get("min_pct", config.variance.min_pct),
                max_pct=var_data.get("max_pct", config.variance.max_pct),
                probability_scale=var_data.get(
                    "probability_scale", config.variance.probability_scale
                ),
                depth_scale=var_data.get("depth_scale", config.variance.depth_scale),
            )
            if config.variance.min_pct > config.variance.max_pct:
                raise ConfigurationError(
                    f"variance.min_pct ({config.variance.min_pct}) exceeds "
                    f"variance.max_pct ({config.variance.max_pct})"
                )

        # Simulation config
        if "simulation" in data:
            sim_data = _section(data, "simulation")
            config.simulation = SimulationConfig(
                random_seed=sim_data.get("random_seed"),
                default_role=sim_data.get("default_role", config.simulation.default_role),
                default_batch_size=sim_data.get(
                    "default_batch_size", config.simulation.default_batch_size
                ),
                default_variance_pct=sim_data.get(
                    "default_variance_pct", config.simulation.default_variance_pct
                ),
                parallel=sim_data.get("parallel", config.simulation.parallel),
            )

        # Roles replace the default table wholesale
        if "roles" in data:
            batch_sizes = data.get("batch_sizes", BATCH_SIZES)
            config.roles = RoleTable.from_dict(data["roles"], batch_sizes)
        elif "batch_sizes" in data:
            config.roles = RoleTable(list(DEFAULT_ROLE_TABLE), data["batch_sizes"])

        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        data = {
            "mqtt": {
                "broker": self.mqtt.broker,
                "port": self.mqtt.port,
                "username": self.mqtt.username,
                "password": self.mqtt.password,
                "client_id": self.mqtt.client_id,
                "qos": self.mqtt.qos,
            },
            "uns": {
                "enterprise": self.uns.enterprise,
                "site": self.uns.site,
                "topic_prefix": self.uns.topic_prefix,
            },
            "shift": {
                "num_points": self.shift.num_points,
                "baseline": self.shift.baseline,
                "break_minutes": list(self.shift.break_minutes),
                "break_window": self.shift.break_window,
                "break_penalty": self.shift.break_penalty,
                "fatigue_drift": self.shift.fatigue_drift,
                "noise_amplitude": self.shift.noise_amplitude,
            },
            "variance": {
                "min_pct": self.variance.min_pct,
                "max_pct": self.variance.max_pct,
                "probability_scale": self.variance.probability_scale,
                "depth_scale": self.variance.depth_scale,
            },
            "simulation": {
                "random_seed": self.simulation.random_seed,
                "default_role": self.simulation.default_role,
                "default_batch_size": self.simulation.default_batch_size,
                "default_variance_pct": self.simulation.default_variance_pct,
                "parallel": self.simulation.parallel,
            },
            "batch_sizes": list(self.roles.batch_sizes),
            "roles": self.roles.to_dict(),
        }

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
