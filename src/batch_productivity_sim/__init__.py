"""Batch Productivity Simulator - per-minute worker productivity over a shift."""

__version__ = "0.1.0"

from .config import Config
from .errors import ConfigurationError, InvalidArgumentError
from .generators import ProductivitySample, generate_series
from .roles import DEFAULT_ROLE_TABLE, RoleProfile, RoleTable, get_role_profile
from .simulator import ProductivitySimulator
from .stats import summarize

__all__ = [
    "Config",
    "ConfigurationError",
    "InvalidArgumentError",
    "ProductivitySample",
    "generate_series",
    "DEFAULT_ROLE_TABLE",
    "RoleProfile",
    "RoleTable",
    "get_role_profile",
    "ProductivitySimulator",
    "summarize",
    "__version__",
]
