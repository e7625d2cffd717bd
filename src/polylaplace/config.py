"""Configuration for polylaplace operator builders.

This module provides the package-wide logging controls, small environment
helpers, and the `OperatorConfig` value object that every builder accepts.
Tolerances and the cotangent clamping toggle live in `OperatorConfig` and are
passed explicitly into each call rather than kept as global state.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("polylaplace.config")
_PACKAGE_LOGGER = logging.getLogger("polylaplace")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Args:
        level: A standard logging level name or integer.
    """
    _PACKAGE_LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("POLYLAPLACE_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def bool_env(varname: str, default: bool) -> bool:
    """Read an environment variable and interpret it as a boolean.

    True values: 'y', 'yes', 't', 'true', 'on', '1'.
    False values: 'n', 'no', 'f', 'false', 'off', '0'.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        A boolean value parsed from the environment.
    """
    val = os.getenv(varname, str(default))
    val = val.lower()
    if val in ("y", "yes", "t", "true", "on", "1"):
        return True
    if val in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError(f"invalid truth value {val!r} for environment {varname!r}")


def float_env(varname: str, default: float) -> float:
    """Read an environment variable and interpret it as a float.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        The float value parsed from the environment.
    """
    return float(os.getenv(varname, repr(default)))


# -----------------------------------------------------------------------------
# Operator configuration
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class OperatorConfig:
    """Numerical settings shared by the operator builders.

    Attributes:
        area_tolerance (float): Kites with area at or below this value are
            skipped by the local stiffness and mass builders.
        gradient_tolerance (float): Fan triangles with area below this value
            get a zero hat-function gradient.
        weight_sum_tolerance (float): Maximum deviation of the virtual point
            weights from summing to one before falling back to uniform weights.
        clamp_degenerate_cotangents (bool): Clamp kite cotangents to
            ``[-cotangent_bound, cotangent_bound]`` in the stiffness builder.
        cotangent_bound (float): Clamp bound, about cot(3 degrees).
    """

    area_tolerance: float = 1e-7
    gradient_tolerance: float = 1e-10
    weight_sum_tolerance: float = 1e-8
    clamp_degenerate_cotangents: bool = False
    cotangent_bound: float = 19.1

    def __post_init__(self) -> None:
        for name in ("area_tolerance", "gradient_tolerance", "weight_sum_tolerance"):
            value = getattr(self, name)
            if not value >= 0.0:
                _LOGGER.error("OperatorConfig: %s must be >= 0; got %r", name, value)
                raise ValueError(f"{name} must be non-negative; got {value!r}")
        if not self.cotangent_bound > 0.0:
            raise ValueError(
                f"cotangent_bound must be positive; got {self.cotangent_bound!r}"
            )

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build a configuration from ``POLYLAPLACE_*`` environment variables.

        Reads ``POLYLAPLACE_CLAMP_COTAN``, ``POLYLAPLACE_AREA_TOL`` and
        ``POLYLAPLACE_GRADIENT_TOL``; unset variables keep their defaults.
        """
        defaults = cls()
        cfg = cls(
            area_tolerance=float_env("POLYLAPLACE_AREA_TOL", defaults.area_tolerance),
            gradient_tolerance=float_env(
                "POLYLAPLACE_GRADIENT_TOL", defaults.gradient_tolerance
            ),
            weight_sum_tolerance=defaults.weight_sum_tolerance,
            clamp_degenerate_cotangents=bool_env(
                "POLYLAPLACE_CLAMP_COTAN", defaults.clamp_degenerate_cotangents
            ),
            cotangent_bound=defaults.cotangent_bound,
        )
        _LOGGER.debug("OperatorConfig.from_env -> %r", cfg)
        return cfg


def resolve_config(config: OperatorConfig | None) -> OperatorConfig:
    """Return `config`, or the default `OperatorConfig` when it is None."""
    return OperatorConfig() if config is None else config
