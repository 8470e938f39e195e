"""Convergence settings for the light-time iteration.

The criteria are plain frozen dataclasses so a single instance can be shared by
every leg of a link. Tolerances are absolute, in seconds of light time.
"""
from __future__ import annotations

import math
import os
import warnings
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping

import numpy as np

from .errors import LightTimeConfigurationError, LightTimeConvergenceError, LightTimeWarning

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class LightTimeFailureHandling(str, Enum):
    ACCEPT_WITHOUT_WARNING = "accept_without_warning"
    PRINT_WARNING_AND_ACCEPT = "print_warning_and_accept"
    THROW_EXCEPTION = "throw_exception"

    @classmethod
    def parse(cls, value: "LightTimeFailureHandling | str") -> "LightTimeFailureHandling":
        """Accept an enum member, its value or its (case-insensitive) member name."""
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key.lower() in (member.value, member.name.lower()):
                return member
        raise LightTimeConfigurationError(f"Unknown light-time failure handling: {value!r}")


def default_light_time_tolerance(scalar_type: Any = np.float64) -> float:
    """Default absolute light-time tolerance (s), tighter for wider float types."""
    precision = np.finfo(scalar_type).precision
    if precision >= 18:
        return 1.0e-15
    if precision >= 15:
        return 1.0e-12
    return 1.0e-6


@dataclass(frozen=True)
class LightTimeConvergenceCriteria:
    iterate_corrections: bool = False
    max_iterations: int = 50
    absolute_tolerance: float | None = None
    failure_handling: LightTimeFailureHandling = LightTimeFailureHandling.ACCEPT_WITHOUT_WARNING

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "failure_handling", LightTimeFailureHandling.parse(self.failure_handling)
        )
        if int(self.max_iterations) < 1:
            raise LightTimeConfigurationError(
                f"max_iterations must be >= 1; got {self.max_iterations}"
            )
        object.__setattr__(self, "max_iterations", int(self.max_iterations))
        if self.absolute_tolerance is not None:
            tol = float(self.absolute_tolerance)
            if tol < 0.0:
                raise LightTimeConfigurationError(
                    f"absolute_tolerance must be non-negative; got {self.absolute_tolerance}"
                )
            object.__setattr__(self, "absolute_tolerance", tol)

    def get_absolute_tolerance(self, scalar_type: Any = np.float64) -> float:
        if self.absolute_tolerance is not None and not math.isnan(self.absolute_tolerance):
            return self.absolute_tolerance
        return default_light_time_tolerance(scalar_type)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | None) -> "LightTimeConvergenceCriteria":
        """Build criteria from a configuration mapping (e.g. a parsed YAML section).

        Keys are case-insensitive; unknown keys are ignored with a warning and
        missing keys keep their defaults.
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise LightTimeConfigurationError(
                f"Invalid type for light-time convergence configuration: {type(raw)}"
            )
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for raw_key, raw_value in raw.items():
            name = str(raw_key).lower()
            if name not in known:
                warnings.warn(
                    f"Ignoring attribute {name} of {cls.__name__} :: not a convergence setting",
                    LightTimeWarning,
                )
                continue
            kwargs[name] = raw_value
        if "iterate_corrections" in kwargs:
            kwargs["iterate_corrections"] = _parse_bool(kwargs["iterate_corrections"])
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls,
        base: "LightTimeConvergenceCriteria | None" = None,
        prefix: str = "LINKTIME_",
    ) -> "LightTimeConvergenceCriteria":
        """Overlay LINKTIME_* environment variables on ``base`` (or the defaults)."""
        criteria = base if base is not None else cls()
        updates: dict[str, Any] = {}
        value = os.environ.get(f"{prefix}ITERATE_CORRECTIONS")
        if value:
            updates["iterate_corrections"] = _parse_bool(value)
        value = os.environ.get(f"{prefix}MAX_ITERATIONS")
        if value:
            updates["max_iterations"] = int(value)
        value = os.environ.get(f"{prefix}LIGHT_TIME_TOLERANCE")
        if value:
            updates["absolute_tolerance"] = float(value)
        value = os.environ.get(f"{prefix}FAILURE_HANDLING")
        if value:
            updates["failure_handling"] = LightTimeFailureHandling.parse(value)
        if not updates:
            return criteria
        return replace(criteria, **updates)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise LightTimeConfigurationError(f"Cannot interpret {value!r} as a boolean")


def is_light_time_solution_converged(
    criteria: LightTimeConvergenceCriteria,
    previous_light_time: float,
    new_light_time: float,
    iteration: int,
    current_correction: float,
    current_time: float,
    update_corrections: bool,
    scalar_type: Any = np.float64,
) -> tuple[bool, bool]:
    """Return (converged, update_corrections) for one light-time iteration.

    Once the tolerance is met with corrections frozen, corrections are switched on
    and one more iteration is requested before convergence is declared.
    The failure policy applies from iteration `max_iterations` onwards, so the
    extra iteration cannot carry the count past the limit unchecked.
    """
    residual = abs(float(new_light_time) - float(previous_light_time))
    if residual < criteria.get_absolute_tolerance(scalar_type):
        if not update_corrections:
            return False, True
        return True, update_corrections

    if iteration < criteria.max_iterations:
        return False, update_corrections

    message = (
        f"light time unconverged at level {residual:.6e}; current light-time corrections "
        f"are: {float(current_correction):.6e} and current time was {float(current_time):.6f}"
    )
    handling = criteria.failure_handling
    if handling is LightTimeFailureHandling.ACCEPT_WITHOUT_WARNING:
        return True, update_corrections
    if handling is LightTimeFailureHandling.PRINT_WARNING_AND_ACCEPT:
        warnings.warn(f"Warning, {message}", LightTimeWarning, stacklevel=3)
        return True, update_corrections
    raise LightTimeConvergenceError(
        f"Error, {message}",
        residual=residual,
        correction=float(current_correction),
        time=float(current_time),
    )
