"""Pluggable light-time corrections.

A correction is any object deriving from :class:`LightTimeCorrection`; plain
callables with the signature ``f(tx_state, rx_state, tx_time, rx_time) -> float``
are lifted with :class:`LightTimeCorrectionFunctionWrapper`. The light-time
solver only ever sums corrections, so new kinds can be added without touching it.
"""
from __future__ import annotations

import warnings
from typing import Callable, Iterable, Sequence

import numpy as np

from .errors import LightTimeWarning
from .link_ends import LinkEndType

LightTimeCorrectionFunction = Callable[[np.ndarray, np.ndarray, float, float], float]


class LightTimeCorrection:
    """Base class for a scalar delay (s) added to the straight-line light time."""

    _correction_type = "custom_light_time_correction"

    def __init__(self) -> None:
        self._partial_warning_issued = False

    @property
    def correction_type(self) -> str:
        """Descriptive name of the correction model; not used by the solver."""
        return self._correction_type

    def calculate_light_time_correction(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
    ) -> float:
        raise NotImplementedError

    def __call__(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
    ) -> float:
        return self.calculate_light_time_correction(
            transmitter_state, receiver_state, transmission_time, reception_time
        )

    def partial_wrt_link_end_time(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
        fixed_link_end: LinkEndType,
        link_end_at_which_partial_is_evaluated: LinkEndType,
    ) -> float:
        """Partial of the correction w.r.t. a link-end time; zero unless overridden."""
        self._warn_partial_unavailable()
        return 0.0

    def partial_wrt_link_end_position(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
        link_end_at_which_partial_is_evaluated: LinkEndType,
    ) -> np.ndarray:
        """Partial of the correction w.r.t. a link-end position; zeros unless overridden."""
        self._warn_partial_unavailable()
        return np.zeros(3, dtype=float)

    def _warn_partial_unavailable(self) -> None:
        if getattr(self, "_partial_warning_issued", False):
            return
        self._partial_warning_issued = True
        warnings.warn(
            f"Light-time partial not yet implemented in {type(self).__name__}; using zero.",
            LightTimeWarning,
            stacklevel=3,
        )


class LightTimeCorrectionFunctionWrapper(LightTimeCorrection):
    """Adapter turning a plain correction function into a LightTimeCorrection."""

    _correction_type = "function_wrapper_light_time_correction"

    def __init__(self, correction_function: LightTimeCorrectionFunction) -> None:
        super().__init__()
        if not callable(correction_function):
            raise TypeError("correction_function must be callable")
        self.correction_function = correction_function

    def calculate_light_time_correction(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
    ) -> float:
        return float(
            self.correction_function(
                transmitter_state, receiver_state, transmission_time, reception_time
            )
        )


class ConstantLightTimeCorrection(LightTimeCorrection):
    """Fixed delay, e.g. a calibrated hardware or cable delay."""

    _correction_type = "constant_light_time_correction"

    def __init__(self, value_s: float) -> None:
        super().__init__()
        self.value_s = float(value_s)

    def calculate_light_time_correction(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
    ) -> float:
        return self.value_s

    def partial_wrt_link_end_time(self, *args, **kwargs) -> float:
        return 0.0

    def partial_wrt_link_end_position(self, *args, **kwargs) -> np.ndarray:
        return np.zeros(3, dtype=float)


def as_light_time_correction(
    correction: LightTimeCorrection | LightTimeCorrectionFunction,
) -> LightTimeCorrection:
    if isinstance(correction, LightTimeCorrection):
        return correction
    if callable(correction):
        return LightTimeCorrectionFunctionWrapper(correction)
    raise TypeError(f"Cannot use {type(correction).__name__} as a light-time correction")


def as_light_time_corrections(
    corrections: Iterable[LightTimeCorrection | LightTimeCorrectionFunction] | None,
) -> list[LightTimeCorrection]:
    if corrections is None:
        return []
    return [as_light_time_correction(c) for c in corrections]


def total_light_time_correction(
    corrections: Sequence[LightTimeCorrection],
    transmitter_state: np.ndarray,
    receiver_state: np.ndarray,
    transmission_time: float,
    reception_time: float,
) -> float:
    total = 0.0
    for correction in corrections:
        total += float(
            correction.calculate_light_time_correction(
                transmitter_state, receiver_state, transmission_time, reception_time
            )
        )
    return total
