"""Single-leg light-time solution.

The transmitter and receiver are described by state functions of time. The
light time is found by fixed-point iteration: hold the known end at the input
time, move the other end by the current light-time estimate, re-evaluate its
state and recompute the estimate until successive values agree to within the
configured tolerance. Corrections (troposphere, relativity, hardware delays...)
are summed and added to the Euclidean light time.

Conventions:
- States are [x, y, z, vx, vy, vz] in km and km/s; times and light times in s.
- ``is_time_at_reception=True`` means the input time is the reception time and
  the transmission time is solved for.
"""
from __future__ import annotations

import math
import os
from typing import Any, Iterable, Optional, Sequence, Tuple

import numpy as np

from .constants import C_KM_S
from .convergence import LightTimeConvergenceCriteria, is_light_time_solution_converged
from .corrections import (
    LightTimeCorrection,
    LightTimeCorrectionFunction,
    as_light_time_corrections,
    total_light_time_correction,
)
from .models import LightTimeSolution, StateFunction

__all__ = ["LightTimeCalculator"]


def _trace(message: str) -> None:
    if os.environ.get("LINKTIME_TRACE", "0") == "1":
        print(f"[light-time-trace] {message}", flush=True)


class LightTimeCalculator:
    """Light time between two moving link ends, with optional corrections.

    The instance keeps the ideal light time and total correction of its most
    recent solve (used by partial-derivative code); it is not re-entrant.
    """

    def __init__(
        self,
        transmitter_state_function: StateFunction,
        receiver_state_function: StateFunction,
        corrections: Optional[Iterable[LightTimeCorrection | LightTimeCorrectionFunction]] = None,
        convergence_criteria: Optional[LightTimeConvergenceCriteria] = None,
        *,
        speed_of_light: float = C_KM_S,
        scalar_type: Any = np.float64,
    ) -> None:
        if not callable(transmitter_state_function) or not callable(receiver_state_function):
            raise TypeError("state functions must be callable")
        if not speed_of_light > 0.0:
            raise ValueError(f"speed_of_light must be positive; got {speed_of_light}")
        self.transmitter_state_function = transmitter_state_function
        self.receiver_state_function = receiver_state_function
        self._corrections = as_light_time_corrections(corrections)
        self._criteria = (
            convergence_criteria if convergence_criteria is not None else LightTimeConvergenceCriteria()
        )
        self.scalar_type = np.dtype(scalar_type).type
        self.speed_of_light = self.scalar_type(speed_of_light)
        self._current_ideal_light_time = self.scalar_type(0.0)
        self._current_correction = self.scalar_type(0.0)

    @property
    def corrections(self) -> list[LightTimeCorrection]:
        return list(self._corrections)

    @property
    def convergence_criteria(self) -> LightTimeConvergenceCriteria:
        return self._criteria

    @property
    def current_ideal_light_time(self) -> float:
        """Distance / c of the last light-time estimate, without corrections."""
        return self._current_ideal_light_time

    @property
    def current_correction(self) -> float:
        """Total correction used in the last light-time estimate."""
        return self._current_correction

    def calculate_light_time(self, time: float, is_time_at_reception: bool = True) -> float:
        return self.solve(time, is_time_at_reception).light_time

    def calculate_light_time_with_link_end_states(
        self, time: float, is_time_at_reception: bool = True
    ) -> Tuple[float, np.ndarray, np.ndarray]:
        """Return (light_time, transmitter_state, receiver_state)."""
        solution = self.solve(time, is_time_at_reception)
        return solution.light_time, solution.transmitter_state, solution.receiver_state

    def calculate_relative_range_vector(
        self, time: float, is_time_at_reception: bool = True
    ) -> np.ndarray:
        """Receiver position at reception minus transmitter position at transmission."""
        return self.solve(time, is_time_at_reception).range_vector

    def solve(
        self,
        time: float,
        is_time_at_reception: bool = True,
        initial_guess: Optional[Sequence[float]] = None,
    ) -> LightTimeSolution:
        """Iterate the light-time equation at ``time``.

        ``initial_guess`` is an optional (transmission_time, reception_time) pair
        used as starting point instead of the zero-light-time seed; it only
        changes the number of iterations.
        """
        time = self.scalar_type(time)
        if not math.isfinite(float(time)):
            raise ValueError(f"time must be finite; got {time}")

        transmission_time, reception_time = time, time
        if initial_guess is not None:
            guess_tx, guess_rx = (self.scalar_type(t) for t in initial_guess)
            if math.isfinite(float(guess_tx)) and math.isfinite(float(guess_rx)):
                transmission_time, reception_time = guess_tx, guess_rx
        transmitter_state = self._transmitter_state(transmission_time)
        receiver_state = self._receiver_state(reception_time)

        self._set_total_light_time_correction(
            transmitter_state, receiver_state, transmission_time, reception_time
        )
        previous_light_time = self._new_light_time_estimate(receiver_state, transmitter_state)
        new_light_time = previous_light_time

        update_corrections = bool(self._criteria.iterate_corrections)
        converged = False
        counter = 0
        while not converged:
            if update_corrections:
                self._set_total_light_time_correction(
                    transmitter_state, receiver_state, transmission_time, reception_time
                )

            if is_time_at_reception:
                reception_time = time
                transmission_time = time - previous_light_time
                transmitter_state = self._transmitter_state(transmission_time)
            else:
                reception_time = time + previous_light_time
                transmission_time = time
                receiver_state = self._receiver_state(reception_time)

            new_light_time = self._new_light_time_estimate(receiver_state, transmitter_state)
            _trace(
                f"iter={counter} light_time={float(new_light_time):.15e} "
                f"delta={abs(float(new_light_time - previous_light_time)):.3e} "
                f"correction={float(self._current_correction):.3e}"
            )
            converged, update_corrections = is_light_time_solution_converged(
                self._criteria,
                previous_light_time,
                new_light_time,
                counter,
                self._current_correction,
                time,
                update_corrections,
                self.scalar_type,
            )
            residual = abs(new_light_time - previous_light_time)
            previous_light_time = new_light_time
            counter += 1

        return LightTimeSolution(
            light_time=new_light_time,
            transmission_time=transmission_time,
            reception_time=reception_time,
            transmitter_state=transmitter_state,
            receiver_state=receiver_state,
            ideal_light_time=self._current_ideal_light_time,
            correction=self._current_correction,
            iterations=counter,
            converged=bool(residual < self._criteria.get_absolute_tolerance(self.scalar_type)),
        )

    def partial_of_light_time_wrt_link_end_position(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time: float,
        reception_time: float,
        is_partial_wrt_receiver: bool,
    ) -> np.ndarray:
        """d(light time * c)/d(position) of one link end, scaled by the correction.

        Refreshes the cached correction at the given states and times.
        """
        transmitter_state = self._as_state(transmitter_state)
        receiver_state = self._as_state(receiver_state)
        self._set_total_light_time_correction(
            transmitter_state, receiver_state, transmission_time, reception_time
        )
        relative_position = receiver_state[:3] - transmitter_state[:3]
        distance = np.linalg.norm(relative_position)
        if distance == 0.0:
            raise ValueError("link ends coincide; light-time position partial is undefined")
        sign = 1.0 if is_partial_wrt_receiver else -1.0
        return sign * (relative_position / distance) * (1.0 + self._current_correction / distance)

    def _as_state(self, state: Any) -> np.ndarray:
        arr = np.asarray(state, dtype=self.scalar_type).reshape(-1)
        if arr.shape != (6,):
            raise ValueError(f"state must have 6 components; got shape {np.shape(state)}")
        return arr

    def _transmitter_state(self, time) -> np.ndarray:
        return self._as_state(self.transmitter_state_function(time))

    def _receiver_state(self, time) -> np.ndarray:
        return self._as_state(self.receiver_state_function(time))

    def _new_light_time_estimate(self, receiver_state: np.ndarray, transmitter_state: np.ndarray):
        distance = np.linalg.norm(receiver_state[:3] - transmitter_state[:3])
        self._current_ideal_light_time = self.scalar_type(distance) / self.speed_of_light
        return self._current_ideal_light_time + self._current_correction

    def _set_total_light_time_correction(
        self,
        transmitter_state: np.ndarray,
        receiver_state: np.ndarray,
        transmission_time,
        reception_time,
    ) -> None:
        self._current_correction = self.scalar_type(
            total_light_time_correction(
                self._corrections,
                transmitter_state.astype(float),
                receiver_state.astype(float),
                float(transmission_time),
                float(reception_time),
            )
        )
