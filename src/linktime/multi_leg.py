"""Light time over a chain of legs (e.g. station -> spacecraft -> station).

Link ends are indexed 0 (first transmitter) to n (final receiver); leg i joins
link ends i and i+1 and is solved by its own LightTimeCalculator. The solve
walks upstream from the reference link end with reception times fixed, then
downstream with transmission times fixed. Retransmission delays at the nodes
are added to the total and shift the time at which the next leg is solved.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from .ancillary import AncillarySettingType, ObservationAncillarySimulationSettings
from .errors import LightTimeConfigurationError
from .light_time import LightTimeCalculator
from .link_ends import LinkEndType, n_way_link_index_from_link_end_type
from .models import MultiLegLightTimeSolution

__all__ = ["MultiLegLightTimeCalculator", "normalize_retransmission_delays"]


def normalize_retransmission_delays(
    retransmission_delays: Optional[Iterable[float]], number_of_link_ends: int
) -> np.ndarray:
    """Return one delay per link end.

    Delays may be given for every link end, or for the interior link ends only
    (transmitter and receiver delays are then zero).
    """
    if retransmission_delays is None:
        return np.zeros(number_of_link_ends, dtype=float)
    delays = np.asarray(list(retransmission_delays), dtype=float).reshape(-1)
    if delays.shape[0] == number_of_link_ends:
        return delays.copy()
    if delays.shape[0] == number_of_link_ends - 2:
        return np.concatenate(([0.0], delays, [0.0]))
    raise LightTimeConfigurationError(
        "Error when computing multi-leg light time: size of retransmission delays "
        f"({delays.shape[0]}) is invalid, should be {number_of_link_ends} or "
        f"{number_of_link_ends - 2}."
    )


class MultiLegLightTimeCalculator:
    def __init__(self, light_time_calculators: Sequence[LightTimeCalculator]) -> None:
        calculators = list(light_time_calculators)
        if not calculators:
            raise LightTimeConfigurationError("A multi-leg light time needs at least one leg.")
        for calculator in calculators:
            if not isinstance(calculator, LightTimeCalculator):
                raise TypeError(
                    f"legs must be LightTimeCalculator instances; got {type(calculator).__name__}"
                )
        self._calculators = calculators

    @property
    def light_time_calculators(self) -> list[LightTimeCalculator]:
        return list(self._calculators)

    @property
    def number_of_links(self) -> int:
        return len(self._calculators)

    @property
    def number_of_link_ends(self) -> int:
        return len(self._calculators) + 1

    def reference_index(self, reference_link_end: int | LinkEndType | str) -> int:
        if isinstance(reference_link_end, (LinkEndType, str)):
            return n_way_link_index_from_link_end_type(reference_link_end, self.number_of_link_ends)
        index = int(reference_link_end)
        if index < 0 or index >= self.number_of_link_ends:
            raise LightTimeConfigurationError(
                f"Reference link end index {index} out of range for "
                f"{self.number_of_link_ends} link ends"
            )
        return index

    def solve(
        self,
        time: float,
        reference_link_end: int | LinkEndType | str,
        retransmission_delays: Optional[Iterable[float]] = None,
        ancillary_settings: Optional[ObservationAncillarySimulationSettings] = None,
        initial_guess: Optional[MultiLegLightTimeSolution] = None,
    ) -> MultiLegLightTimeSolution:
        """Solve every leg for a signal with the reference link end at ``time``.

        ``retransmission_delays`` takes precedence over the delays stored in
        ``ancillary_settings``; without either, all delays are zero.
        ``initial_guess`` (a previous solution of this chain) warm-starts each leg.
        """
        n_links = self.number_of_links
        n_ends = self.number_of_link_ends

        if retransmission_delays is None and ancillary_settings is not None:
            retransmission_delays = ancillary_settings.get_double_vector_data(
                AncillarySettingType.RETRANSMISSION_DELAYS
            )
        delays = normalize_retransmission_delays(retransmission_delays, n_ends)

        start = self.reference_index(reference_link_end)
        if start not in (0, n_ends - 1) and delays[start] != 0.0:
            raise LightTimeConfigurationError(
                "Error when computing light time with reference link end that is not receiver "
                "or transmitter: dealing with non-zero retransmission delays at the reference "
                "link end is not implemented. It would require distinguishing between "
                "reception and transmission delays."
            )

        guess_times = None
        if initial_guess is not None and initial_guess.link_end_times.shape == (2 * n_links,):
            guess_times = initial_guess.link_end_times

        link_end_times = np.full(2 * n_links, np.nan, dtype=float)
        link_end_states = np.full((2 * n_links, 6), np.nan, dtype=float)
        leg_light_times = np.full(n_links, np.nan, dtype=float)

        total_light_time = delays[start]

        current_reception_time = time - delays[start]
        for leg in range(start - 1, -1, -1):
            solution = self._calculators[leg].solve(
                current_reception_time,
                is_time_at_reception=True,
                initial_guess=self._leg_guess(guess_times, leg),
            )
            self._store_leg(leg, solution, link_end_times, link_end_states, leg_light_times)
            current_light_time = solution.light_time + delays[leg]
            current_reception_time -= current_light_time
            total_light_time += current_light_time

        current_transmission_time = time + delays[start]
        for leg in range(start, n_links):
            solution = self._calculators[leg].solve(
                current_transmission_time,
                is_time_at_reception=False,
                initial_guess=self._leg_guess(guess_times, leg),
            )
            self._store_leg(leg, solution, link_end_times, link_end_states, leg_light_times)
            current_light_time = solution.light_time + delays[leg + 1]
            current_transmission_time += current_light_time
            total_light_time += current_light_time

        return MultiLegLightTimeSolution(
            light_time=total_light_time,
            link_end_times=link_end_times,
            link_end_states=link_end_states,
            retransmission_delays=delays,
            leg_light_times=leg_light_times,
            reference_link_end_index=start,
        )

    def calculate_light_time_with_link_end_states(
        self,
        time: float,
        reference_link_end: int | LinkEndType | str,
        ancillary_settings: Optional[ObservationAncillarySimulationSettings] = None,
    ) -> tuple[float, np.ndarray, np.ndarray]:
        """Return (total light time, link end times (2n,), link end states (2n, 6))."""
        solution = self.solve(time, reference_link_end, ancillary_settings=ancillary_settings)
        return solution.light_time, solution.link_end_times, solution.link_end_states

    def total_ideal_light_time(self) -> float:
        return float(sum(c.current_ideal_light_time for c in self._calculators))

    def total_light_time_corrections(self) -> float:
        return float(sum(c.current_correction for c in self._calculators))

    @staticmethod
    def _leg_guess(guess_times: Optional[np.ndarray], leg: int) -> Optional[tuple[float, float]]:
        if guess_times is None:
            return None
        return float(guess_times[2 * leg]), float(guess_times[2 * leg + 1])

    @staticmethod
    def _store_leg(leg, solution, link_end_times, link_end_states, leg_light_times) -> None:
        link_end_times[2 * leg] = solution.transmission_time
        link_end_times[2 * leg + 1] = solution.reception_time
        link_end_states[2 * leg] = solution.transmitter_state
        link_end_states[2 * leg + 1] = solution.receiver_state
        leg_light_times[leg] = solution.light_time
