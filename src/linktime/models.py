from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

# time (s) -> state [x, y, z, vx, vy, vz] in km, km/s
StateFunction = Callable[[float], np.ndarray]


@dataclass
class LightTimeSolution:
    light_time: float
    transmission_time: float
    reception_time: float
    transmitter_state: np.ndarray  # shape (6,)
    receiver_state: np.ndarray  # shape (6,)
    ideal_light_time: float
    correction: float
    iterations: int
    converged: bool

    @property
    def range_vector(self) -> np.ndarray:
        return self.receiver_state[:3] - self.transmitter_state[:3]


@dataclass
class MultiLegLightTimeSolution:
    light_time: float
    link_end_times: np.ndarray  # shape (2n,), transmitter then receiver per leg
    link_end_states: np.ndarray  # shape (2n, 6)
    retransmission_delays: np.ndarray  # shape (n+1,)
    leg_light_times: np.ndarray  # shape (n,)
    reference_link_end_index: int

    @property
    def number_of_links(self) -> int:
        return int(self.leg_light_times.shape[0])

    def leg_times(self, leg: int) -> tuple[float, float]:
        return float(self.link_end_times[2 * leg]), float(self.link_end_times[2 * leg + 1])

    def leg_states(self, leg: int) -> tuple[np.ndarray, np.ndarray]:
        return self.link_end_states[2 * leg], self.link_end_states[2 * leg + 1]
