"""State functions for link ends.

Each provider is a callable ``provider(time_s) -> np.ndarray(6,)`` returning
[x, y, z, vx, vy, vz] in km and km/s. Times are seconds (TDB since J2000 for
ephemeris-backed providers).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Sequence

import numpy as np
from astropy import units as u
from astropy.coordinates import get_body_barycentric_posvel, solar_system_ephemeris
from scipy.interpolate import CubicHermiteSpline

from .timescales import time_from_tdb_seconds

__all__ = [
    "ConstantStateProvider",
    "LinearMotionStateProvider",
    "TabulatedStateProvider",
    "BodyStateProvider",
]


class ConstantStateProvider:
    def __init__(self, state: Sequence[float]) -> None:
        arr = np.asarray(state, dtype=float).reshape(-1)
        if arr.shape == (3,):
            arr = np.concatenate((arr, np.zeros(3)))
        if arr.shape != (6,):
            raise ValueError("state must have 3 or 6 components")
        self.state = arr

    def __call__(self, time: float) -> np.ndarray:
        return self.state.copy()


class LinearMotionStateProvider:
    """Link end moving with constant velocity, at ``position`` when time == epoch."""

    def __init__(
        self, position: Sequence[float], velocity: Sequence[float], epoch: float = 0.0
    ) -> None:
        self.position = np.asarray(position, dtype=float).reshape(3)
        self.velocity = np.asarray(velocity, dtype=float).reshape(3)
        self.epoch = float(epoch)

    def __call__(self, time: float) -> np.ndarray:
        dt = float(time) - self.epoch
        return np.concatenate((self.position + self.velocity * dt, self.velocity))


class TabulatedStateProvider:
    """Cubic Hermite interpolation of a state table (positions with velocities as slopes)."""

    def __init__(
        self, times: Sequence[float], states: np.ndarray, extrapolate: bool = False
    ) -> None:
        times = np.asarray(times, dtype=float).reshape(-1)
        states = np.asarray(states, dtype=float)
        if states.ndim != 2 or states.shape[1] != 6:
            raise ValueError("states must have shape (N, 6)")
        if states.shape[0] != times.shape[0]:
            raise ValueError("times and states must have the same length")
        if times.shape[0] < 2:
            raise ValueError("at least two tabulated states are required")
        if np.any(np.diff(times) <= 0.0):
            raise ValueError("tabulated times must be strictly increasing")
        self.start = float(times[0])
        self.end = float(times[-1])
        self.extrapolate = bool(extrapolate)
        self._position = CubicHermiteSpline(
            times, states[:, :3], states[:, 3:], axis=0, extrapolate=True
        )
        self._velocity = self._position.derivative()

    def __call__(self, time: float) -> np.ndarray:
        t = float(time)
        if not self.extrapolate and (t < self.start or t > self.end):
            raise ValueError(
                f"time {t} outside tabulated interval [{self.start}, {self.end}]"
            )
        return np.concatenate((self._position(t), self._velocity(t)))


@lru_cache(maxsize=4096)
def _body_posvel_km(body: str, seconds: float, ephemeris: str) -> tuple[np.ndarray, np.ndarray]:
    with solar_system_ephemeris.set(ephemeris):
        pos, vel = get_body_barycentric_posvel(body, time_from_tdb_seconds(seconds))
    pos_km = np.asarray(pos.xyz.to(u.km).value, dtype=float)
    vel_km_s = np.asarray(vel.xyz.to(u.km / u.s).value, dtype=float)
    return pos_km, vel_km_s


class BodyStateProvider:
    """Barycentric (or ``center``-relative) state of a solar-system body from astropy."""

    def __init__(self, body: str, ephemeris: str = "builtin", center: str | None = None) -> None:
        self.body = body.lower()
        self.ephemeris = ephemeris
        self.center = center.lower() if center else None

    def __call__(self, time: float) -> np.ndarray:
        seconds = float(time)
        pos, vel = _body_posvel_km(self.body, seconds, self.ephemeris)
        if self.center is not None:
            center_pos, center_vel = _body_posvel_km(self.center, seconds, self.ephemeris)
            pos = pos - center_pos
            vel = vel - center_vel
        return np.concatenate((pos, vel))
