"""Conversions between astropy epochs and the float seconds used by the solver.

Light-time iteration runs in TDB; floats are TDB seconds since J2000.
"""
from __future__ import annotations

import numpy as np
from astropy.time import Time, TimeDelta

from .constants import DAY_S, J2000_TDB


def tdb_seconds(time: Time | float) -> float | np.ndarray:
    """Seconds since J2000 (TDB) for an astropy Time; floats pass through."""
    if not isinstance(time, Time):
        return float(time)
    tdb = time.tdb
    days = (tdb.jd1 - J2000_TDB.jd1) + (tdb.jd2 - J2000_TDB.jd2)
    out = np.asarray(days, dtype=float) * DAY_S
    if out.ndim == 0:
        return float(out)
    return out


def time_from_tdb_seconds(seconds: float | np.ndarray) -> Time:
    return J2000_TDB + TimeDelta(np.asarray(seconds, dtype=float), format="sec")
