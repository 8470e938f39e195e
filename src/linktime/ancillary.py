from __future__ import annotations

from enum import Enum
from typing import Iterable

import numpy as np


class AncillarySettingType(str, Enum):
    RETRANSMISSION_DELAYS = "retransmission_delays"
    DOPPLER_INTEGRATION_TIME = "doppler_integration_time"
    DOPPLER_REFERENCE_FREQUENCY = "doppler_reference_frequency"
    FREQUENCY_BANDS = "frequency_bands"
    LINK_ENDS_DELAYS = "link_ends_delays"


class ObservationAncillarySimulationSettings:
    """Named scalar and vector settings attached to a single observation."""

    def __init__(self) -> None:
        self._double_data: dict[AncillarySettingType, float] = {}
        self._double_vector_data: dict[AncillarySettingType, np.ndarray] = {}

    def set_double_data(self, key: AncillarySettingType | str, value: float) -> None:
        self._double_data[AncillarySettingType(key)] = float(value)

    def get_double_data(
        self,
        key: AncillarySettingType | str,
        default: float | None = None,
        required: bool = False,
    ) -> float | None:
        key = AncillarySettingType(key)
        if key in self._double_data:
            return self._double_data[key]
        if required:
            raise KeyError(f"No double ancillary setting stored for {key.value}")
        return default

    def set_double_vector_data(
        self, key: AncillarySettingType | str, values: Iterable[float]
    ) -> None:
        arr = np.asarray(list(values), dtype=float)
        if arr.ndim != 1:
            raise ValueError("ancillary vector data must be one-dimensional")
        self._double_vector_data[AncillarySettingType(key)] = arr

    def get_double_vector_data(
        self,
        key: AncillarySettingType | str,
        default: Iterable[float] | None = None,
        required: bool = False,
    ) -> np.ndarray | None:
        key = AncillarySettingType(key)
        if key in self._double_vector_data:
            return self._double_vector_data[key].copy()
        if required:
            raise KeyError(f"No vector ancillary setting stored for {key.value}")
        if default is None:
            return None
        return np.asarray(list(default), dtype=float)

    def __contains__(self, key: object) -> bool:
        try:
            key = AncillarySettingType(key)
        except ValueError:
            return False
        return key in self._double_data or key in self._double_vector_data
