from __future__ import annotations


class LightTimeWarning(UserWarning):
    """Soft failure in a light-time solution (accepted unconverged result, missing partial)."""


class LightTimeConfigurationError(ValueError):
    """Malformed light-time setup: bad delay vector, ambiguous reference link end, empty chain."""


class LightTimeConvergenceError(RuntimeError):
    """Light-time iteration exhausted its iteration budget without meeting the tolerance."""

    def __init__(self, message: str, *, residual: float, correction: float, time: float) -> None:
        super().__init__(message)
        self.residual = residual
        self.correction = correction
        self.time = time
