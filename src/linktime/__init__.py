from .ancillary import AncillarySettingType, ObservationAncillarySimulationSettings
from .constants import C_KM_S, DAY_S
from .convergence import (
    LightTimeConvergenceCriteria,
    LightTimeFailureHandling,
    default_light_time_tolerance,
)
from .corrections import (
    ConstantLightTimeCorrection,
    LightTimeCorrection,
    LightTimeCorrectionFunctionWrapper,
)
from .errors import LightTimeConfigurationError, LightTimeConvergenceError, LightTimeWarning
from .light_time import LightTimeCalculator
from .link_ends import LinkEndType
from .models import LightTimeSolution, MultiLegLightTimeSolution
from .multi_leg import MultiLegLightTimeCalculator

__all__ = [
    "AncillarySettingType",
    "C_KM_S",
    "ConstantLightTimeCorrection",
    "DAY_S",
    "LightTimeCalculator",
    "LightTimeConfigurationError",
    "LightTimeConvergenceCriteria",
    "LightTimeConvergenceError",
    "LightTimeCorrection",
    "LightTimeCorrectionFunctionWrapper",
    "LightTimeFailureHandling",
    "LightTimeSolution",
    "LightTimeWarning",
    "LinkEndType",
    "MultiLegLightTimeCalculator",
    "MultiLegLightTimeSolution",
    "ObservationAncillarySimulationSettings",
    "default_light_time_tolerance",
]
