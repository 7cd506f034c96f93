"""Resolution-dependent mask erosion for multi-resolution image registration."""

from resmask.config import (
    Configuration,
    ConfigurationError,
    load_configuration,
)
from resmask.masks import BinaryMask, MaskRole, SimpleITKMaskProvider, erode_mask
from resmask.metric import MaskedMetricBase
from resmask.registration import (
    LifecycleError,
    MaskLoadError,
    MultiResolutionDriver,
    ResolutionErosionScheduler,
    fixed_erosion_radius,
    moving_erosion_radius,
)

__version__ = "0.1.0"

__all__ = [
    "Configuration",
    "ConfigurationError",
    "load_configuration",
    "BinaryMask",
    "MaskRole",
    "SimpleITKMaskProvider",
    "erode_mask",
    "MaskedMetricBase",
    "LifecycleError",
    "MaskLoadError",
    "MultiResolutionDriver",
    "ResolutionErosionScheduler",
    "fixed_erosion_radius",
    "moving_erosion_radius",
]
