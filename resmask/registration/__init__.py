"""Registration lifecycle: hooks, the mask erosion scheduler and a driver.

The scheduler re-derives the fixed and moving masks installed in the metric
at every resolution level, eroding the originally loaded masks by a radius
that follows the pyramid's smoothing schedule.
"""

from resmask.registration.hooks import (
    LifecycleError,
    LifecycleState,
    RegistrationContext,
    RegistrationHooks,
)
from resmask.registration.scheduler import (
    MaskLoadError,
    ResolutionErosionScheduler,
    default_derivative_step_scales,
    erosion_radius,
    erosion_schedule,
    fixed_erosion_radius,
    moving_erosion_radius,
)
from resmask.registration.driver import MultiResolutionDriver

__all__ = [
    "LifecycleError",
    "LifecycleState",
    "RegistrationContext",
    "RegistrationHooks",
    "MaskLoadError",
    "ResolutionErosionScheduler",
    "default_derivative_step_scales",
    "erosion_radius",
    "erosion_schedule",
    "fixed_erosion_radius",
    "moving_erosion_radius",
    "MultiResolutionDriver",
]
