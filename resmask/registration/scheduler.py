"""Resolution-dependent erosion of fixed and moving masks.

Before subsampling, the image pyramid smooths each level with a Gaussian of
variance ``(schedule / 2) ** 2``, where the coarsest level has a schedule of
``2 ** (NumberOfResolutions - 1)``. The influence radius of that kernel is
roughly twice its standard deviation, so mask voxels closer than that to the
mask boundary see blurred background. At every level the masks installed in
the metric are therefore re-derived from the masks loaded at the start of
registration, eroded by a level-dependent radius:

    fixed radius  = ceil(2 ** (L - level - 1)) + 1
    moving radius = ceil(2 ** (L - level)) + 1

The moving radius is doubled because the metric derivative uses the moving
image gradient, whose operator has a larger support than a plain sample.
"""

from typing import Callable, Dict, List, Optional, Tuple, Union
from pathlib import Path
import logging
import time

import numpy as np

from resmask.config import Configuration, DEFAULT_NUMBER_OF_RESOLUTIONS
from resmask.masks.erosion import erode_mask
from resmask.masks.io import MaskProvider, SimpleITKMaskProvider
from resmask.masks.mask import BinaryMask, MaskRole
from resmask.metric.base import MaskedMetricBase
from resmask.registration.hooks import (
    LifecycleError,
    LifecycleState,
    RegistrationContext,
    RegistrationHooks,
)

logger = logging.getLogger(__name__)

NUMBER_OF_RESOLUTIONS_KEY = "NumberOfResolutions"

Eroder = Callable[[BinaryMask, int], BinaryMask]


class MaskLoadError(RuntimeError):
    """Raised when a requested mask cannot be loaded.

    Attributes:
        role: Role of the mask that failed to load
        path: Requested mask path
        location: Component and stage where the failure occurred
    """

    def __init__(
        self,
        role: MaskRole,
        path: Union[str, Path],
        location: str,
        cause: BaseException,
    ) -> None:
        self.role = role
        self.path = str(path)
        self.location = location
        super().__init__(
            f"{cause}\n"
            f"Error occurred while reading {role.label} mask.\n"
            f"Location: {location}"
        )


def _ceil_power_of_two(exponent: int) -> int:
    """Return ``ceil(2 ** exponent)`` in exact integer arithmetic."""
    return 1 << exponent if exponent >= 0 else 1


def fixed_erosion_radius(level: int, number_of_resolutions: int) -> int:
    """Erosion radius of the fixed mask at ``level``.

    Levels at or beyond ``number_of_resolutions`` are not rejected; the
    fractional power rounds up to 1, giving a radius of 2.
    """
    return _ceil_power_of_two(number_of_resolutions - level - 1) + 1


def moving_erosion_radius(level: int, number_of_resolutions: int) -> int:
    """Erosion radius of the moving mask at ``level`` (one level coarser than fixed)."""
    return _ceil_power_of_two(number_of_resolutions - level) + 1


def erosion_radius(role: MaskRole, level: int, number_of_resolutions: int) -> int:
    if role is MaskRole.FIXED:
        return fixed_erosion_radius(level, number_of_resolutions)
    return moving_erosion_radius(level, number_of_resolutions)


def erosion_schedule(number_of_resolutions: int) -> List[Tuple[int, int, int]]:
    """List ``(level, fixed_radius, moving_radius)`` for every level, coarse to fine."""
    return [
        (
            level,
            fixed_erosion_radius(level, number_of_resolutions),
            moving_erosion_radius(level, number_of_resolutions),
        )
        for level in range(number_of_resolutions)
    ]


def default_derivative_step_scales(number_of_parameters: int) -> np.ndarray:
    """All-ones derivative step length scales, one per transform parameter."""
    return np.ones(number_of_parameters, dtype=np.float64)


class ResolutionErosionScheduler(RegistrationHooks):
    """Load masks once and install level-dependent eroded copies in the metric.

    Attributes:
        configuration: Parameter store and command-line arguments
        metric: Metric receiving the installed masks and step scales
        registration: Running registration (current level, parameter count)
        provider: Loads mask images from disk
        eroder: Erosion primitive ``(mask, radius) -> mask``
        state: Current lifecycle state
    """

    _ALLOWED_STATES = {
        "before_all": (LifecycleState.UNINITIALIZED,),
        "before_registration": (LifecycleState.BEFORE_ALL,),
        "initialize": (LifecycleState.BEFORE_REGISTRATION,),
        "before_each_resolution": (
            LifecycleState.INITIALIZED,
            LifecycleState.RESOLUTION,
        ),
    }

    def __init__(
        self,
        configuration: Configuration,
        metric: MaskedMetricBase,
        registration: RegistrationContext,
        provider: Optional[MaskProvider] = None,
        eroder: Optional[Eroder] = None,
    ) -> None:
        self.configuration = configuration
        self.metric = metric
        self.registration = registration
        self.provider = provider if provider is not None else SimpleITKMaskProvider()
        self.eroder = eroder if eroder is not None else erode_mask
        self.state = LifecycleState.UNINITIALIZED
        self._original_masks: Dict[MaskRole, BinaryMask] = {}
        self.installed_radii: Dict[MaskRole, int] = {}
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _check_state(self, hook: str) -> None:
        allowed = self._ALLOWED_STATES[hook]
        if self.state not in allowed:
            raise LifecycleError(
                f"{hook}() called in state '{self.state.value}', "
                f"expected one of {[s.value for s in allowed]}"
            )

    def original_mask(self, role: MaskRole) -> Optional[BinaryMask]:
        """Mask as loaded in ``before_registration``, or None if none was requested."""
        return self._original_masks.get(role)

    @property
    def number_of_resolutions(self) -> int:
        return self.configuration.read_parameter(
            NUMBER_OF_RESOLUTIONS_KEY, DEFAULT_NUMBER_OF_RESOLUTIONS
        )

    def before_all(self) -> int:
        """Log which mask options were given. Paths are validated on load."""
        self._check_state("before_all")

        self.logger.info("Command line options:")
        for role in MaskRole:
            key = role.command_line_key
            path = self.configuration.get_command_line_argument(key)
            if path:
                self.logger.info(f"{key}\t\t{path}")
            else:
                self.logger.info(
                    f"{key}\t\tunspecified, so no {role.label} mask used"
                )

        self.state = LifecycleState.BEFORE_ALL
        return 0

    def before_registration(self) -> None:
        """Load the requested masks and install them unmodified.

        Masks are loaded fixed first; the first failure aborts, so the moving
        mask is not attempted when the fixed mask cannot be read. Nothing is
        stored or installed unless every requested mask loads.

        Raises:
            MaskLoadError: If a requested mask cannot be loaded
        """
        self._check_state("before_registration")

        loaded: Dict[MaskRole, BinaryMask] = {}
        for role in MaskRole:
            path = self.configuration.get_command_line_argument(role.command_line_key)
            if not path:
                self.logger.info(f"No {role.label} mask requested")
                continue

            self.logger.info(f"{role.label.capitalize()} mask requested: {path}")
            try:
                mask = self.provider.load(path)
            except (OSError, RuntimeError, ValueError) as e:
                raise MaskLoadError(
                    role=role,
                    path=path,
                    location=f"{self.__class__.__name__} - before_registration()",
                    cause=e,
                ) from e

            loaded[role] = mask

        for role, mask in loaded.items():
            self._original_masks[role] = mask
            self.metric.set_mask(role, mask)

        self.state = LifecycleState.BEFORE_REGISTRATION

    def initialize(self) -> None:
        """Run the metric setup and log how long it took."""
        self._check_state("initialize")

        start = time.perf_counter()
        self.metric.initialize()
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self.logger.info(
            f"Initialization of {self.metric.name} metric took: {elapsed_ms} ms."
        )

        self.state = LifecycleState.INITIALIZED

    def before_each_resolution(self) -> None:
        """Install step scales and masks eroded for the current level."""
        self._check_state("before_each_resolution")

        level = self.registration.get_current_level()
        self.metric.set_derivative_step_length_scales(
            default_derivative_step_scales(self.registration.number_of_parameters)
        )

        number_of_resolutions = self.number_of_resolutions
        for role, original in self._original_masks.items():
            radius = erosion_radius(role, level, number_of_resolutions)
            eroded = self.eroder(original, radius)
            self.metric.set_mask(role, eroded)
            self.installed_radii[role] = radius

            self.logger.info(
                f"Level {level}/{number_of_resolutions}: {role.label} mask eroded "
                f"with radius {radius}"
            )
            self.logger.debug(
                f"{role.label} mask voxels: {original.voxel_count} -> {eroded.voxel_count}"
            )

        self.state = LifecycleState.RESOLUTION

    def finalize(self) -> None:
        """Release the loaded masks and clear the metric's masks.

        Calling it again after the component is finalized does nothing.
        """
        if self.state is LifecycleState.FINALIZED:
            self.logger.debug("finalize() called on a finalized component")
            return

        for role in list(self._original_masks):
            self.metric.set_mask(role, None)
        self._original_masks.clear()
        self.installed_radii.clear()

        self.state = LifecycleState.FINALIZED
