"""Minimal multi-resolution registration driver.

The driver owns the current resolution level and calls the lifecycle hooks of
its components in order. Optimization itself is delegated to the optional
``on_level`` callback, invoked after every component has prepared the level.
"""

from typing import Callable, List, Optional, Sequence
import logging

from resmask.registration.hooks import RegistrationContext, RegistrationHooks

logger = logging.getLogger(__name__)


class MultiResolutionDriver(RegistrationContext):
    """Sequence component hooks over the resolution levels, coarse to fine.

    Attributes:
        components: Components receiving lifecycle hooks, in call order
        number_of_resolutions: Number of pyramid levels
        current_level: Level being processed, or None outside the level loop
    """

    def __init__(
        self,
        number_of_resolutions: int,
        number_of_parameters: int,
        components: Optional[Sequence[RegistrationHooks]] = None,
    ) -> None:
        if number_of_resolutions < 1:
            raise ValueError(
                f"number_of_resolutions must be >= 1, got {number_of_resolutions}"
            )
        if number_of_parameters < 0:
            raise ValueError(
                f"number_of_parameters must be >= 0, got {number_of_parameters}"
            )

        self.number_of_resolutions = number_of_resolutions
        self._number_of_parameters = number_of_parameters
        self.components: List[RegistrationHooks] = list(components or [])
        self.current_level: Optional[int] = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def add_component(self, component: RegistrationHooks) -> None:
        self.components.append(component)

    def get_current_level(self) -> int:
        if self.current_level is None:
            raise RuntimeError("No resolution level is active")
        return self.current_level

    @property
    def number_of_parameters(self) -> int:
        return self._number_of_parameters

    def run(self, on_level: Optional[Callable[[int], None]] = None) -> None:
        """Run all lifecycle hooks for every resolution level.

        ``finalize`` is called on every component even if an earlier hook or
        another component's ``finalize`` raised. An exception raised by the
        hooks takes precedence over one raised while finalizing; otherwise the
        first ``finalize`` failure is raised once every component is finalized.

        Args:
            on_level: Called with the level once all components are prepared

        Raises:
            RuntimeError: If a component's ``before_all`` reports a nonzero status
        """
        try:
            for component in self.components:
                status = component.before_all()
                if status != 0:
                    raise RuntimeError(
                        f"{component.__class__.__name__}.before_all() "
                        f"returned status {status}"
                    )

            for component in self.components:
                component.before_registration()

            for component in self.components:
                component.initialize()

            for level in range(self.number_of_resolutions):
                self.current_level = level
                self.logger.info(
                    f"Resolution {level} of {self.number_of_resolutions}"
                )
                for component in self.components:
                    component.before_each_resolution()
                if on_level is not None:
                    on_level(level)
        except BaseException:
            self.current_level = None
            self._finalize_components()
            raise

        self.current_level = None
        error = self._finalize_components()
        if error is not None:
            raise error

    def _finalize_components(self) -> Optional[Exception]:
        """Finalize every component, returning the first failure instead of raising."""
        first_error: Optional[Exception] = None
        for component in self.components:
            try:
                component.finalize()
            except Exception as e:
                self.logger.error(
                    f"{component.__class__.__name__}.finalize() failed: {e}"
                )
                if first_error is None:
                    first_error = e
        return first_error
