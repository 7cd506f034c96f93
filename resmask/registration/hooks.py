"""Lifecycle interface between the registration driver and its components.

A component receives the ordered hooks ``before_all``, ``before_registration``,
``initialize``, ``before_each_resolution`` (once per level) and ``finalize``.
The driver in turn exposes the current resolution level and the number of
transform parameters through ``RegistrationContext``.
"""

from abc import ABC, abstractmethod
from enum import Enum


class LifecycleError(RuntimeError):
    """Raised when a lifecycle hook is called out of order."""
    pass


class LifecycleState(Enum):
    """States of a registration component, in the order they are reached."""

    UNINITIALIZED = "uninitialized"
    BEFORE_ALL = "before_all"
    BEFORE_REGISTRATION = "before_registration"
    INITIALIZED = "initialized"
    RESOLUTION = "resolution"
    FINALIZED = "finalized"


class RegistrationContext(ABC):
    """What a registration run exposes to its components."""

    @abstractmethod
    def get_current_level(self) -> int:
        """Return the resolution level currently selected by the pyramid."""
        pass

    @property
    @abstractmethod
    def number_of_parameters(self) -> int:
        """Number of parameters of the transform being optimized."""
        pass


class RegistrationHooks(ABC):
    """Ordered lifecycle hooks invoked by the registration driver."""

    @abstractmethod
    def before_all(self) -> int:
        """Check options before anything is loaded.

        Returns:
            Status code, 0 on success
        """
        pass

    @abstractmethod
    def before_registration(self) -> None:
        """Load resources needed for the whole registration run."""
        pass

    @abstractmethod
    def initialize(self) -> None:
        """Set up the component before the first resolution level."""
        pass

    @abstractmethod
    def before_each_resolution(self) -> None:
        """Prepare the component for the level selected by the driver."""
        pass

    @abstractmethod
    def finalize(self) -> None:
        """Release resources held for the registration run."""
        pass
