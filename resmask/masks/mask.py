"""Binary mask value type and mask roles."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

import numpy as np


class MaskRole(Enum):
    """Image a mask applies to."""

    FIXED = "fixed"
    MOVING = "moving"

    @property
    def command_line_key(self) -> str:
        """Command-line flag holding the mask path for this role."""
        return "-fMask" if self is MaskRole.FIXED else "-mMask"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class BinaryMask:
    """Immutable binary mask with its physical geometry.

    The voxel array is stored read-only, so a mask can be shared between the
    scheduler and the metric without either side modifying it.

    Attributes:
        array: Boolean voxel array, True inside the region of interest
        spacing: Voxel spacing per axis
        origin: Physical coordinate of the first voxel
        direction: Flattened direction cosine matrix
    """
    array: np.ndarray
    spacing: Tuple[float, ...] = field(default=())
    origin: Tuple[float, ...] = field(default=())
    direction: Tuple[float, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.array.dtype != np.bool_ or self.array.flags.writeable:
            frozen = np.array(self.array, dtype=bool, copy=True)
            frozen.setflags(write=False)
            object.__setattr__(self, "array", frozen)

        ndim = self.array.ndim
        if not self.spacing:
            object.__setattr__(self, "spacing", (1.0,) * ndim)
        if not self.origin:
            object.__setattr__(self, "origin", (0.0,) * ndim)
        if not self.direction:
            object.__setattr__(
                self, "direction", tuple(np.eye(ndim).flatten().tolist())
            )

    @classmethod
    def from_array(cls, array: np.ndarray, **geometry) -> "BinaryMask":
        """Create a mask from any array; nonzero voxels are inside."""
        return cls(array=np.asarray(array) != 0, **geometry)

    def with_array(self, array: np.ndarray) -> "BinaryMask":
        """Return a new mask with the same geometry and different voxels."""
        if array.shape != self.shape:
            raise ValueError(
                f"Mask shape mismatch: expected {self.shape}, got {array.shape}"
            )
        return BinaryMask(
            array=array,
            spacing=self.spacing,
            origin=self.origin,
            direction=self.direction,
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.array.shape

    @property
    def ndim(self) -> int:
        return self.array.ndim

    @property
    def voxel_count(self) -> int:
        """Number of voxels inside the mask."""
        return int(np.count_nonzero(self.array))

    @property
    def is_empty(self) -> bool:
        return self.voxel_count == 0
