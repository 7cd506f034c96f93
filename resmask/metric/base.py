"""Similarity metric state shared with the mask erosion scheduler.

The metric itself (histogram mutual information and its derivative) lives
outside this package. ``MaskedMetricBase`` holds the state the scheduler
installs into it: the active fixed and moving masks and the per-parameter
derivative step length scales.
"""

from typing import Dict, Optional
import logging

import numpy as np

from resmask.masks.mask import BinaryMask, MaskRole

logger = logging.getLogger(__name__)


class MaskedMetricBase:
    """Active masks and derivative step scales of a similarity metric.

    Attributes:
        fixed_mask: Mask restricting fixed image samples, or None
        moving_mask: Mask restricting moving image samples, or None
        derivative_step_length_scales: Per-parameter scales, or None until set
        initialized: Whether ``initialize()`` has run
    """

    def __init__(self, name: str = "MaskedMetric") -> None:
        self.name = name
        self.fixed_mask: Optional[BinaryMask] = None
        self.moving_mask: Optional[BinaryMask] = None
        self.derivative_step_length_scales: Optional[np.ndarray] = None
        self.initialized = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def set_mask(self, role: MaskRole, mask: Optional[BinaryMask]) -> None:
        """Replace the active mask for ``role``; the previous one is discarded."""
        if role is MaskRole.FIXED:
            self.fixed_mask = mask
        else:
            self.moving_mask = mask

    def get_mask(self, role: MaskRole) -> Optional[BinaryMask]:
        return self.fixed_mask if role is MaskRole.FIXED else self.moving_mask

    def set_derivative_step_length_scales(self, scales: np.ndarray) -> None:
        self.derivative_step_length_scales = np.asarray(scales, dtype=np.float64)

    def initialize(self) -> None:
        """Prepare the metric for evaluation.

        Raises:
            ValueError: If the installed step scales are not a 1-D vector
        """
        scales = self.derivative_step_length_scales
        if scales is not None and scales.ndim != 1:
            raise ValueError(
                f"derivative_step_length_scales must be 1-D, got shape {scales.shape}"
            )

        self.initialized = True
        self.logger.debug(
            f"{self.name} initialized: fixed_mask={self.fixed_mask is not None}, "
            f"moving_mask={self.moving_mask is not None}"
        )

    def masked_voxel_counts(self) -> Dict[str, Optional[int]]:
        """Number of voxels in each active mask (None when no mask is set)."""
        return {
            role.label: (mask.voxel_count if mask is not None else None)
            for role, mask in (
                (MaskRole.FIXED, self.fixed_mask),
                (MaskRole.MOVING, self.moving_mask),
            )
        }
