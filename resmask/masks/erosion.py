"""Morphological erosion of binary masks.

Erosion uses a ball-shaped structuring element measured in voxels. Voxels
outside the image are treated as foreground, so a mask that touches the image
border is only eroded from its boundary with the background.
"""

import logging

import numpy as np
from scipy.ndimage import binary_erosion

from resmask.masks.mask import BinaryMask

logger = logging.getLogger(__name__)


def ball_structuring_element(radius: int, ndim: int) -> np.ndarray:
    """Create a ball of the given radius with side length ``2 * radius + 1``.

    Args:
        radius: Ball radius in voxels (>= 0)
        ndim: Number of image dimensions

    Returns:
        Boolean array of shape ``(2 * radius + 1,) * ndim``
    """
    if radius < 0:
        raise ValueError(f"radius must be non-negative, got {radius}")

    coords = np.ogrid[tuple(slice(-radius, radius + 1) for _ in range(ndim))]
    dist_sq = sum(c.astype(np.int64) ** 2 for c in coords)
    return np.asarray(dist_sq <= radius * radius)


def erode_mask(mask: BinaryMask, radius: int) -> BinaryMask:
    """Erode a mask by a ball of ``radius`` voxels.

    The input mask is never modified. A radius of 0 returns an unmodified copy.
    Eroding away the whole mask is a valid result.

    Args:
        mask: Mask to erode
        radius: Erosion radius in voxels

    Returns:
        New eroded mask with the same geometry

    Raises:
        ValueError: If radius is negative
    """
    radius = int(radius)
    if radius < 0:
        raise ValueError(f"Erosion radius must be non-negative, got {radius}")

    if radius == 0:
        return mask.with_array(mask.array.copy())

    structure = ball_structuring_element(radius, mask.ndim)
    eroded = binary_erosion(mask.array, structure=structure, border_value=1)

    logger.debug(
        f"Eroded mask with radius {radius}: "
        f"{mask.voxel_count} -> {int(np.count_nonzero(eroded))} voxels"
    )
    return mask.with_array(eroded)
