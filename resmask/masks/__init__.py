"""Binary mask value type, SimpleITK mask I/O and morphological erosion."""

from resmask.masks.mask import BinaryMask, MaskRole
from resmask.masks.io import MaskProvider, SimpleITKMaskProvider
from resmask.masks.erosion import ball_structuring_element, erode_mask

__all__ = [
    "BinaryMask",
    "MaskProvider",
    "MaskRole",
    "SimpleITKMaskProvider",
    "ball_structuring_element",
    "erode_mask",
]
