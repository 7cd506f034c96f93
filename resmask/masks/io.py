"""Reading and writing binary masks with SimpleITK.

Voxel arrays follow the SimpleITK/numpy convention (last index is x), while
spacing, origin and direction are kept in ITK physical order (x first).
"""

from pathlib import Path
from typing import Protocol, Union
import logging

import numpy as np
import SimpleITK as sitk

from resmask.masks.mask import BinaryMask

logger = logging.getLogger(__name__)


class MaskProvider(Protocol):
    """Anything that can load a mask image from a path."""

    def load(self, path: Union[str, Path]) -> BinaryMask:
        ...


class SimpleITKMaskProvider:
    """Load mask images from disk into ``BinaryMask`` values.

    Any image format readable by SimpleITK is accepted. Nonzero voxels are
    treated as inside the mask.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def load(self, path: Union[str, Path]) -> BinaryMask:
        """Read a mask image.

        Args:
            path: Path to the mask image

        Returns:
            BinaryMask with the image geometry

        Raises:
            FileNotFoundError: If the file does not exist
            RuntimeError: If SimpleITK cannot read the file
            ValueError: If the image has more than one component per pixel
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Mask file not found: {path}")

        self.logger.debug(f"Loading mask: {path}")
        try:
            image = sitk.ReadImage(str(path))
        except RuntimeError as e:
            raise RuntimeError(f"Failed to read mask image {path}: {e}") from e

        n_components = image.GetNumberOfComponentsPerPixel()
        if n_components != 1:
            raise ValueError(
                f"Mask image must be scalar, got {n_components} components: {path}"
            )

        mask = BinaryMask.from_array(
            sitk.GetArrayFromImage(image),
            spacing=tuple(image.GetSpacing()),
            origin=tuple(image.GetOrigin()),
            direction=tuple(image.GetDirection()),
        )
        self.logger.debug(
            f"Loaded mask {path.name}: shape={mask.shape}, voxels={mask.voxel_count}"
        )
        return mask

    def save(self, mask: BinaryMask, path: Union[str, Path]) -> Path:
        """Write a mask as an 8-bit image with its geometry.

        Args:
            mask: Mask to write
            path: Output path; parent directories are created

        Returns:
            The output path
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        image = sitk.GetImageFromArray(mask.array.astype(np.uint8))
        image.SetSpacing(mask.spacing)
        image.SetOrigin(mask.origin)
        image.SetDirection(mask.direction)

        sitk.WriteImage(image, str(path))
        self.logger.debug(f"Saved mask: {path}")
        return path
