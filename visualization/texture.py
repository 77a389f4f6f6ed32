"""
Slice Texture

Hands painted slice rasters over to Qt, the texture format of the renderer.
"""

from typing import Optional, Tuple
import numpy as np

from PySide6.QtGui import QImage

from core.base import SliceConsumer


def raster_to_qimage(raster: np.ndarray) -> QImage:
    """
    Convert an RGBA raster to a QImage.

    Args:
        raster: (rows, columns, 4) uint8 array

    Returns:
        QImage in RGBA8888 format owning a copy of the pixels
    """
    raster = np.ascontiguousarray(raster, dtype=np.uint8)
    height, width = raster.shape[:2]
    bytes_per_line = 4 * width
    q_image = QImage(raster.data, width, height, bytes_per_line, QImage.Format_RGBA8888)
    return q_image.copy()


class SliceTexture(SliceConsumer):
    """Keeps the latest painted slice as a QImage plus its placement."""

    def __init__(self):
        self._image: Optional[QImage] = None
        self._placement: Optional[np.ndarray] = None
        self._plane_size: Tuple[float, float] = (0.0, 0.0)
        self.upload_count = 0

    def set_slice_image(self, presentation) -> None:
        self._image = raster_to_qimage(presentation.raster)
        self._placement = presentation.placement.copy()
        self._plane_size = (presentation.plane_width, presentation.plane_height)
        self.upload_count += 1

    def clear(self) -> None:
        self._image = None
        self._placement = None
        self._plane_size = (0.0, 0.0)

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def placement(self) -> Optional[np.ndarray]:
        return self._placement

    @property
    def plane_size(self) -> Tuple[float, float]:
        """Plane (width, height) in mm."""
        return self._plane_size
