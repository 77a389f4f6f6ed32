"""
Volume Viewer

Framework-agnostic data for direct volume rendering: the 3D texture built
from the voxel buffer and the shader parameters describing it.
"""

from typing import Optional, Dict, Any
import numpy as np

from slicing.volume import VolumeModel


class VolumeViewer:
    """
    Prepares a volume for an external ray-casting renderer.

    The renderer receives an opaque float texture and the transform,
    spacing and intensity range as shader parameters.
    """

    def __init__(self):
        self._volume: Optional[VolumeModel] = None
        self._texture: Optional[np.ndarray] = None

    def set_volume(self, volume: VolumeModel) -> None:
        """
        Set the volume to render.

        Args:
            volume: VolumeModel instance
        """
        self._volume = volume
        self._texture = None

    @property
    def has_data(self) -> bool:
        """Check if a volume is loaded for rendering."""
        return self._volume is not None

    @property
    def volume(self) -> Optional[VolumeModel]:
        return self._volume

    def texture_data(self) -> Optional[np.ndarray]:
        """
        Get the 3D texture of the volume.

        Returns:
            float32 array of shape (nz, ny, nx), NaN replaced by min,
            or None if no volume loaded
        """
        if self._volume is None:
            return None
        if self._texture is None:
            nx, ny, nz = self._volume.dimensions
            texture = self._volume.data.astype(np.float32).reshape(nz, ny, nx)
            self._texture = np.nan_to_num(texture, nan=self._volume.min)
        return self._texture

    def shader_uniforms(self) -> Dict[str, Any]:
        """
        Get the shader parameters of the volume.

        Returns:
            Dictionary with transform, spacing, dimensions, intensity range
            and window, or an empty dictionary if no volume loaded
        """
        volume = self._volume
        if volume is None:
            return {}
        return {
            "transform": volume.transform.copy(),
            "inverse_transform": volume.inverse_transform.copy(),
            "spacing": volume.spacing.copy(),
            "dimensions": np.asarray(volume.dimensions),
            "ras_dimensions": volume.ras_dimensions,
            "min": float(volume.min),
            "max": float(volume.max),
            "window_low": float(volume.window_low),
            "window_high": float(volume.window_high),
        }
