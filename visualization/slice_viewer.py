"""
Slice Viewer

Framework-agnostic controller of the three orthogonal slices of a volume
and its overlays. GUI code drives it; it drives the registry.
"""

from typing import Dict, Optional
import logging
import numpy as np

from config import DEFAULT_DISPLAY, DisplayConfig
from core.data_manager import VolumeRegistry
from slicing.color_lut import ColorTable
from slicing.compositor import SlicePresentation
from slicing.geometry import Axis
from slicing.volume import VolumeModel


FULL_RANGE_PRESET = "Full Range"


class SliceViewer:
    """
    Slice viewer for a main volume with optional overlays.

    This class handles the data logic for slice viewing,
    independent of any GUI framework.
    """

    def __init__(
        self,
        registry: Optional[VolumeRegistry] = None,
        config: Optional[DisplayConfig] = None,
    ):
        self.registry = registry or VolumeRegistry()
        self.config = config or DEFAULT_DISPLAY
        self._volume_id: Optional[int] = None

    @property
    def window_presets(self) -> Dict[str, Dict[str, float]]:
        """
        Window presets for the current volume.

        The configured presets are CT presets in Hounsfield units. "Full Range"
        is derived from the volume's intensity range and suits MR and other
        modalities.
        """
        presets = dict(self.config.window_presets)
        volume = self.volume
        if volume is not None:
            presets[FULL_RANGE_PRESET] = {
                "center": (volume.min + volume.max) / 2,
                "width": volume.max - volume.min,
            }
        return presets

    def set_volume(self, volume: VolumeModel) -> int:
        """
        Set the main volume and extract its slices.

        Args:
            volume: Volume to view

        Returns:
            Registry id of the volume
        """
        volume.mix_ratio = self.config.default_mix_ratio
        self._volume_id = self.registry.add_volume(volume)
        self.registry.prepare_slices(self._volume_id)
        return self._volume_id

    def add_overlay(self, overlay: VolumeModel, lookup_table: Optional[ColorTable] = None) -> int:
        """
        Composite a volume over the main one.

        Args:
            overlay: Overlay volume
            lookup_table: Region colors when the overlay is a label volume

        Returns:
            Registry id of the overlay
        """
        main_id = self._require_volume()
        if lookup_table is not None:
            overlay.lookup_table = lookup_table
        overlay_id = self.registry.add_volume(overlay)
        self.registry.attach_overlay(main_id, overlay_id)
        self.registry.repaint_all_slices(main_id)
        return overlay_id

    @property
    def volume(self) -> Optional[VolumeModel]:
        if self._volume_id is None:
            return None
        return self.registry.volume(self._volume_id)

    def _require_volume(self) -> int:
        if self._volume_id is None:
            raise RuntimeError("No volume set")
        return self._volume_id

    # ---- Slices ----

    def num_slices(self, axis: Axis) -> int:
        volume = self.volume
        return volume.dimensions[Axis(axis)] if volume is not None else 0

    def current_slice(self, axis: Axis) -> int:
        volume_slice = self.registry.get_slice(self._require_volume(), axis)
        return volume_slice.index

    def set_slice(self, axis: Axis, index: int) -> None:
        """Move the slice on axis, clamped to the volume, and repaint it."""
        volume_id = self._require_volume()
        index = max(0, min(int(index), self.num_slices(axis) - 1))
        self.registry.get_slice(volume_id, axis).set_index(index)
        self.registry.repaint(volume_id, axis)

    # ---- Display ----

    def set_window(self, center: float, width: float) -> None:
        """Set window center and width for display."""
        width = max(1.0, width)
        self.set_window_range(center - width / 2, center + width / 2)

    def set_window_range(self, low: float, high: float) -> None:
        volume_id = self._require_volume()
        self.registry.volume(volume_id).set_window(low, high)
        self.registry.repaint_all_slices(volume_id)

    def apply_preset(self, name: str) -> None:
        """Apply a named window preset."""
        presets = self.window_presets
        if name not in presets:
            raise KeyError(f"Unknown window preset: {name}")
        preset = presets[name]
        logging.info(f"Window preset {name}: C={preset['center']} W={preset['width']}")
        self.set_window(preset["center"], preset["width"])

    def reset_window(self) -> None:
        """Window the full intensity range."""
        volume = self.volume
        self.set_window_range(volume.min, volume.max)

    def set_mix_ratio(self, ratio: float) -> None:
        """Set the weight of the main volume against its overlays."""
        volume_id = self._require_volume()
        self.registry.volume(volume_id).mix_ratio = float(ratio)
        self.registry.repaint_all_slices(volume_id)

    @property
    def window_center(self) -> float:
        volume = self.volume
        return (volume.window_low + volume.window_high) / 2

    @property
    def window_width(self) -> float:
        volume = self.volume
        return volume.window_high - volume.window_low

    # ---- Output ----

    def image(self, axis: Axis) -> Optional[np.ndarray]:
        """
        Get the current composited image of a slice.

        Returns:
            (rows, columns, 4) uint8 RGBA array, or None if no volume loaded
        """
        if self._volume_id is None:
            return None
        return self.registry.get_slice(self._volume_id, axis).raster

    def presentation(self, axis: Axis) -> SlicePresentation:
        return self.registry.get_slice(self._require_volume(), axis).presentation()
