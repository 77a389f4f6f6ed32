"""
Volume Registry

Centralized ownership of volumes and their slices.

Volumes are registered under integer ids. Slices live in an arena keyed by
(volume id, axis): each volume has at most one slice per axis, and a slice
only knows the id of its volume.
"""

import logging
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from config import DEFAULT_SLICE, SliceConfig
from core.errors import DrawingContextUnavailable
from slicing.compositor import VolumeSlice
from slicing.geometry import Axis
from slicing.volume import VolumeModel


class VolumeRegistry(QObject):
    """
    Owns volumes and the slice arena.

    Provides:
    - Volume registration and lookup by id
    - Slice extraction, one cached slice per (volume, axis)
    - Overlay attachment
    - Repaint of one slice or all slices of a volume
    - Change notifications via signals
    """

    # Signals
    volume_added = Signal(int)  # Emits volume id
    volume_removed = Signal(int)  # Emits volume id
    slice_repainted = Signal(int, int)  # Emits volume id, axis

    def __init__(self, config: Optional[SliceConfig] = None, parent=None):
        super().__init__(parent)

        self.config = config or DEFAULT_SLICE
        self._volumes: Dict[int, VolumeModel] = {}
        self._slices: Dict[Tuple[int, Axis], VolumeSlice] = {}
        self._next_id = 0

    # ---- Volumes ----

    def add_volume(self, volume: VolumeModel) -> int:
        """
        Register a volume.

        Args:
            volume: VolumeModel instance

        Returns:
            Id of the volume in this registry
        """
        if volume.volume_id is not None and self._volumes.get(volume.volume_id) is volume:
            return volume.volume_id

        volume_id = self._next_id
        self._next_id += 1
        volume.volume_id = volume_id
        self._volumes[volume_id] = volume
        self.volume_added.emit(volume_id)
        logging.info(f"Volume registered: id={volume_id}, {volume.dimensions}")
        return volume_id

    def volume(self, volume_id: int) -> VolumeModel:
        """Registered volume; KeyError if unknown."""
        return self._volumes[volume_id]

    @property
    def volume_ids(self) -> List[int]:
        return list(self._volumes)

    def remove_volume(self, volume_id: int) -> None:
        """Drop a volume, its slices, and detach it from volumes it overlays."""
        volume = self._volumes.pop(volume_id)
        for axis in Axis:
            self._slices.pop((volume_id, axis), None)
        for other in self._volumes.values():
            if any(o is volume for o in other.overlays):
                other.detach_overlay(volume)
        volume.volume_id = None
        self.volume_removed.emit(volume_id)
        logging.info(f"Volume removed: id={volume_id}")

    def clear(self) -> None:
        """Remove all volumes and slices."""
        for volume_id in list(self._volumes):
            self.remove_volume(volume_id)
        logging.info("Registry cleared")

    # ---- Slices ----

    def get_slice(self, volume_id: int, axis: Axis) -> Optional[VolumeSlice]:
        return self._slices.get((volume_id, Axis(axis)))

    def set_slice(self, volume_id: int, axis: Axis, volume_slice: VolumeSlice) -> None:
        """Store a slice, replacing the previous one for this axis."""
        if volume_id not in self._volumes:
            raise KeyError(volume_id)
        self._slices[(volume_id, Axis(axis))] = volume_slice

    def extract_slice(self, volume_id: int, axis: Axis, index: int, shallow: bool = False) -> VolumeSlice:
        """
        Create the slice of a volume at index along axis and cache it.

        Non-shallow slices are painted right away; a zero-size plane is
        logged and left unpainted.
        """
        volume = self.volume(volume_id)
        volume_slice = VolumeSlice(volume_id, index, axis, shallow=shallow)
        self.set_slice(volume_id, axis, volume_slice)
        volume_slice.update_geometry(volume)
        logging.info(
            f"Extracted {'shallow ' if shallow else ''}{volume_slice.axis.name} slice "
            f"{volume_slice.index} of volume {volume_id} "
            f"({volume_slice.i_length}x{volume_slice.j_length})"
        )
        if not shallow:
            try:
                self.repaint(volume_id, axis)
            except DrawingContextUnavailable as e:
                logging.error(f"Slice not painted: {e}")
        return volume_slice

    def prepare_slices(self, volume_id: int, main_volume_id: Optional[int] = None) -> List[VolumeSlice]:
        """
        Extract the three orthogonal slices of a volume at their initial indices.

        When main_volume_id is given the volume is an overlay of that volume:
        its slices are shallow and it records the main volume's transform.
        """
        volume = self.volume(volume_id)
        shallow = main_volume_id is not None
        if shallow:
            volume.main_volume_matrix = self.volume(main_volume_id).transform.copy()

        slices = []
        for axis in Axis:
            fraction = self.config.initial_slice_fractions[axis]
            index = int(volume.dimensions[axis] * fraction)
            slices.append(self.extract_slice(volume_id, axis, index, shallow=shallow))
        return slices

    def attach_overlay(self, main_volume_id: int, overlay_id: int) -> None:
        """Composite a registered volume over another one."""
        main_volume = self.volume(main_volume_id)
        overlay = self.volume(overlay_id)
        main_volume.attach_overlay(overlay)
        self.prepare_slices(overlay_id, main_volume_id)

    def _overlay_slices(self, volume: VolumeModel, axis: Axis) -> List[Tuple[VolumeModel, VolumeSlice]]:
        pairs = []
        for overlay in volume.overlays:
            if overlay.volume_id is None or self._volumes.get(overlay.volume_id) is not overlay:
                logging.warning(f"Overlay {overlay.name or '<unnamed>'} is not registered, skipped")
                continue
            overlay_slice = self.get_slice(overlay.volume_id, axis)
            if overlay_slice is not None:
                pairs.append((overlay, overlay_slice))
        return pairs

    # ---- Repaint ----

    def repaint(self, volume_id: int, axis: Axis) -> None:
        """
        Repaint the cached slice of a volume on one axis.

        Raises:
            KeyError: If the volume has no slice on this axis
            DrawingContextUnavailable: If the slice has nothing to draw on
        """
        axis = Axis(axis)
        volume = self.volume(volume_id)
        volume_slice = self._slices[(volume_id, axis)]
        volume_slice.repaint(volume, self._overlay_slices(volume, axis))
        if not volume_slice.shallow:
            self.slice_repainted.emit(volume_id, int(axis))

    def repaint_all_slices(self, volume_id: int) -> None:
        """Repaint every cached slice of a volume; failures only skip that slice."""
        for axis in Axis:
            if (volume_id, axis) not in self._slices:
                continue
            try:
                self.repaint(volume_id, axis)
            except DrawingContextUnavailable as e:
                logging.error(f"Repaint skipped: {e}")
