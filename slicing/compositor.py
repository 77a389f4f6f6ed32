"""
Slice Compositor

A VolumeSlice owns the RGBA raster of one orthogonal slice. Repainting
renders the main volume and each overlay into its own layer raster
(windowed grayscale or region colors) and screen-blends the layers into
the final raster.

Slices do not reference their volume. They hold its registry id and are
repainted through the VolumeRegistry that owns both.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
import logging
import numpy as np

from core.errors import DrawingContextUnavailable
from .color_lut import table_to_arrays
from .geometry import Axis, PlaneGeometry, extract_perpendicular_plane


@dataclass
class Layer:
    """One compositing layer: a volume read through a slice's pixel access."""
    volume: object
    geometry: PlaneGeometry
    mix_ratio: float


@dataclass
class SlicePresentation:
    """What the rendering collaborator needs to draw a slice."""
    raster: np.ndarray  # (j_length, i_length, 4) uint8 RGBA
    placement: np.ndarray  # 4x4 RAS placement
    plane_width: float
    plane_height: float


def window_to_bytes(values: np.ndarray, low: float, high: float) -> np.ndarray:
    """
    Map intensities linearly from [low, high] to [0, 255], clamped.

    Returns:
        uint8 array of the same shape
    """
    values = np.asarray(values, dtype=np.float64)
    if high <= low:
        return np.where(values > high, 255, 0).astype(np.uint8)
    with np.errstate(invalid='ignore'):
        scaled = np.floor(255.0 * (values - low) / (high - low))
    scaled = np.nan_to_num(scaled, nan=0.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def screen_blend(base: np.ndarray, layer: np.ndarray) -> np.ndarray:
    """Screen blend two uint8 rasters channel by channel."""
    inverse = (255 - base.astype(np.uint32)) * (255 - layer.astype(np.uint32))
    return (255 - inverse // 255).astype(np.uint8)


def render_layer(layer: Layer, shape: Tuple[int, int]) -> np.ndarray:
    """
    Render one layer into an RGBA raster of the given (rows, columns) shape.

    Categorical volumes map each voxel value, truncated to an integer, to its
    region color; values without a region are transparent. Other volumes are
    windowed to grayscale. Pixels outside the layer's own slice are
    transparent.
    """
    rows, columns = shape
    volume = layer.volume
    geometry = layer.geometry
    raster = np.zeros((rows, columns, 4), dtype=np.uint8)

    jj, ii = np.meshgrid(np.arange(rows), np.arange(columns), indexing='ij')
    inside = (ii < geometry.i_length) & (jj < geometry.j_length)
    indices = np.asarray(geometry.pixel_access(ii, jj))
    data = volume.data
    inside &= (indices >= 0) & (indices < data.shape[0])

    values = np.zeros((rows, columns), dtype=np.float64)
    values[inside] = data[indices[inside]]

    alpha = np.full((rows, columns), int(255 * layer.mix_ratio), dtype=np.uint8)

    if volume.lookup_table is not None:
        colors, present = table_to_arrays(volume.lookup_table)
        with np.errstate(invalid='ignore'):
            color_index = np.trunc(values)
        found = inside & np.isfinite(color_index)
        found &= (color_index >= 0) & (color_index < len(colors))
        lookup = np.where(found, color_index, 0).astype(np.int64)
        if len(colors):
            found &= present[lookup]
            raster[..., :3] = np.where(found[..., None], colors[lookup], 0)
        alpha = np.where(found, alpha, 0).astype(np.uint8)
    else:
        gray = window_to_bytes(values, volume.window_low, volume.window_high)
        raster[..., 0] = gray
        raster[..., 1] = gray
        raster[..., 2] = gray
        alpha = np.where(inside, alpha, 0).astype(np.uint8)
        raster[~inside, :3] = 0

    raster[..., 3] = alpha
    return raster


class VolumeSlice:
    """
    Slice of a volume normal to one axis.

    Attributes:
        volume_id: Registry id of the sliced volume
        axis: Normal axis
        shallow: True for overlay slices, which only provide pixel access
        geometry: Current plane geometry
        raster: Final RGBA raster, (j_length, i_length, 4) uint8
        texture_needs_update: Set after each repaint until the raster is uploaded
    """

    def __init__(self, volume_id: int, index: int, axis: Axis, shallow: bool = False):
        self.volume_id = volume_id
        self.axis = Axis(axis)
        self.shallow = shallow
        self._index = int(index)
        self._geometry_needs_update = True
        self.geometry: Optional[PlaneGeometry] = None
        self.raster: Optional[np.ndarray] = None
        self._layer_rasters: List[np.ndarray] = []
        self.texture_needs_update = False

    @property
    def index(self) -> int:
        return self._index

    def set_index(self, value: int) -> None:
        """Move the slice; geometry is regenerated on the next repaint."""
        value = int(value)
        if value != self._index:
            self._index = value
            self._geometry_needs_update = True

    @property
    def geometry_needs_update(self) -> bool:
        return self._geometry_needs_update

    @property
    def i_length(self) -> int:
        return self.geometry.i_length if self.geometry else 0

    @property
    def j_length(self) -> int:
        return self.geometry.j_length if self.geometry else 0

    @property
    def pixel_access(self) -> Callable:
        return self.geometry.pixel_access

    def update_geometry(self, volume) -> None:
        """Recompute the plane geometry and resize the raster."""
        main_transform = volume.main_volume_matrix if self.shallow else None
        self.geometry = extract_perpendicular_plane(volume, self.axis, self._index, main_transform)
        if not self.shallow:
            self.raster = np.zeros(self.geometry.shape + (4,), dtype=np.uint8)
            self._layer_rasters = []
        self._geometry_needs_update = False

    def repaint(self, volume, overlay_slices: Optional[List[Tuple[object, "VolumeSlice"]]] = None) -> None:
        """
        Re-render the slice.

        Args:
            volume: The sliced VolumeModel
            overlay_slices: (overlay volume, its slice on this axis) pairs, in
                overlay order; overlays without a slice are left out

        Raises:
            DrawingContextUnavailable: If the plane has no pixels to draw on
        """
        if self._geometry_needs_update or self.geometry is None:
            self.update_geometry(volume)
        if self.shallow:
            return

        shape = self.geometry.shape
        if self.raster is None or 0 in shape:
            raise DrawingContextUnavailable(
                f"No drawing surface for {self.axis.name} slice {self._index} of volume {self.volume_id}"
            )

        overlay_slices = overlay_slices or []
        if volume.overlays:
            volume_ratio = min(max(volume.mix_ratio, 0.0), 1.0)
            overlay_ratio = (1.0 - volume_ratio) / len(volume.overlays)
        else:
            volume_ratio = 1.0
            overlay_ratio = 0.0

        layers = [Layer(volume, self.geometry, volume_ratio)]
        for overlay, overlay_slice in overlay_slices:
            overlay_slice.set_index(self._index)
            overlay_slice.repaint(overlay)
            layers.append(Layer(overlay, overlay_slice.geometry, overlay_ratio))

        self._layer_rasters = [render_layer(layer, shape) for layer in layers]

        final = np.zeros(shape + (4,), dtype=np.uint8)
        for layer_raster in self._layer_rasters:
            final = screen_blend(final, layer_raster)
        self.raster[...] = final
        self.texture_needs_update = True

    @property
    def layer_rasters(self) -> List[np.ndarray]:
        """Per-layer rasters of the last repaint, main volume first."""
        return list(self._layer_rasters)

    def value_at_uv(self, volume, u: float, v: float):
        """
        Voxel value under texture coordinates (u, v) of the slice plane.

        v runs bottom to top, raster rows top to bottom.
        """
        if self.geometry is None:
            self.update_geometry(volume)
        i = int(round(u * self.i_length))
        j = int(round((1.0 - v) * self.j_length))
        i = min(max(i, 0), max(self.i_length - 1, 0))
        j = min(max(j, 0), max(self.j_length - 1, 0))
        return volume.data[self.pixel_access(i, j)]

    def presentation(self) -> SlicePresentation:
        """Hand the slice over to the renderer and clear the upload flag."""
        if self.shallow or self.raster is None:
            raise DrawingContextUnavailable(f"{self.axis.name} slice has no raster to present")
        self.texture_needs_update = False
        return SlicePresentation(
            raster=self.raster,
            placement=self.geometry.placement,
            plane_width=self.geometry.plane_width,
            plane_height=self.geometry.plane_height,
        )

    def __repr__(self) -> str:
        return (
            f"VolumeSlice(volume_id={self.volume_id}, axis={self.axis.name}, "
            f"index={self._index}, shallow={self.shallow})"
        )
