"""
Slice Geometry

Computes, for a slice perpendicular to one of the volume axes, the raster
size, the mapping from raster pixels to voxel buffer indices and the
placement of the slice plane in RAS space.

Slice indices always increase from L to R, P to A and I to S, whatever the
direction of the IJK axes in the buffer. Images are laid out in
radiological orientation.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Tuple
import math
import logging
import numpy as np
from scipy.spatial.transform import Rotation

from config import DEFAULT_SLICE, SliceConfig
from .affine import rotation_part


class Axis(IntEnum):
    """Normal axis of a slice."""
    X = 0
    Y = 1
    Z = 2


def _rotation4(axis: str, degrees: float) -> np.ndarray:
    matrix = np.eye(4)
    matrix[:3, :3] = Rotation.from_euler(axis, degrees, degrees=True).as_matrix()
    return matrix


@dataclass(frozen=True)
class AxisSpec:
    """
    Per-axis constants of the slice geometry.

    Attributes:
        first_direction: RAS direction of increasing raster i
        second_direction: RAS direction of increasing raster j
        i_axis: Voxel axis addressed by raster i
        j_axis: Voxel axis addressed by raster j
        plane_rotation: Rotation turning the default (Z normal) plane onto this axis
        reverse_signs: Signed unit vector whose corrected components flag reversed axes
    """
    first_direction: Tuple[float, float, float]
    second_direction: Tuple[float, float, float]
    i_axis: Axis
    j_axis: Axis
    plane_rotation: np.ndarray
    reverse_signs: Tuple[float, float, float]


AXIS_TABLE = {
    Axis.X: AxisSpec(
        first_direction=(0.0, 0.0, -1.0),
        second_direction=(0.0, -1.0, 0.0),
        i_axis=Axis.Z,
        j_axis=Axis.Y,
        plane_rotation=_rotation4('y', 90.0),
        reverse_signs=(1.0, -1.0, -1.0),
    ),
    Axis.Y: AxisSpec(
        first_direction=(1.0, 0.0, 0.0),
        second_direction=(0.0, 0.0, 1.0),
        i_axis=Axis.X,
        j_axis=Axis.Z,
        plane_rotation=_rotation4('x', -90.0),
        reverse_signs=(1.0, 1.0, 1.0),
    ),
    Axis.Z: AxisSpec(
        first_direction=(1.0, 0.0, 0.0),
        second_direction=(0.0, -1.0, 0.0),
        i_axis=Axis.X,
        j_axis=Axis.Y,
        plane_rotation=np.eye(4),
        reverse_signs=(-1.0, -1.0, 1.0),
    ),
}


PixelAccess = Callable[..., object]


@dataclass(eq=False)
class PlaneGeometry:
    """
    Geometry of one slice.

    Attributes:
        axis: Normal axis
        index: Slice index along the normal axis
        i_length, j_length: Raster size in pixels
        pixel_access: (i, j) -> flat voxel buffer index; accepts integer arrays
        placement: 4x4 transform placing the plane in RAS space
        plane_width, plane_height: Plane size in mm
        reversed_axes: Per voxel axis, True when it runs against the RAS axis
    """
    axis: Axis
    index: int
    i_length: int
    j_length: int
    pixel_access: PixelAccess
    placement: np.ndarray
    plane_width: float
    plane_height: float
    reversed_axes: Tuple[bool, bool, bool]

    @property
    def shape(self) -> Tuple[int, int]:
        """Raster shape as (rows, columns)."""
        return self.j_length, self.i_length


def _make_pixel_access(
    dimensions: Tuple[int, int, int],
    spec: AxisSpec,
    axis: Axis,
    slice_index: int,
    reversed_axes: Tuple[bool, bool, bool],
) -> PixelAccess:
    nx, ny, nz = dimensions
    plane = nx * ny

    def flip(coordinate, voxel_axis):
        if reversed_axes[voxel_axis]:
            return dimensions[voxel_axis] - 1 - coordinate
        return coordinate

    normal = flip(slice_index, axis)
    i_axis, j_axis = spec.i_axis, spec.j_axis

    def pixel_access(i, j):
        coordinates = [normal, normal, normal]
        coordinates[i_axis] = flip(i, i_axis)
        coordinates[j_axis] = flip(j, j_axis)
        x, y, z = coordinates
        return z * plane + y * nx + x

    return pixel_access


def _pixel_length(direction, inverse_transform, dimensions, tolerance: float) -> int:
    voxel_direction = inverse_transform[:3, :3] @ np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(voxel_direction)
    if norm > 0:
        voxel_direction = voxel_direction / norm
    length = abs(float(np.dot(voxel_direction, dimensions)))
    return int(math.floor(length + tolerance))


def extract_perpendicular_plane(
    volume,
    axis: Axis,
    slice_index: int,
    main_transform: Optional[np.ndarray] = None,
    config: Optional[SliceConfig] = None,
) -> PlaneGeometry:
    """
    Compute the geometry of the slice of volume normal to axis.

    Args:
        volume: VolumeModel to slice
        axis: Normal axis
        slice_index: Position along the normal axis, in voxels
        main_transform: Transform of the main volume when volume is an overlay;
            slice indexing is corrected so the overlay image lines up with the
            main volume plane
        config: Slice configuration

    Returns:
        PlaneGeometry
    """
    config = config or DEFAULT_SLICE
    axis = Axis(axis)
    spec = AXIS_TABLE[axis]
    slice_index = int(slice_index)
    dimensions = volume.dimensions

    rotation_only = rotation_part(volume.transform)
    if main_transform is not None:
        correction = np.linalg.inv(rotation_part(main_transform)) @ rotation_only
    else:
        correction = np.eye(4)

    signs = correction[:3, :3] @ np.asarray(spec.reverse_signs)
    reversed_axes = [bool(c < 0) for c in signs]
    if axis == Axis.Y:
        # Coronal index follows the volume's own J direction, not the correction
        reversed_axes[Axis.Y] = bool(rotation_only[1, :3].sum() <= 0)
    reversed_axes = tuple(reversed_axes)

    pixel_access = _make_pixel_access(dimensions, spec, axis, slice_index, reversed_axes)

    # Middle slice sits at the origin
    normal_spacing = float(volume.spacing[axis])
    offset = slice_index * normal_spacing - (float(volume.ras_dimensions[axis]) - normal_spacing) / 2
    placement = rotation_only @ spec.plane_rotation
    placement[:3, 3] = 0.0
    placement[axis, 3] = offset

    dims = np.asarray(dimensions, dtype=np.float64)
    i_length = _pixel_length(spec.first_direction, volume.inverse_transform, dims, config.length_tolerance)
    j_length = _pixel_length(spec.second_direction, volume.inverse_transform, dims, config.length_tolerance)

    first_spacing = float(volume.spacing[spec.i_axis])
    second_spacing = float(volume.spacing[spec.j_axis])

    logging.debug(
        f"Plane {axis.name}[{slice_index}]: {i_length}x{j_length} px, "
        f"reversed {reversed_axes}, offset {offset:.3f} mm"
    )

    return PlaneGeometry(
        axis=axis,
        index=slice_index,
        i_length=i_length,
        j_length=j_length,
        pixel_access=pixel_access,
        placement=placement,
        plane_width=abs(i_length * first_spacing),
        plane_height=abs(j_length * second_spacing),
        reversed_axes=reversed_axes,
    )
