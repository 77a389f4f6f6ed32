"""
Volume Model

Voxel buffer of a scan together with its IJK to RAS orientation,
spacing, intensity range and overlay layers.
"""

from typing import List, Optional, Sequence, Tuple, Union
import logging
import numpy as np

from core.errors import EmptyVolumeError, BufferSizeMismatch, InvalidSpacing
from core.header import ScanHeader
from core.voxels import VoxelBuffer, VoxelType
from .affine import AffineResolver
from .color_lut import ColorTable


class VolumeModel:
    """
    Scan volume in IJK voxel space with its mapping to RAS space.

    Voxels are stored flat with I varying fastest:
    index = k * nx * ny + j * nx + i.

    Attributes:
        dimensions: Voxel counts (nx, ny, nz)
        buffer: Tagged voxel buffer
        spacing: (3,) voxel spacing in mm along I, J, K
        transform: 4x4 IJK to RAS orientation
        inverse_transform: Inverse of transform
        min, max: Intensity range over non-NaN voxels
        window_low, window_high: Display window, initially [min, max]
        overlays: Overlay volumes composited over this one
        mix_ratio: Weight of this volume against its overlays, in [0, 1]
        lookup_table: Optional region color table (categorical volume)
        main_volume_matrix: Transform of the volume this one overlays
        volume_id: Id assigned by a VolumeRegistry, None until registered
    """

    def __init__(
        self,
        buffer: Union[VoxelBuffer, np.ndarray],
        dimensions: Sequence[int],
        transform: Optional[np.ndarray] = None,
        spacing: Sequence[float] = (1.0, 1.0, 1.0),
        lookup_table: Optional[ColorTable] = None,
        name: str = "",
    ):
        """
        Args:
            buffer: Voxel values, flat in IJK order
            dimensions: (nx, ny, nz)
            transform: 4x4 IJK to RAS orientation (identity if None)
            spacing: Voxel spacing in mm
            lookup_table: Region color table for label volumes
            name: Display name

        Raises:
            EmptyVolumeError: If a dimension is not positive
            InvalidSpacing: If a spacing is not finite and positive
            BufferSizeMismatch: If the buffer length is not nx * ny * nz
        """
        dimensions = tuple(int(d) for d in dimensions)
        if len(dimensions) != 3 or any(d <= 0 for d in dimensions):
            raise EmptyVolumeError(dimensions)

        spacing = np.asarray(spacing, dtype=np.float64)
        if spacing.shape != (3,) or not np.all(np.isfinite(spacing)) or not np.all(spacing > 0):
            raise InvalidSpacing(spacing.ravel())

        if not isinstance(buffer, VoxelBuffer):
            buffer = VoxelBuffer.from_array(buffer)

        expected = dimensions[0] * dimensions[1] * dimensions[2]
        if len(buffer) != expected:
            raise BufferSizeMismatch(expected, len(buffer))

        self.name = name
        self._dimensions = dimensions
        self._buffer = buffer
        self.spacing = spacing

        self.transform = np.eye(4)
        self.inverse_transform = np.eye(4)
        self.set_transform(np.eye(4) if transform is None else transform)

        self.min = 0.0
        self.max = 0.0
        self.window_low = 0.0
        self.window_high = 0.0
        self.compute_min_max()

        self.overlays: List["VolumeModel"] = []
        self.mix_ratio: float = 1.0
        self.lookup_table = lookup_table
        self.main_volume_matrix: Optional[np.ndarray] = None
        self.volume_id: Optional[int] = None

        logging.info(
            f"Volume {name or '<unnamed>'} created: {dimensions}, "
            f"{buffer.voxel_type.name}, range [{self.min}, {self.max}]"
        )

    @classmethod
    def from_header(
        cls,
        header: ScanHeader,
        raw: bytes,
        resolver: Optional[AffineResolver] = None,
        name: str = "",
    ) -> "VolumeModel":
        """
        Build a volume from a parsed header and its raw image bytes.

        Raises:
            UnsupportedOrientation, UnsupportedVoxelType, EmptyVolumeError,
            BufferSizeMismatch
        """
        info = (resolver or AffineResolver()).resolve(header)
        voxel_type = VoxelType.from_code(header.datatype_code)
        dimensions = tuple(int(d) for d in header.dims[:3])
        if any(d <= 0 for d in dimensions):
            raise EmptyVolumeError(dimensions)

        buffer = VoxelBuffer.from_bytes(raw, voxel_type)
        expected = dimensions[0] * dimensions[1] * dimensions[2]
        if len(buffer) < expected:
            raise BufferSizeMismatch(expected, len(buffer))
        if len(buffer) > expected:
            # Only the first 3D volume of a series is used
            buffer = VoxelBuffer(voxel_type, buffer.values[:expected])

        return cls(buffer, dimensions, transform=info.rotation, spacing=info.spacing, name=name)

    # ---- Layout ----

    @property
    def dimensions(self) -> Tuple[int, int, int]:
        return self._dimensions

    @property
    def nx(self) -> int:
        return self._dimensions[0]

    @property
    def ny(self) -> int:
        return self._dimensions[1]

    @property
    def nz(self) -> int:
        return self._dimensions[2]

    @property
    def buffer(self) -> VoxelBuffer:
        return self._buffer

    @property
    def data(self) -> np.ndarray:
        """Flat voxel values."""
        return self._buffer.values

    @property
    def voxel_type(self) -> VoxelType:
        return self._buffer.voxel_type

    @property
    def ras_dimensions(self) -> np.ndarray:
        """Physical extent (w, h, d) in mm."""
        return np.asarray(self._dimensions, dtype=np.float64) * self.spacing

    @property
    def is_categorical(self) -> bool:
        return self.lookup_table is not None

    def index_of(self, i, j, k):
        """Flat buffer index of voxel (i, j, k). Works on integer arrays too."""
        return k * self.nx * self.ny + j * self.nx + i

    def coordinates_of(self, index: int) -> Tuple[int, int, int]:
        """Voxel coordinates (i, j, k) of a flat buffer index."""
        plane = self.nx * self.ny
        k = index // plane
        j = (index - k * plane) // self.nx
        i = index - k * plane - j * self.nx
        return int(i), int(j), int(k)

    def value_at(self, i: int, j: int, k: int):
        return self._buffer.read(self.index_of(i, j, k))

    # ---- Orientation ----

    def set_transform(self, transform: np.ndarray) -> None:
        """Set the IJK to RAS transform and recompute its inverse."""
        transform = np.asarray(transform, dtype=np.float64).reshape(4, 4)
        self.transform = transform.copy()
        self.inverse_transform = np.linalg.inv(transform)

    # ---- Intensity ----

    def compute_min_max(self) -> Tuple[float, float]:
        """
        Compute the intensity range, skipping NaN voxels, and reset the window.

        Returns:
            (min, max)
        """
        values = self._buffer.values
        if self.voxel_type.is_float:
            values = values[~np.isnan(values)]

        if values.size == 0:
            logging.warning(f"Volume {self.name or '<unnamed>'} holds only NaN voxels")
            low, high = 0.0, 0.0
        else:
            low, high = values.min().item(), values.max().item()

        self.min, self.max = low, high
        self.window_low, self.window_high = low, high
        return low, high

    def set_window(self, low: float, high: float) -> None:
        self.window_low = low
        self.window_high = high

    # ---- Overlays ----

    def attach_overlay(self, overlay: "VolumeModel") -> None:
        """
        Composite overlay over this volume.

        The overlay is referenced, not owned. It records this volume's
        transform to correct its slice indexing.
        """
        overlay.main_volume_matrix = self.transform.copy()
        self.overlays.append(overlay)
        logging.info(
            f"Overlay {overlay.name or '<unnamed>'} attached to "
            f"{self.name or '<unnamed>'} ({len(self.overlays)} overlays)"
        )

    def detach_overlay(self, overlay: "VolumeModel") -> None:
        self.overlays = [o for o in self.overlays if o is not overlay]
        overlay.main_volume_matrix = None

    def __repr__(self) -> str:
        return (
            f"VolumeModel(name={self.name!r}, dimensions={self._dimensions}, "
            f"voxel_type={self.voxel_type.name})"
        )
