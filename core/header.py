"""
Scan Header

Already-parsed orientation fields of a scan header, as handed over by the
external header reader.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple
import numpy as np


# Low three bits of xyzt_units hold the spatial unit
SPATIAL_UNITS_MASK = 0x07


class SpatialUnit(Enum):
    """Spatial unit codes and their factor to millimeters."""
    UNKNOWN = 0
    METER = 1
    MM = 2
    MICRON = 3

    @classmethod
    def from_code(cls, xyzt_units: int) -> "SpatialUnit":
        code = int(xyzt_units) & SPATIAL_UNITS_MASK
        for unit in cls:
            if unit.value == code:
                return unit
        return cls.UNKNOWN

    @property
    def length_factor(self) -> float:
        """Multiplier converting lengths in this unit to millimeters."""
        if self is SpatialUnit.METER:
            return 1000.0
        if self is SpatialUnit.MICRON:
            return 0.001
        return 1.0


@dataclass
class ScanHeader:
    """
    Orientation and layout fields of a scan header.

    Attributes:
        dims: Voxel counts along I, J, K
        datatype_code: Voxel datatype code (see core.voxels.VoxelType)
        qform_code: Q-form transform code (0 = not set)
        sform_code: S-form transform code (0 = not set)
        quatern_b, quatern_c, quatern_d: Q-form rotation quaternion (b, c, d)
        qoffset_x, qoffset_y, qoffset_z: Q-form offsets (not applied)
        pixdim: pixdim[0] is the qfac sign flag, pixdim[1..3] the voxel sizes
        srow: 4x4 S-form affine, row major
        xyzt_units: Packed spatial/temporal units code
    """
    dims: Tuple[int, int, int] = (1, 1, 1)
    datatype_code: int = 2
    qform_code: int = 0
    sform_code: int = 0
    quatern_b: float = 0.0
    quatern_c: float = 0.0
    quatern_d: float = 0.0
    qoffset_x: float = 0.0
    qoffset_y: float = 0.0
    qoffset_z: float = 0.0
    pixdim: Tuple[float, ...] = (1.0, 1.0, 1.0, 1.0)
    srow: np.ndarray = field(default_factory=lambda: np.eye(4))
    xyzt_units: int = SpatialUnit.MM.value

    @property
    def spatial_unit(self) -> SpatialUnit:
        return SpatialUnit.from_code(self.xyzt_units)

    @property
    def voxel_sizes(self) -> np.ndarray:
        """pixdim[1..3] as a float array (in header units)."""
        return np.asarray(self.pixdim[1:4], dtype=np.float64)
