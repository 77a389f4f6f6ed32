"""
Voxel Buffer

Closed set of supported voxel element types and a typed buffer decoding
raw header image bytes.
"""

from dataclasses import dataclass
from enum import Enum
import numpy as np

from .errors import UnsupportedVoxelType, BufferSizeMismatch


class VoxelType(Enum):
    """Supported voxel element types, keyed by header datatype code."""
    U8 = 2
    I16 = 4
    I32 = 8
    F32 = 16
    F64 = 64
    I8 = 256
    U16 = 512
    U32 = 768

    @classmethod
    def from_code(cls, datatype_code: int) -> "VoxelType":
        try:
            return cls(int(datatype_code))
        except ValueError:
            raise UnsupportedVoxelType(datatype_code) from None

    @classmethod
    def from_dtype(cls, dtype) -> "VoxelType":
        dtype = np.dtype(dtype)
        for voxel_type in cls:
            if voxel_type.dtype == dtype.newbyteorder('<'):
                return voxel_type
        raise UnsupportedVoxelType(dtype.name)

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_DTYPES[self]).newbyteorder('<')

    @property
    def is_float(self) -> bool:
        return self in (VoxelType.F32, VoxelType.F64)


_DTYPES = {
    VoxelType.U8: np.uint8,
    VoxelType.I8: np.int8,
    VoxelType.U16: np.uint16,
    VoxelType.I16: np.int16,
    VoxelType.U32: np.uint32,
    VoxelType.I32: np.int32,
    VoxelType.F32: np.float32,
    VoxelType.F64: np.float64,
}


@dataclass(frozen=True)
class VoxelBuffer:
    """
    Flat voxel values tagged with their element type.

    Attributes:
        voxel_type: Element type tag
        values: 1D numpy array decoded according to voxel_type
    """
    voxel_type: VoxelType
    values: np.ndarray

    @classmethod
    def from_bytes(cls, raw: bytes, voxel_type: VoxelType) -> "VoxelBuffer":
        """
        Decode raw little-endian image bytes.

        Raises:
            BufferSizeMismatch: If the byte count is not a multiple of the item size
        """
        itemsize = voxel_type.dtype.itemsize
        if len(raw) % itemsize:
            raise BufferSizeMismatch(len(raw) - len(raw) % itemsize, len(raw), "bytes")
        values = np.frombuffer(raw, dtype=voxel_type.dtype)
        return cls(voxel_type, values)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "VoxelBuffer":
        """Wrap an existing numpy array (flattened in IJK order as stored)."""
        array = np.asarray(array)
        voxel_type = VoxelType.from_dtype(array.dtype)
        return cls(voxel_type, array.reshape(-1))

    def read(self, index):
        """Value(s) at flat index (scalar or integer array)."""
        return self.values[index]

    def __len__(self) -> int:
        return int(self.values.shape[0])
