"""
Core Package

Contains header and voxel data structures, the error taxonomy, collaborator
interfaces and the volume registry.

The registry depends on the slicing package; import it from
core.data_manager.
"""

from .errors import (
    VolumeError,
    UnsupportedOrientation,
    UnsupportedVoxelType,
    EmptyVolumeError,
    InvalidSpacing,
    BufferSizeMismatch,
    DrawingContextUnavailable,
)
from .header import ScanHeader, SpatialUnit
from .voxels import VoxelType, VoxelBuffer
from .base import HeaderReader, SliceConsumer

__all__ = [
    'VolumeError',
    'UnsupportedOrientation',
    'UnsupportedVoxelType',
    'EmptyVolumeError',
    'InvalidSpacing',
    'BufferSizeMismatch',
    'DrawingContextUnavailable',
    'ScanHeader',
    'SpatialUnit',
    'VoxelType',
    'VoxelBuffer',
    'HeaderReader',
    'SliceConsumer',
]
