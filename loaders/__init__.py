"""
Loaders Package

Contains adapters from header reading libraries to the slicing engine.
"""

from .nifti_header import (
    NiftiHeaderReader,
    header_from_nifti,
    image_bytes,
    HAS_NIBABEL,
)

__all__ = [
    'NiftiHeaderReader',
    'header_from_nifti',
    'image_bytes',
    'HAS_NIBABEL',
]
