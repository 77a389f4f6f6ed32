"""
Visualization Package

Contains the hand-off of slices and volumes to the rendering side.
"""

from .slice_viewer import SliceViewer
from .volume_viewer import VolumeViewer
from .texture import SliceTexture, raster_to_qimage

__all__ = [
    'SliceViewer',
    'VolumeViewer',
    'SliceTexture',
    'raster_to_qimage',
]
