"""
Slicing package for orthogonal slice rendering.

Contains orientation resolution, the volume model, slice geometry,
compositing and region color tables.
"""

from .affine import AffineResolver, AffineTransformInfo, TransformMethod, resolve_affine, rotation_part
from .color_lut import RegionColorEntry, ColorTable, parse_color_lut
from .volume import VolumeModel
from .geometry import Axis, AxisSpec, AXIS_TABLE, PlaneGeometry, extract_perpendicular_plane
from .compositor import VolumeSlice, SlicePresentation, window_to_bytes, screen_blend

__all__ = [
    "AffineResolver",
    "AffineTransformInfo",
    "TransformMethod",
    "resolve_affine",
    "rotation_part",
    "RegionColorEntry",
    "ColorTable",
    "parse_color_lut",
    "VolumeModel",
    "Axis",
    "AxisSpec",
    "AXIS_TABLE",
    "PlaneGeometry",
    "extract_perpendicular_plane",
    "VolumeSlice",
    "SlicePresentation",
    "window_to_bytes",
    "screen_blend",
]
