"""
Volume Slicer Configuration

Contains constants and default settings for the slicing and compositing engine.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class OrientationConfig:
    """Configuration for header orientation resolution."""
    quaternion_epsilon: float = 1e-7  # Below this, 1-(b²+c²+d²) means a 180° rotation


@dataclass
class SliceConfig:
    """Configuration for slice extraction."""
    # Initial slice index per axis, as a fraction of the dimension (X, Y, Z)
    initial_slice_fractions: Tuple[float, float, float] = (0.5, 0.5, 0.25)
    length_tolerance: float = 1e-9  # Added before flooring plane pixel counts


@dataclass
class DisplayConfig:
    """
    Configuration for intensity display.

    window_presets are CT presets in Hounsfield units; SliceViewer adds a
    "Full Range" preset derived from each volume's intensity range.
    """
    default_mix_ratio: float = 1.0  # Weight of the main volume against overlays

    # Window/Level presets
    window_presets: dict = field(default_factory=lambda: {
        "Bone": {"center": 500, "width": 2000},
        "Soft Tissue": {"center": 40, "width": 400},
        "Lung": {"center": -600, "width": 1500},
        "Brain": {"center": 40, "width": 80},
        "Liver": {"center": 60, "width": 160},
        "Custom": {"center": 0, "width": 1000},
    })


# Default configurations
DEFAULT_ORIENTATION = OrientationConfig()
DEFAULT_SLICE = SliceConfig()
DEFAULT_DISPLAY = DisplayConfig()
