"""
Volume Slicer

Demo entry point: renders the orthogonal slices of a synthetic phantom
with a labelled overlay and writes them as PNG images.
"""

import argparse
import sys
import logging
from pathlib import Path

import numpy as np

from slicing import VolumeModel, Axis, parse_color_lut
from visualization import SliceViewer, SliceTexture


PHANTOM_LUT = """\
1 LH:_Left_Region_(LR) 255 0 0 255
2 RH:_Right_Region_(RR) 0 128 255 255
"""


def setup_logging():
    """Configure logging to stdout."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def make_phantom(size: int = 64):
    """
    Build a spherical intensity phantom and a two-region label volume.

    Returns:
        (phantom, labels) VolumeModel pair
    """
    k, j, i = np.meshgrid(np.arange(size), np.arange(size), np.arange(size), indexing='ij')
    center = (size - 1) / 2
    radius = np.sqrt((i - center) ** 2 + (j - center) ** 2 + (k - center) ** 2)

    intensity = np.clip(1000.0 - radius * 1000.0 / center, 0, None).astype(np.int16)
    labels = np.zeros(intensity.shape, dtype=np.uint8)
    labels[(radius < center / 2) & (i < center)] = 1
    labels[(radius < center / 2) & (i >= center)] = 2

    dims = (size, size, size)
    phantom = VolumeModel(intensity.reshape(-1), dims, name="phantom")
    label_volume = VolumeModel(labels.reshape(-1), dims, name="labels")
    return phantom, label_volume


def main(argv=None):
    """Application entry point."""
    setup_logging()

    parser = argparse.ArgumentParser(description="Render orthogonal slices of a phantom volume")
    parser.add_argument("output", nargs="?", default=".", help="Output directory for PNG slices")
    parser.add_argument("--size", type=int, default=64, help="Phantom edge length in voxels")
    parser.add_argument("--mix", type=float, default=0.7, help="Weight of the phantom against the labels")
    args = parser.parse_args(argv)

    output = Path(args.output)
    output.mkdir(parents=True, exist_ok=True)

    phantom, labels = make_phantom(args.size)
    viewer = SliceViewer()
    viewer.set_volume(phantom)
    viewer.add_overlay(labels, parse_color_lut(PHANTOM_LUT))
    viewer.set_mix_ratio(args.mix)

    texture = SliceTexture()
    for axis in Axis:
        viewer.set_slice(axis, args.size // 2)
        texture.set_slice_image(viewer.presentation(axis))
        path = output / f"slice_{axis.name.lower()}.png"
        if not texture.image.save(str(path)):
            logging.error(f"Failed to write {path}")
            return 1
        logging.info(f"Wrote {path} ({texture.plane_size[0]:.1f} x {texture.plane_size[1]:.1f} mm)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
