"""
Affine Resolver

Resolves the orientation information of a scan header into a single
IJK to RAS rotation and the physical voxel spacing.

The header can describe its orientation in three ways, with the following
precedence:

1. S-form (sform_code > 0): a full 4x4 affine is stored in the header.
   The rotation is extracted from it and the spacing is taken from the
   length of its columns; pixdim is ignored.
2. Q-form (qform_code > 0): a rotation quaternion (b, c, d) with voxel
   sizes in pixdim[1..3].
3. Neither: identity orientation scaled by pixdim[1..3].

The resulting transform is orientation only. The Q-form offsets and the
pixdim[0] qfac sign are not applied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging
import numpy as np
from scipy.spatial.transform import Rotation

from core.header import ScanHeader
from core.errors import UnsupportedOrientation
from config import DEFAULT_ORIENTATION, OrientationConfig


class TransformMethod(Enum):
    """Which header method produced the transform."""
    QFORM = "qform"
    SFORM = "sform"
    IDENTITY = "identity"


@dataclass
class AffineTransformInfo:
    """
    Resolved orientation.

    Attributes:
        rotation: 4x4 rotation/reflection matrix without translation or scaling
        spacing: (3,) physical voxel spacing in mm along I, J, K
        method: Provenance of the transform
        code: qform_code/sform_code of the chosen method (0 for identity)
    """
    rotation: np.ndarray
    spacing: np.ndarray
    method: TransformMethod
    code: int = 0


def rotation_part(matrix: np.ndarray) -> np.ndarray:
    """
    Extract the rotation of an affine as a 4x4 matrix.

    Columns of the upper 3x3 block are normalized (removing scale), the
    translation is dropped. Reflections are kept. Zero columns stay zero.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    result = np.eye(4)
    linear = matrix[:3, :3]
    lengths = np.linalg.norm(linear, axis=0)
    safe = np.where(lengths > 0, lengths, 1.0)
    result[:3, :3] = linear / safe
    return result


def _usable_spacing(spacing: np.ndarray) -> bool:
    return bool(np.all(np.isfinite(spacing)) and np.all(spacing > 0))


class AffineResolver:
    """
    Turns a ScanHeader into an AffineTransformInfo.

    Usage:
        info = AffineResolver().resolve(header)
    """

    def __init__(self, config: Optional[OrientationConfig] = None):
        self.config = config or DEFAULT_ORIENTATION

    def resolve(self, header: ScanHeader) -> AffineTransformInfo:
        """
        Resolve the header orientation.

        Args:
            header: Parsed scan header

        Returns:
            AffineTransformInfo for the preferred available method

        Raises:
            UnsupportedOrientation: If no method yields a usable transform
        """
        length_factor = header.spatial_unit.length_factor

        info = self.from_sform(header, length_factor)
        if info is None:
            info = self.from_qform(header, length_factor)
        if info is None and header.qform_code == 0:
            info = self.from_identity(header, length_factor)

        if info is None:
            raise UnsupportedOrientation(
                f"Unable to resolve orientation (qform_code={header.qform_code}, "
                f"sform_code={header.sform_code}, pixdim={tuple(header.pixdim[1:4])})"
            )

        logging.info(
            f"Orientation resolved with {info.method.value} method, "
            f"spacing {np.round(info.spacing, 4).tolist()} mm"
        )
        return info

    def from_sform(self, header: ScanHeader, length_factor: float) -> Optional[AffineTransformInfo]:
        """S-form method; None when sform_code is not set or the affine is degenerate."""
        if header.sform_code <= 0:
            return None

        affine = np.asarray(header.srow, dtype=np.float64).reshape(4, 4)
        spacing = np.linalg.norm(affine[:3, :3], axis=0) * length_factor
        if not _usable_spacing(spacing):
            logging.warning("S-form affine has a degenerate axis, ignoring it")
            return None

        return AffineTransformInfo(
            rotation=rotation_part(affine),
            spacing=spacing,
            method=TransformMethod.SFORM,
            code=int(header.sform_code),
        )

    def from_qform(self, header: ScanHeader, length_factor: float) -> Optional[AffineTransformInfo]:
        """Q-form method; None when qform_code is not set or pixdim is unusable."""
        if header.qform_code <= 0:
            return None

        if header.pixdim[0] == -1:
            logging.warning("qfac is -1, left-handed Q-form is not applied")

        b, c, d = header.quatern_b, header.quatern_c, header.quatern_d
        norm2 = b * b + c * c + d * d
        if 1.0 - norm2 < self.config.quaternion_epsilon:
            # 180 degree rotation: renormalize (b, c, d)
            scale = 1.0 / np.sqrt(norm2)
            b, c, d = b * scale, c * scale, d * scale
            a = 0.0
        else:
            a = np.sqrt(1.0 - norm2)

        rotation = np.eye(4)
        rotation[:3, :3] = Rotation.from_quat([b, c, d, a]).as_matrix()

        spacing = np.abs(header.voxel_sizes) * length_factor
        if not _usable_spacing(spacing):
            logging.warning(f"Q-form voxel sizes are unusable: {header.voxel_sizes.tolist()}")
            return None

        return AffineTransformInfo(
            rotation=rotation,
            spacing=spacing,
            method=TransformMethod.QFORM,
            code=int(header.qform_code),
        )

    def from_identity(self, header: ScanHeader, length_factor: float) -> Optional[AffineTransformInfo]:
        """Fallback method: voxel sizes only, no orientation."""
        spacing = np.abs(header.voxel_sizes) * length_factor
        if not _usable_spacing(spacing):
            return None

        return AffineTransformInfo(
            rotation=np.eye(4),
            spacing=spacing,
            method=TransformMethod.IDENTITY,
        )


def resolve_affine(header: ScanHeader) -> AffineTransformInfo:
    """Resolve a header with the default configuration."""
    return AffineResolver().resolve(header)
