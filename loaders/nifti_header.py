"""
NIfTI Header Adapter

Maps headers parsed by nibabel onto ScanHeader, and images onto raw voxel
bytes in IJK order. No file access happens here.
"""

from typing import Any, Tuple
import logging
import numpy as np

try:
    import nibabel as nib
    HAS_NIBABEL = True
except ImportError:
    HAS_NIBABEL = False

from core.base import HeaderReader
from core.header import ScanHeader
from core.voxels import VoxelType


def header_from_nifti(hdr) -> ScanHeader:
    """
    Convert a nibabel Nifti1Header (or Nifti2Header) to a ScanHeader.

    Args:
        hdr: nibabel header

    Returns:
        ScanHeader with the orientation and layout fields
    """
    dim = hdr['dim']
    srow = np.eye(4)
    srow[0] = hdr['srow_x']
    srow[1] = hdr['srow_y']
    srow[2] = hdr['srow_z']

    return ScanHeader(
        dims=(int(dim[1]), int(dim[2]), int(dim[3])),
        datatype_code=int(hdr['datatype']),
        qform_code=int(hdr['qform_code']),
        sform_code=int(hdr['sform_code']),
        quatern_b=float(hdr['quatern_b']),
        quatern_c=float(hdr['quatern_c']),
        quatern_d=float(hdr['quatern_d']),
        qoffset_x=float(hdr['qoffset_x']),
        qoffset_y=float(hdr['qoffset_y']),
        qoffset_z=float(hdr['qoffset_z']),
        pixdim=tuple(float(p) for p in hdr['pixdim'][:4]),
        srow=srow,
        xyzt_units=int(hdr['xyzt_units']),
    )


def image_bytes(image, voxel_type: VoxelType) -> bytes:
    """
    Raw voxel bytes of the first 3D volume of a nibabel image, I fastest.

    Scaling (scl_slope/scl_inter) is not applied.
    """
    dataobj = image.dataobj
    if hasattr(dataobj, 'get_unscaled'):
        array = dataobj.get_unscaled()
    else:
        array = np.asarray(dataobj)

    array = np.asarray(array, dtype=voxel_type.dtype)
    if array.ndim > 3:
        logging.info(f"Image has {array.ndim} dimensions, using the first 3D volume")
        array = array[(Ellipsis,) + (0,) * (array.ndim - 3)]
    while array.ndim < 3:
        array = array[..., np.newaxis]
    return array.ravel(order='F').tobytes()


class NiftiHeaderReader(HeaderReader):
    """
    Header reader for nibabel NIfTI images and headers.

    Usage:
        header, raw = NiftiHeaderReader().read_header(nib.load(path))
        volume = VolumeModel.from_header(header, raw)
    """

    def __init__(self):
        if not HAS_NIBABEL:
            raise ImportError(
                "nibabel is required for NIfTI headers. "
                "Install it with: pip install nibabel"
            )

    def can_read(self, source: Any) -> bool:
        return isinstance(source, (nib.Nifti1Header, nib.Nifti1Image))

    def read_header(self, source: Any) -> Tuple[ScanHeader, bytes]:
        if isinstance(source, nib.Nifti1Header):
            return header_from_nifti(source), b""

        if not self.can_read(source):
            raise TypeError(f"Not a NIfTI image or header: {type(source).__name__}")

        header = header_from_nifti(source.header)
        voxel_type = VoxelType.from_code(header.datatype_code)
        raw = image_bytes(source, voxel_type)
        logging.info(
            f"NIfTI header read: dims {header.dims}, {voxel_type.name}, "
            f"qform_code={header.qform_code}, sform_code={header.sform_code}"
        )
        return header, raw
