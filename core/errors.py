"""
Volume Errors

Error taxonomy for header resolution, volume construction and slice compositing.
"""


class VolumeError(Exception):
    """Base class for all volume engine errors."""
    pass


class UnsupportedOrientation(VolumeError):
    """Header provides neither a usable Q-form, S-form nor plain voxel scaling."""
    pass


class UnsupportedVoxelType(VolumeError):
    """Datatype code is not one of the supported numeric voxel types."""

    def __init__(self, datatype_code):
        self.datatype_code = datatype_code
        super().__init__(f"Unsupported voxel datatype code: {datatype_code}")


class EmptyVolumeError(VolumeError):
    """Volume dimensions contain a non-positive value."""

    def __init__(self, dimensions):
        self.dimensions = tuple(dimensions)
        super().__init__(f"Volume dimensions must be positive, got {self.dimensions}")


class InvalidSpacing(VolumeError):
    """Voxel spacing contains a non-finite or non-positive value."""

    def __init__(self, spacing):
        self.spacing = tuple(float(s) for s in spacing)
        super().__init__(f"Voxel spacing must be finite and positive, got {self.spacing}")


class BufferSizeMismatch(VolumeError):
    """Voxel buffer length does not match the volume dimensions."""

    def __init__(self, expected: int, actual: int, unit: str = "values"):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Voxel buffer holds {actual} {unit}, expected {expected}"
        )


class DrawingContextUnavailable(VolumeError):
    """No drawable raster for a slice; only that slice's repaint is aborted."""
    pass
