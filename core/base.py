"""
Core Base Classes

Abstract interfaces for the collaborators around the slicing engine:
the header reader feeding it and the renderer consuming slice images.
"""

from abc import ABC, abstractmethod
from typing import Any, Tuple

from .header import ScanHeader


class HeaderReader(ABC):
    """Abstract source of parsed scan headers."""

    @abstractmethod
    def read_header(self, source: Any) -> Tuple[ScanHeader, bytes]:
        """
        Convert an already-parsed header object into a ScanHeader.

        Args:
            source: Header object of the reading library

        Returns:
            (ScanHeader, raw image bytes); bytes may be empty when the
            source carries no image data
        """
        pass

    def can_read(self, source: Any) -> bool:
        """
        Check if this reader can handle the given source.

        Args:
            source: Header object to check

        Returns:
            True if this reader can handle the source
        """
        return True


class SliceConsumer(ABC):
    """Abstract consumer of painted slices (the renderer side)."""

    @abstractmethod
    def set_slice_image(self, presentation) -> None:
        """
        Receive a painted slice.

        Args:
            presentation: slicing.compositor.SlicePresentation
        """
        pass

    def clear(self) -> None:
        """Drop any received image."""
        pass
