"""Exception types raised at the flag maker boundaries.

The processing stages themselves are total over valid buffers; everything
here is raised either for contract violations (bad geometry) or by the
loading / persistence layers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class FlagMakerError(Exception):
    """Base class for all flag maker failures."""


class InputUnavailableError(FlagMakerError):
    """A source or palette image could not be loaded."""

    def __init__(self, role: str, path: Optional[Union[str, Path]] = None, reason: str = ""):
        self.role = role
        self.path = Path(path) if path is not None else None
        self.reason = reason
        message = f"Failed to load {role} image"
        if self.path is not None:
            message += f" ('{self.path}')"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class GeometryError(FlagMakerError, ValueError):
    """Zero-area buffer, malformed array shape, or non-positive resize target."""


class PersistenceError(FlagMakerError):
    """Writing or reading a flag file failed."""

    def __init__(self, path: Union[str, Path], reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = f"Could not access flag file {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class FlagFormatError(FlagMakerError, ValueError):
    """A string does not follow the encoded flag grammar."""
