"""Public interface for the flag maker.

Converts a source image into an encoded flag: a comma-separated stream of
``u:v`` coordinates into a palette atlas, one per pixel of the fixed-size
target surface.
"""

from __future__ import annotations

from .buffer import PixelBuffer
from .config import FlagMakerConfig, ProcessingParameters
from .encoder import decode, encode
from .errors import (
    FlagFormatError,
    FlagMakerError,
    GeometryError,
    InputUnavailableError,
    PersistenceError,
)
from .filters import apply_filters
from .matcher import find_closest_uv, match_buffer
from .palette import ColorUvEntry, ReferenceMap, build_reference_maps
from .pipeline import PaletteIndex, process, process_buffers
from .resize import resize

__all__ = [
    "ColorUvEntry",
    "FlagFormatError",
    "FlagMakerConfig",
    "FlagMakerError",
    "GeometryError",
    "InputUnavailableError",
    "PaletteIndex",
    "PersistenceError",
    "PixelBuffer",
    "ProcessingParameters",
    "ReferenceMap",
    "apply_filters",
    "build_reference_maps",
    "decode",
    "encode",
    "find_closest_uv",
    "match_buffer",
    "process",
    "process_buffers",
    "resize",
]
