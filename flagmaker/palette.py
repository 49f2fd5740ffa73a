"""Palette atlas indexing.

A palette image doubles as a lookup atlas: every distinct colour in it is
remembered together with the normalised position (UV) where it first
appears.  Colours are split by HSV saturation into a chromatic and an
achromatic reference map so grey-ish source pixels only ever match grey-ish
palette entries and vice versa.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

import numpy as np

from flagmaker.buffer import PixelBuffer, quantize
from flagmaker.config import SATURATION_THRESHOLD

logger = logging.getLogger(__name__)

RGB8 = Tuple[int, int, int]
UV = Tuple[float, float]

DEFAULT_UV: UV = (0.0, 0.0)


@dataclass(frozen=True)
class ColorUvEntry:
    """An opaque 8-bit colour and the atlas position it was first seen at."""
    color: RGB8
    uv: UV


class ReferenceMap:
    """Insertion-ordered, read-only sequence of :class:`ColorUvEntry`.

    Colours and UVs are also kept as numpy arrays so the matcher can search
    many pixels at once without walking the entries in Python.
    """

    def __init__(self, entries: Iterable[ColorUvEntry] = ()):
        self._entries: Tuple[ColorUvEntry, ...] = tuple(entries)
        if self._entries:
            colors = np.array([e.color for e in self._entries], dtype=np.int32)
            uvs = np.array([e.uv for e in self._entries], dtype=np.float64)
        else:
            colors = np.zeros((0, 3), dtype=np.int32)
            uvs = np.zeros((0, 2), dtype=np.float64)
        colors.flags.writeable = False
        uvs.flags.writeable = False
        self.colors = colors
        self.uvs = uvs

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ColorUvEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> ColorUvEntry:
        return self._entries[index]

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"ReferenceMap({len(self._entries)} entries)"


# ---------------------------------------------------------------------------
# Saturation
# ---------------------------------------------------------------------------

def saturation(color: RGB8) -> float:
    """HSV saturation of an 8-bit colour: ``(max - min) / max``, 0 for black."""
    hi = max(color)
    if hi == 0:
        return 0.0
    return (hi - min(color)) / hi


def saturation_array(rgb8: np.ndarray) -> np.ndarray:
    """Vectorised :func:`saturation` over the last axis of a uint8 array."""
    rgb = rgb8[..., :3].astype(np.int32)
    hi = rgb.max(axis=-1)
    lo = rgb.min(axis=-1)
    out = np.zeros(hi.shape, dtype=np.float64)
    nonzero = hi > 0
    out[nonzero] = (hi[nonzero] - lo[nonzero]) / hi[nonzero]
    return out


def is_achromatic(color: RGB8, threshold: float = SATURATION_THRESHOLD) -> bool:
    """Strictly below the threshold counts as achromatic."""
    return saturation(color) < threshold


# ---------------------------------------------------------------------------
# Indexer
# ---------------------------------------------------------------------------

def _axis_coordinate(index: int, extent: int) -> float:
    """``index / (extent - 1)``; a single-pixel axis maps to 0."""
    if extent <= 1:
        return 0.0
    return index / (extent - 1)


def unique_colors_first_seen(rgb8: np.ndarray) -> np.ndarray:
    """Flat indices of the first pixel of every distinct colour, in scan order.

    ``rgb8`` is (H, W, 3); the scan runs row by row (y outer, x inner).
    """
    flat = rgb8.reshape(-1, 3).astype(np.uint32)
    packed = (flat[:, 0] << 16) | (flat[:, 1] << 8) | flat[:, 2]
    _, first_index = np.unique(packed, return_index=True)
    return np.sort(first_index)


def build_reference_maps(
    palette: PixelBuffer,
    threshold: float = SATURATION_THRESHOLD,
) -> Tuple[ReferenceMap, ReferenceMap]:
    """Index a palette atlas into ``(chromatic, achromatic)`` reference maps.

    The palette is made fully opaque first, so alpha never affects colour
    identity.  Pixels are scanned with y in the outer loop and x in the
    inner loop; a colour that was already seen keeps its first position.
    UV is ``(x / (width - 1), y / (height - 1))``.
    """
    opaque = palette.opaque()
    rgb8 = quantize(opaque.pixels[:, :, :3])
    width, height = opaque.width, opaque.height

    chromatic: List[ColorUvEntry] = []
    achromatic: List[ColorUvEntry] = []
    for flat_index in unique_colors_first_seen(rgb8):
        y, x = divmod(int(flat_index), width)
        r, g, b = (int(c) for c in rgb8[y, x])
        entry = ColorUvEntry(
            color=(r, g, b),
            uv=(_axis_coordinate(x, width), _axis_coordinate(y, height)),
        )
        if saturation(entry.color) < threshold:
            achromatic.append(entry)
        else:
            chromatic.append(entry)

    logger.debug(
        "Indexed %dx%d palette: %d chromatic, %d achromatic entries",
        width, height, len(chromatic), len(achromatic),
    )
    return ReferenceMap(chromatic), ReferenceMap(achromatic)
