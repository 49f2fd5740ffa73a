"""Nearest palette colour search.

Distance is the unweighted squared difference in 8-bit RGB space.  When
several entries are equally close the one that comes first in the map wins;
an empty map yields UV (0, 0).
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from flagmaker.buffer import PixelBuffer, quantize
from flagmaker.config import SATURATION_THRESHOLD
from flagmaker.palette import DEFAULT_UV, RGB8, UV, ReferenceMap, saturation, saturation_array

logger = logging.getLogger(__name__)

# Upper bound on pixel x entry distance cells evaluated per numpy batch
_BATCH_CELLS = 4_000_000


def find_closest_uv(pixel: Sequence[int], reference_map: ReferenceMap) -> UV:
    """UV of the entry closest to ``pixel`` (first one wins on ties)."""
    r, g, b = int(pixel[0]), int(pixel[1]), int(pixel[2])
    best_dist = None
    best_uv = DEFAULT_UV
    for entry in reference_map:
        dr = r - entry.color[0]
        dg = g - entry.color[1]
        db = b - entry.color[2]
        dist = dr * dr + dg * dg + db * db
        if best_dist is None or dist < best_dist:
            best_dist = dist
            best_uv = entry.uv
            if dist == 0:
                break
    return best_uv


def match_pixel(
    pixel: RGB8,
    chromatic: ReferenceMap,
    achromatic: ReferenceMap,
    threshold: float = SATURATION_THRESHOLD,
) -> UV:
    """Route a pixel to the map matching its saturation and search it."""
    reference_map = achromatic if saturation(pixel) < threshold else chromatic
    return find_closest_uv(pixel, reference_map)


def _closest_indices(pixels: np.ndarray, reference_map: ReferenceMap) -> np.ndarray:
    """Index of the nearest entry for each row of ``pixels`` (N, 3) int32."""
    colors = reference_map.colors
    out = np.empty(len(pixels), dtype=np.intp)
    step = max(1, _BATCH_CELLS // max(1, len(colors)))
    for start in range(0, len(pixels), step):
        chunk = pixels[start:start + step]
        diff = chunk[:, None, :] - colors[None, :, :]
        dist = np.einsum("ijk,ijk->ij", diff, diff)
        # argmin returns the first minimum, i.e. insertion order breaks ties
        out[start:start + step] = np.argmin(dist, axis=1)
    return out


def match_buffer(
    buffer: PixelBuffer,
    chromatic: ReferenceMap,
    achromatic: ReferenceMap,
    threshold: float = SATURATION_THRESHOLD,
) -> List[UV]:
    """Match every pixel and return UVs in column-major order.

    The outer loop runs over x and the inner loop over y; that flattening is
    what consumers of an encoded flag expect.
    """
    rgb8 = quantize(buffer.pixels[:, :, :3])
    # (W, H, 3): transposing makes a plain reshape walk x outer, y inner
    columns = np.transpose(rgb8, (1, 0, 2)).reshape(-1, 3).astype(np.int32)
    gray = saturation_array(columns) < threshold

    uvs = np.zeros((len(columns), 2), dtype=np.float64)
    for mask, reference_map in ((gray, achromatic), (~gray, chromatic)):
        if not mask.any() or not reference_map:
            continue
        idx = _closest_indices(columns[mask], reference_map)
        uvs[mask] = reference_map.uvs[idx]

    logger.debug(
        "Matched %d pixels (%d achromatic) against %d/%d entries",
        len(columns), int(gray.sum()), len(chromatic), len(achromatic),
    )
    return [(float(u), float(v)) for u, v in uvs]
