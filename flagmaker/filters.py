"""Pixel filters applied to the resized source before palette matching.

Every filter works on the whole buffer and writes the result back in place
with the same dimensions.  No filter clamps: values outside [0, 1] are
carried to the next stage and clamped only when pixels are quantised for
matching.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.ndimage import correlate, median_filter as _nd_median

from flagmaker.buffer import PixelBuffer
from flagmaker.config import ProcessingParameters

logger = logging.getLogger(__name__)

SHARPEN_KERNEL = np.array(
    [[0, -1, 0],
     [-1, 5, -1],
     [0, -1, 0]],
    dtype=np.float32,
)


def apply_brightness(buffer: PixelBuffer, amount: float) -> PixelBuffer:
    """Add ``amount`` to r, g and b; alpha untouched."""
    data = buffer.pixels.copy()
    data[:, :, :3] += np.float32(amount)
    buffer.replace(data)
    return buffer


def apply_contrast(buffer: PixelBuffer, factor: float) -> PixelBuffer:
    """Scale r, g and b around mid-grey: ``0.5 + factor * (v - 0.5)``."""
    data = buffer.pixels.copy()
    data[:, :, :3] = 0.5 + np.float32(factor) * (data[:, :, :3] - 0.5)
    buffer.replace(data)
    return buffer


def apply_sharpen(buffer: PixelBuffer, amount: float) -> PixelBuffer:
    """3x3 sharpen blended into the original by ``amount``.

    Only interior pixels are convolved; the first and last row and column
    pass through unchanged.  The blend weight is clamped to [0, 1], so
    strengths above 1 give the fully sharpened result.
    """
    original = buffer.pixels
    h, w = original.shape[:2]
    result = original.copy()
    if h < 3 or w < 3:
        buffer.replace(result)
        return buffer

    t = np.float32(min(max(amount, 0.0), 1.0))
    for c in range(3):
        convolved = correlate(original[:, :, c], SHARPEN_KERNEL, mode="nearest")
        inner_orig = original[1:-1, 1:-1, c]
        inner_conv = convolved[1:-1, 1:-1]
        result[1:-1, 1:-1, c] = inner_orig + (inner_conv - inner_orig) * t

    buffer.replace(result)
    return buffer


def apply_median(buffer: PixelBuffer, size: int) -> PixelBuffer:
    """Per-channel median over a square window with edge replication.

    The window spans ``size // 2`` pixels on each side of the centre, so an
    even ``size`` behaves like ``size + 1``.  Alpha keeps the centre value.
    """
    half = int(size) // 2
    if half < 1:
        return buffer

    window = 2 * half + 1
    original = buffer.pixels
    result = original.copy()
    for c in range(3):
        result[:, :, c] = _nd_median(original[:, :, c], size=window, mode="nearest")

    buffer.replace(result)
    return buffer


def apply_filters(buffer: PixelBuffer, params: ProcessingParameters) -> PixelBuffer:
    """Run the enabled filters in order: brightness, contrast, sharpen, median."""
    applied = []
    if params.uses_brightness:
        apply_brightness(buffer, params.brightness)
        applied.append(f"brightness={params.brightness:.2f}")
    if params.uses_contrast:
        apply_contrast(buffer, params.contrast)
        applied.append(f"contrast={params.contrast:.2f}")
    if params.uses_sharpen:
        apply_sharpen(buffer, params.sharpen)
        applied.append(f"sharpen={params.sharpen:.2f}")
    if params.uses_median:
        apply_median(buffer, params.noise)
        applied.append(f"median={params.noise}")

    logger.debug("Filters applied: %s", ", ".join(applied) or "none")
    return buffer
