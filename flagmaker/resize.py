"""Bilinear resampling of a PixelBuffer to the fixed target resolution."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from flagmaker.buffer import PixelBuffer
from flagmaker.config import TARGET_HEIGHT, TARGET_WIDTH
from flagmaker.errors import GeometryError

logger = logging.getLogger(__name__)


def resize(
    buffer: PixelBuffer,
    target_w: int = TARGET_WIDTH,
    target_h: int = TARGET_HEIGHT,
) -> PixelBuffer:
    """Resample ``buffer`` to ``target_w`` x ``target_h`` with bilinear filtering.

    Sampling happens in normalised coordinates (pixel centres aligned), so
    both downscaling and upscaling are deterministic for a fixed input.
    """
    if target_w <= 0 or target_h <= 0:
        raise GeometryError(f"Resize target must be positive, got {target_w}x{target_h}")

    if (buffer.width, buffer.height) == (target_w, target_h):
        return buffer.copy()

    resized = cv2.resize(
        buffer.pixels,
        (int(target_w), int(target_h)),
        interpolation=cv2.INTER_LINEAR,
    )
    resized = np.asarray(resized, dtype=np.float32)

    logger.debug("Resized %dx%d -> %dx%d", buffer.width, buffer.height, target_w, target_h)
    return PixelBuffer(resized)
