"""Render an encoded flag back into pixels for visual inspection.

Each UV token is looked up in the palette atlas with nearest-pixel
sampling, then written to its (x, y) slot following the column-major token
order.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from flagmaker.buffer import PixelBuffer
from flagmaker.config import TARGET_HEIGHT, TARGET_WIDTH
from flagmaker.encoder import decode
from flagmaker.errors import FlagFormatError, GeometryError

logger = logging.getLogger(__name__)


def render_flag(
    flag: str,
    palette: PixelBuffer,
    width: int = TARGET_WIDTH,
    height: int = TARGET_HEIGHT,
    scale: int = 1,
) -> np.ndarray:
    """Rebuild a top-down RGBA uint8 image from ``flag``.

    Args:
        flag: Encoded flag string.
        palette: The atlas the flag was generated against.
        width, height: Flag dimensions the tokens were produced for.
        scale: Nearest-neighbour magnification of the result.

    Returns:
        (height * scale, width * scale, 4) uint8 array, row 0 at the top.
    """
    if width <= 0 or height <= 0 or scale <= 0:
        raise GeometryError(f"Invalid preview geometry {width}x{height} @ {scale}x")

    uvs = np.asarray(decode(flag), dtype=np.float64)
    if len(uvs) != width * height:
        raise FlagFormatError(
            f"Flag has {len(uvs)} tokens, expected {width * height} for {width}x{height}"
        )

    atlas = palette.opaque().to_uint8()
    ph, pw = atlas.shape[:2]
    px = np.clip(np.rint(uvs[:, 0] * (pw - 1)), 0, pw - 1).astype(np.intp)
    py = np.clip(np.rint(uvs[:, 1] * (ph - 1)), 0, ph - 1).astype(np.intp)

    # tokens run x outer, y inner; rows are bottom-up until the final flip
    columns = atlas[py, px].reshape(width, height, 4)
    image = np.flipud(np.transpose(columns, (1, 0, 2)))
    image = np.ascontiguousarray(image)

    if scale > 1:
        image = cv2.resize(image, (width * scale, height * scale),
                           interpolation=cv2.INTER_NEAREST)

    logger.debug("Rendered %dx%d flag preview (scale %d)", width, height, scale)
    return image
