"""Owned RGBA pixel storage shared by every processing stage.

A :class:`PixelBuffer` wraps a dense ``(H, W, 4)`` float32 array.  Row 0 is
the bottom row of the picture (texture convention), so ``pixels[y, x]`` is
the sample a texture sampler would return for ``GetPixel(x, y)``.  Values
are normally in [0, 1] but filter intermediates may leave that range; they
are clamped only when quantised to 8 bits.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from PIL import Image

from flagmaker.errors import GeometryError


class PixelBuffer:
    """Width x height array of normalised RGBA samples."""

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise GeometryError(f"Expected an (H, W, 4) array, got shape {pixels.shape}")
        h, w = pixels.shape[:2]
        if h <= 0 or w <= 0:
            raise GeometryError(f"Zero-area buffer: {w}x{h}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.float32)

    # ---- construction ----

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an array whose row order is kept as given.

        Accepts uint8 (0-255) or float (0-1) data with 3 or 4 channels, or a
        2D grayscale array.  Missing alpha is filled with 1.0.
        """
        arr = np.asarray(arr)
        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, None], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise GeometryError(f"Unsupported array shape {arr.shape}")

        if np.issubdtype(arr.dtype, np.integer):
            data = arr.astype(np.float32) / 255.0
        else:
            data = arr.astype(np.float32)

        if data.shape[2] == 3:
            alpha = np.ones(data.shape[:2] + (1,), dtype=np.float32)
            data = np.concatenate([data, alpha], axis=2)
        return cls(data)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Decode a PIL image to RGBA and flip it into texture row order."""
        rgba = np.array(image.convert("RGBA"))
        return cls.from_array(np.flipud(rgba))

    # ---- accessors ----

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def __len__(self) -> int:
        return self.width * self.height

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def replace(self, pixels: np.ndarray) -> None:
        """Swap in a new sample array of identical dimensions."""
        if pixels.shape != self.pixels.shape:
            raise GeometryError(
                f"Replacement shape {pixels.shape} does not match {self.pixels.shape}"
            )
        self.pixels = np.ascontiguousarray(pixels, dtype=np.float32)

    # ---- conversion ----

    def to_uint8(self) -> np.ndarray:
        """Clamp to [0, 1] and quantise every channel to 0-255."""
        return quantize(self.pixels)

    def opaque(self) -> "PixelBuffer":
        """Copy with alpha forced to 1.0; RGB untouched."""
        data = self.pixels.copy()
        data[:, :, 3] = 1.0
        return PixelBuffer(data)

    def to_image(self) -> Image.Image:
        """Back to a top-down PIL RGBA image."""
        return Image.fromarray(np.ascontiguousarray(np.flipud(self.to_uint8())))


def quantize(values: np.ndarray) -> np.ndarray:
    """Float channel values -> uint8 via ``rint(clamp(v, 0, 1) * 255)``."""
    return np.rint(np.clip(values, 0.0, 1.0) * 255.0).astype(np.uint8)
