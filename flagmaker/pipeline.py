"""Source image + palette atlas -> encoded flag.

The orchestration is a straight sequence of pure stages::

    resize -> filters -> (palette index) -> nearest colour match -> encode

Nothing here touches the filesystem; callers hand in decoded buffers and
receive the flag string.  Each call allocates its own working buffer, so
calls may run on separate threads.  A :class:`PaletteIndex` is read-only
once built and may be shared between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flagmaker.buffer import PixelBuffer
from flagmaker.config import TARGET_HEIGHT, TARGET_WIDTH, ProcessingParameters
from flagmaker.encoder import encode
from flagmaker.errors import InputUnavailableError
from flagmaker.filters import apply_filters
from flagmaker.matcher import match_buffer
from flagmaker.palette import ReferenceMap, build_reference_maps
from flagmaker.resize import resize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaletteIndex:
    """Chromatic and achromatic reference maps of one palette atlas."""
    chromatic: ReferenceMap
    achromatic: ReferenceMap
    width: int = 0
    height: int = 0

    @classmethod
    def from_buffer(cls, palette: PixelBuffer) -> "PaletteIndex":
        chromatic, achromatic = build_reference_maps(palette)
        return cls(chromatic, achromatic, palette.width, palette.height)

    def __len__(self) -> int:
        return len(self.chromatic) + len(self.achromatic)


def prepare_source(
    source: PixelBuffer,
    params: ProcessingParameters,
    target_w: int = TARGET_WIDTH,
    target_h: int = TARGET_HEIGHT,
) -> PixelBuffer:
    """Resize and filter a copy of ``source``; the input is left untouched."""
    working = resize(source, target_w, target_h)
    return apply_filters(working, params)


def process_buffers(
    source: PixelBuffer,
    index: PaletteIndex,
    params: Optional[ProcessingParameters] = None,
    target_w: int = TARGET_WIDTH,
    target_h: int = TARGET_HEIGHT,
) -> str:
    """Encode ``source`` against an already built palette index."""
    params = params if params is not None else ProcessingParameters()
    processed = prepare_source(source, params, target_w, target_h)
    uvs = match_buffer(processed, index.chromatic, index.achromatic)
    return encode(uvs)


def process(
    source: Optional[PixelBuffer],
    palette: Optional[PixelBuffer],
    params: Optional[ProcessingParameters] = None,
    target_w: int = TARGET_WIDTH,
    target_h: int = TARGET_HEIGHT,
) -> str:
    """Full pipeline: (source, palette, params) -> encoded flag."""
    if source is None:
        raise InputUnavailableError("Source")
    if palette is None:
        raise InputUnavailableError("Palette")

    logger.info(
        "Processing %dx%d source against %dx%d palette -> %dx%d",
        source.width, source.height, palette.width, palette.height, target_w, target_h,
    )
    index = PaletteIndex.from_buffer(palette)
    return process_buffers(source, index, params, target_w, target_h)
