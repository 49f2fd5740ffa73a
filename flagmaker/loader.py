"""Image loading boundary: files on disk -> decoded PixelBuffers."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from PIL import Image, UnidentifiedImageError

from flagmaker.buffer import PixelBuffer
from flagmaker.config import IMAGE_EXTENSIONS
from flagmaker.errors import InputUnavailableError

logger = logging.getLogger(__name__)


def load_image(path: Union[str, Path], role: str = "Source") -> PixelBuffer:
    """Decode an image file to RGBA in texture row order.

    Relative paths are resolved against the current working directory.
    """
    path = Path(path)
    if not path.is_absolute():
        path = Path.cwd() / path
    if not path.is_file():
        raise InputUnavailableError(role, path, "file not found")

    try:
        with Image.open(path) as img:
            img.load()
            buffer = PixelBuffer.from_image(img)
    except (OSError, UnidentifiedImageError) as exc:
        raise InputUnavailableError(role, path, str(exc)) from exc

    logger.debug("Loaded %s image %s (%dx%d)", role.lower(), path.name, buffer.width, buffer.height)
    return buffer


def load_pair(
    source_path: Union[str, Path],
    palette_path: Union[str, Path],
) -> Tuple[PixelBuffer, PixelBuffer]:
    """Load source and palette concurrently; return once both are decoded.

    If both fail, the source failure is the one reported.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        source_future = pool.submit(load_image, source_path, "Source")
        palette_future = pool.submit(load_image, palette_path, "Palette")
        source = source_future.result()
        palette = palette_future.result()
    return source, palette


def gather_images(inputs: Iterable[Union[str, Path]], recursive: bool = False) -> List[Path]:
    """Collect image paths from file/directory arguments."""
    paths: List[Path] = []
    seen = set()
    for inp in inputs:
        p = Path(inp)
        if p.is_file():
            candidates = [p] if p.suffix.lower() in IMAGE_EXTENSIONS else []
            if not candidates:
                logger.warning("Skipping unsupported file: %s", p)
        elif p.is_dir():
            iterator = p.rglob("*") if recursive else p.iterdir()
            candidates = sorted(
                c for c in iterator
                if c.is_file() and c.suffix.lower() in IMAGE_EXTENSIONS
            )
        else:
            logger.warning("Input path not found: %s", p)
            candidates = []

        for c in candidates:
            resolved = c.resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(resolved)
    return paths
