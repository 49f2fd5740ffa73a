"""Command line front end for the flag maker.

Usage:
    python -m flagmaker.cli generate    <source...> [--palette palette.png] [-o DIR]
                                        [--brightness 0] [--contrast 1.8] [--sharpen 0] [--noise 3]
    python -m flagmaker.cli list        [-o DIR]
    python -m flagmaker.cli set         <name|path> [-o DIR] [--active-flag PATH]
    python -m flagmaker.cli preview     <flag.txt> --out preview.png [--palette palette.png]
    python -m flagmaker.cli init-config <config.json>

Subcommands:
  generate      Convert source images into encoded flags, save one .txt per
                source and set the last one as the active flag
  list          Show saved flags
  set           Make a saved flag the active one
  preview       Render a flag file back to an image using the palette
  init-config   Write a JSON config with the default settings

Settings come from defaults, then ``--config`` (JSON), then command line
options.
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image

from flagmaker.config import FlagMakerConfig
from flagmaker.errors import (
    FlagFormatError,
    FlagMakerError,
    GeometryError,
    InputUnavailableError,
    PersistenceError,
)
from flagmaker.loader import gather_images, load_image, load_pair
from flagmaker.pipeline import PaletteIndex, process_buffers
from flagmaker.preview import render_flag
from flagmaker.storage import ActiveFlagSink, FlagStore, set_flag

logger = logging.getLogger("flagmaker")


def _setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _resolve_config(args) -> FlagMakerConfig:
    """Defaults <- config file <- command line overrides."""
    if args.config and Path(args.config).is_file():
        config = FlagMakerConfig.load(args.config)
    else:
        config = FlagMakerConfig()

    overrides = {
        "palette_path": getattr(args, "palette", None),
        "saved_flags_dir": getattr(args, "output", None),
        "active_flag_path": getattr(args, "active_flag", None),
        "target_width": getattr(args, "width", None),
        "target_height": getattr(args, "height", None),
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, Path(value) if key.endswith(("_path", "_dir")) else value)

    for key in ("brightness", "contrast", "sharpen", "noise"):
        value = getattr(args, key, None)
        if value is not None:
            setattr(config.params, key, value)
    config.params = config.params.normalized()
    return config


def _check_geometry(config: FlagMakerConfig) -> None:
    if config.target_width <= 0 or config.target_height <= 0:
        raise GeometryError(
            f"Flag size must be positive, got {config.target_width}x{config.target_height}"
        )


# ---- Subcommand: generate ----

def cmd_generate(args):
    config = _resolve_config(args)
    try:
        _check_geometry(config)
    except GeometryError as e:
        logger.error("Error: %s", e)
        return 1

    inputs = args.inputs or ([str(config.source_path)] if config.source_path else [])
    sources = gather_images(inputs, recursive=args.recursive)
    if not sources:
        logger.error("No source images found in %s", inputs)
        return 1

    # a single source is decoded alongside the palette
    preloaded = {}
    try:
        if len(sources) == 1:
            source, palette = load_pair(sources[0], config.palette_path)
            preloaded[sources[0]] = source
        else:
            palette = load_image(config.palette_path, "Palette")
    except InputUnavailableError as e:
        logger.error("Error: %s", e)
        return 1

    index = PaletteIndex.from_buffer(palette)
    logger.info(
        "Palette %s: %d chromatic, %d achromatic colours",
        config.palette_path.name, len(index.chromatic), len(index.achromatic),
    )

    def _generate_one(path: Path) -> Optional[Tuple[Path, str]]:
        try:
            source = preloaded.get(path)
            if source is None:
                source = load_image(path, "Source")
            flag = process_buffers(
                source, index, config.params,
                config.target_width, config.target_height,
            )
        except FlagMakerError as e:
            logger.error("Error: %s", e)
            return None
        return path, flag

    workers = max(1, args.workers)
    if workers > 1 and len(sources) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(_generate_one, sources))
    else:
        results = [_generate_one(p) for p in sources]

    try:
        store = FlagStore(config.saved_flags_dir)
    except PersistenceError as e:
        logger.error("Error saving flag file. %s", e)
        return 1

    last: Optional[Tuple[Path, str]] = None
    saved = 0
    for item in results:
        if item is None:
            continue
        path, flag = item
        try:
            store.save(path, flag)
        except PersistenceError:
            logger.error("Error saving flag file for %s", path.name)
            continue
        last = item
        saved += 1

    if last is None:
        logger.error("No flags were generated")
        return 1

    if not args.no_set:
        try:
            set_flag(ActiveFlagSink(config.active_flag_path), last[1])
        except FlagMakerError as e:
            logger.error("Error: Failed to set flag from content. %s", e)
            return 1
        logger.info("Success! Flag has been set from %s", last[0].name)

    if args.save_config and args.config:
        config.source_path = last[0]
        config.save(args.config)

    logger.info("Generated %d/%d flags → %s", saved, len(sources), store.directory)
    return 0


# ---- Subcommand: list ----

def cmd_list(args):
    config = _resolve_config(args)
    try:
        store = FlagStore(config.saved_flags_dir)
    except PersistenceError as e:
        logger.error("Error loading saved flags. %s", e)
        return 1
    flags = store.list_flags()
    if not flags:
        print("No saved flags found.")
        return 0
    for path in flags:
        print(path.stem)
    return 0


# ---- Subcommand: set ----

def cmd_set(args):
    config = _resolve_config(args)
    try:
        store = FlagStore(config.saved_flags_dir)
        flag = store.load(args.flag)
        set_flag(ActiveFlagSink(config.active_flag_path), flag)
    except (PersistenceError, FlagFormatError) as e:
        logger.error("Error loading saved flag. %s", e)
        return 1

    logger.info("Loaded and set flag: %s", Path(args.flag).stem)
    return 0


# ---- Subcommand: preview ----

def cmd_preview(args):
    config = _resolve_config(args)
    try:
        flag = FlagStore(config.saved_flags_dir).load(args.flag)
        palette = load_image(config.palette_path, "Palette")
        image = render_flag(
            flag, palette,
            config.target_width, config.target_height,
            scale=args.scale,
        )
    except FlagMakerError as e:
        logger.error("Error: %s", e)
        return 1

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(image).save(out)
    logger.info("Preview written to %s", out)
    return 0


# ---- Subcommand: init-config ----

def cmd_init_config(args):
    path = FlagMakerConfig().save(args.path)
    logger.info("Default config written to %s", path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flagmaker",
        description="Convert images into palette-atlas UV flags.",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--config", default=None, help="JSON settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    # -- generate --
    p_gen = sub.add_parser("generate", help="Generate flags from source images")
    p_gen.add_argument("inputs", nargs="*",
                       help="Image files or directories (default: configured source)")
    p_gen.add_argument("--palette", default=None, help="Palette atlas image")
    p_gen.add_argument("-o", "--output", default=None, help="Saved flags directory")
    p_gen.add_argument("--active-flag", default=None,
                       help="File that receives the active flag")
    p_gen.add_argument("--brightness", type=float, default=None,
                       help="Brightness offset, -1..1 (default: 0)")
    p_gen.add_argument("--contrast", type=float, default=None,
                       help="Contrast factor, 1..10 (default: 1.8)")
    p_gen.add_argument("--sharpen", type=float, default=None,
                       help="Sharpen strength, 0..2 (default: 0)")
    p_gen.add_argument("--noise", type=int, default=None,
                       help="Median noise reduction window, odd 1..9 (default: 3)")
    p_gen.add_argument("--width", type=int, default=None, help="Flag width (default: 100)")
    p_gen.add_argument("--height", type=int, default=None, help="Flag height (default: 66)")
    p_gen.add_argument("--workers", type=int, default=1,
                       help="Process this many sources in parallel")
    p_gen.add_argument("--no-set", action="store_true",
                       help="Save flags without updating the active flag")
    p_gen.add_argument("--save-config", action="store_true",
                       help="Remember the last source in --config")
    p_gen.add_argument("--recursive", "-r", action="store_true")
    p_gen.set_defaults(func=cmd_generate)

    # -- list --
    p_list = sub.add_parser("list", help="List saved flags")
    p_list.add_argument("-o", "--output", default=None, help="Saved flags directory")
    p_list.set_defaults(func=cmd_list)

    # -- set --
    p_set = sub.add_parser("set", help="Set a saved flag as the active flag")
    p_set.add_argument("flag", help="Saved flag name or path to a flag file")
    p_set.add_argument("-o", "--output", default=None, help="Saved flags directory")
    p_set.add_argument("--active-flag", default=None,
                       help="File that receives the active flag")
    p_set.set_defaults(func=cmd_set)

    # -- preview --
    p_preview = sub.add_parser("preview", help="Render a flag file to an image")
    p_preview.add_argument("flag", help="Saved flag name or path to a flag file")
    p_preview.add_argument("--out", required=True, help="Output image path")
    p_preview.add_argument("--palette", default=None, help="Palette atlas image")
    p_preview.add_argument("-o", "--output", default=None, help="Saved flags directory")
    p_preview.add_argument("--width", type=int, default=None)
    p_preview.add_argument("--height", type=int, default=None)
    p_preview.add_argument("--scale", type=int, default=4,
                           help="Magnification of the preview (default: 4)")
    p_preview.set_defaults(func=cmd_preview)

    # -- init-config --
    p_init = sub.add_parser("init-config", help="Write a default JSON config")
    p_init.add_argument("path", help="Destination JSON file")
    p_init.set_defaults(func=cmd_init_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.debug)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
