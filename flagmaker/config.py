"""Flag maker configuration: constants, processing parameters, settings file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fixed layout of the target surface
# ---------------------------------------------------------------------------
TARGET_WIDTH = 100
TARGET_HEIGHT = 66

# Palette colours and processed pixels below this HSV saturation are routed
# to the achromatic map.
SATURATION_THRESHOLD = 0.1

# Digits after the decimal point for each UV component in an encoded flag
UV_DECIMALS = 6

SAVED_FLAGS_DIRNAME = "FlagMaker_SavedFlags"
FLAG_SUFFIX = ".txt"
DEFAULT_PALETTE_NAME = "palette.png"
ACTIVE_FLAG_NAME = "flagGrid.txt"

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp"}


# ---------------------------------------------------------------------------
# Neutral values: a filter whose parameter equals these is skipped
# ---------------------------------------------------------------------------
NEUTRAL_BRIGHTNESS = 0.0
NEUTRAL_CONTRAST = 1.0
NEUTRAL_SHARPEN = 0.0
NEUTRAL_MEDIAN = 1


@dataclass
class ProcessingParameters:
    """User adjustments applied to the resized source before matching."""
    brightness: float = 0.0     # [-1, 1]
    contrast: float = 1.8       # [1, 10]
    sharpen: float = 0.0        # [0, 2]
    noise: int = 3              # median window, odd [1, 9]

    @property
    def uses_brightness(self) -> bool:
        return self.brightness != NEUTRAL_BRIGHTNESS

    @property
    def uses_contrast(self) -> bool:
        return self.contrast != NEUTRAL_CONTRAST

    @property
    def uses_sharpen(self) -> bool:
        return self.sharpen > NEUTRAL_SHARPEN

    @property
    def uses_median(self) -> bool:
        return self.noise > NEUTRAL_MEDIAN

    def normalized(self) -> "ProcessingParameters":
        """Return a copy with the median window forced odd and at least 1."""
        noise = max(1, int(self.noise))
        if noise % 2 == 0:
            noise += 1
        return ProcessingParameters(
            brightness=float(self.brightness),
            contrast=float(self.contrast),
            sharpen=float(self.sharpen),
            noise=noise,
        )

    def to_dict(self) -> dict:
        return {
            "brightness": float(self.brightness),
            "contrast": float(self.contrast),
            "sharpen": float(self.sharpen),
            "noise": int(self.noise),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ProcessingParameters":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class FlagMakerConfig:
    """Settings for the command line front end, persisted as JSON."""
    palette_path: Path = Path(DEFAULT_PALETTE_NAME)
    saved_flags_dir: Path = Path(SAVED_FLAGS_DIRNAME)
    source_path: Optional[Path] = None          # last used source image
    active_flag_path: Path = Path(ACTIVE_FLAG_NAME)   # where the active flag is handed off
    target_width: int = TARGET_WIDTH
    target_height: int = TARGET_HEIGHT
    params: ProcessingParameters = field(default_factory=ProcessingParameters)

    def to_dict(self) -> dict:
        d = {}
        for k, v in self.__dict__.items():
            if isinstance(v, ProcessingParameters):
                d[k] = v.to_dict()
            elif isinstance(v, Path):
                d[k] = str(v)
            else:
                d[k] = v
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FlagMakerConfig":
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        for key in ("palette_path", "saved_flags_dir", "source_path", "active_flag_path"):
            if d.get(key) is not None:
                d[key] = Path(d[key])
        if isinstance(d.get("params"), dict):
            d["params"] = ProcessingParameters.from_dict(d["params"])
        return cls(**d)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "FlagMakerConfig":
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded config from %s", path)
        return cls.from_dict(data)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        logger.debug("Saved config to %s", path)
        return path
