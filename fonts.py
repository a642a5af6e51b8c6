"""
Font catalog for the overlay renderer.

The catalog is built once at process start and its assets never change
afterwards, so every request thread can share it. The only mutable state is
the set of unknown families already reported, guarded by a lock. Sized
Pillow fonts are memoised per (file, size); they are immutable once loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
import threading
from pathlib import Path
from typing import Iterable

from PIL import ImageFont

from logging_setup import get_logger

logger = get_logger(__name__)


class Script(str, Enum):
    LATIN = "latin"
    ARABIC = "arabic"


class Weight(str, Enum):
    BOLD = "bold"
    REGULAR = "regular"


@dataclass(frozen=True)
class FontAsset:
    family: str
    script: Script
    weight: Weight
    path: Path


# family, script, weight, file name inside the fonts directory
FONT_FILES: tuple[tuple[str, Script, Weight, str], ...] = (
    ("Inter-SemiBold", Script.LATIN, Weight.BOLD, "Inter_18pt-SemiBold.ttf"),
    ("Inter-Light", Script.LATIN, Weight.REGULAR, "Inter_18pt-Light.ttf"),
    ("Amiri-Bold", Script.ARABIC, Weight.BOLD, "Amiri-Bold.ttf"),
    ("Amiri-Regular", Script.ARABIC, Weight.REGULAR, "Amiri-Regular.ttf"),
)


@lru_cache(maxsize=256)
def _truetype(path: str, size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(path, size)


@lru_cache(maxsize=64)
def _default_font(size: int) -> ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size)


class FontCatalog:
    def __init__(self, assets: Iterable[FontAsset]) -> None:
        self._assets: dict[str, FontAsset] = {}
        for asset in assets:
            if asset.family in self._assets:
                raise ValueError(f"Duplicate font family: {asset.family}")
            self._assets[asset.family] = asset
        self._reported: set[str] = set()
        self._reported_lock = threading.Lock()

    @classmethod
    def load(cls, fonts_dir: Path, table: Iterable[tuple[str, Script, Weight, str]] = FONT_FILES) -> "FontCatalog":
        """Register every font file of *table* found in *fonts_dir*.

        Missing or unreadable files are skipped with a warning; rendering with
        their family later falls back to Pillow's built-in font.
        """
        table = tuple(table)
        assets: list[FontAsset] = []
        for family, script, weight, filename in table:
            font_path = Path(fonts_dir) / filename
            if not font_path.exists():
                logger.warning("Font file missing for %s: %s", family, font_path)
                continue
            try:
                _truetype(str(font_path), 12)
            except OSError as exc:
                logger.warning("Failed to register %s from %s: %s", family, font_path.name, exc)
                continue
            assets.append(FontAsset(family, script, weight, font_path))
            logger.info("Registered font: %s (%s, %s)", family, script.value, weight.value)

        logger.info("Registered %d of %d font(s) from %s", len(assets), len(table), fonts_dir)
        return cls(assets)

    @property
    def families(self) -> list[str]:
        return sorted(self._assets)

    def asset(self, family: str) -> FontAsset | None:
        return self._assets.get(family)

    def font(self, family: str, size: int) -> ImageFont.FreeTypeFont:
        size = max(1, int(size))
        asset = self._assets.get(family)
        if asset is None:
            self._report_missing(family)
            return _default_font(size)
        return _truetype(str(asset.path), size)

    def _report_missing(self, family: str) -> None:
        with self._reported_lock:
            if family in self._reported:
                return
            self._reported.add(family)
        logger.warning("Font '%s' is unavailable. Falling back to the default font.", family)
