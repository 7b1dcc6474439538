"""
Artwork cache models
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from PIL import Image


@dataclass(frozen=True)
class RGBColor:
    """An 8-bit RGB color"""

    red: int
    green: int
    blue: int

    @property
    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"

    def as_unit(self) -> Tuple[float, float, float]:
        """Channels scaled to 0.0 - 1.0"""
        return (self.red / 255.0, self.green / 255.0, self.blue / 255.0)


@dataclass(frozen=True)
class PaletteColor:
    """A palette entry: a color plus opacity"""

    color: RGBColor
    alpha: float = 1.0


class CachedArtwork(NamedTuple):
    """Result of a cache hit"""
    image: Image.Image
    color: Optional[RGBColor]
