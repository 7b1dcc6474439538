"""
Color extraction from artwork

Averages a sparse grid of pixels instead of the whole image: every pixel
whose x and y are multiples of the stride is sampled, so the cost is
O(width * height / stride^2) and the result is deterministic.
"""

import logging
from typing import List, Optional

from PIL import Image

from models.artwork import PaletteColor, RGBColor

logger = logging.getLogger(__name__)

DEFAULT_STRIDE = 10

# Opacities of the palette variations after the dominant color
_PALETTE_ALPHAS = (1.0, 0.7, 0.4)


def extract_dominant_color(image: Image.Image, stride: int = DEFAULT_STRIDE) -> Optional[RGBColor]:
    """
    Average color of the sampled grid.

    Transparent pixels are premultiplied by their alpha, so a fully
    transparent pixel counts as black. Channel averages are floored.

    Args:
        image: Decoded image (any mode)
        stride: Grid spacing in pixels

    Returns:
        RGBColor, or None for an empty image
    """
    if stride <= 0:
        raise ValueError(f"stride must be positive, got {stride}")

    width, height = image.size
    if width == 0 or height == 0:
        logger.debug("Skipping color extraction for empty image")
        return None

    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    pixels = rgba.load()

    red_sum = green_sum = blue_sum = count = 0
    for y in range(0, height, stride):
        for x in range(0, width, stride):
            red, green, blue, alpha = pixels[x, y]
            if alpha < 255:
                red = red * alpha // 255
                green = green * alpha // 255
                blue = blue * alpha // 255
            red_sum += red
            green_sum += green
            blue_sum += blue
            count += 1

    return RGBColor(red_sum // count, green_sum // count, blue_sum // count)


def extract_palette(image: Image.Image, count: int, stride: int = DEFAULT_STRIDE) -> List[PaletteColor]:
    """
    Dominant color followed by translucent variations of it.

    At most three entries: opacity 1.0, 0.7 and 0.4.
    """
    if count <= 0:
        return []
    dominant = extract_dominant_color(image, stride)
    if dominant is None:
        return []
    return [PaletteColor(dominant, alpha) for alpha in _PALETTE_ALPHAS[:count]]
