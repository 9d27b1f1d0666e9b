"""
Raster Canvas

Minimal RGB drawing surface for the gasket renderer: clear, set a color,
fill (anti-aliased) discs, hand back the finished image. Pixels live in a
float32 (H, W, 3) buffer in [0, 255]; finish() returns an owned uint8 copy.
"""

import math

import numpy as np
from PIL import Image


class Canvas:
    """numpy-backed drawing surface, one per render thread."""

    def __init__(self, width, height, background=(0, 0, 0)):
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.antialias = True
        self._color = np.array([255, 255, 255], dtype=np.float32)
        self.pixels = np.empty((self.height, self.width, 3), dtype=np.float32)
        self.clear(background)

    def clear(self, color=(0, 0, 0)):
        self.pixels[:] = np.asarray(color, dtype=np.float32)

    def set_antialias(self, enabled):
        self.antialias = bool(enabled)

    def set_color(self, color):
        """Current fill color as an (r, g, b) triple in [0, 255]."""
        self._color = np.asarray(color, dtype=np.float32)

    def fill_disc(self, cx, cy, radius, color=None):
        """Fill a disc centered at pixel (cx, cy).

        With antialiasing the edge pixels get fractional coverage
        (radius - distance + 0.5, clipped to [0, 1]) measured from pixel
        centers. Discs that miss the canvas, or have non-finite geometry,
        draw nothing.
        """
        if not (math.isfinite(cx) and math.isfinite(cy) and math.isfinite(radius)):
            return
        radius = abs(radius)
        x0 = max(0, int(math.floor(cx - radius - 1)))
        x1 = min(self.width, int(math.ceil(cx + radius + 1)) + 1)
        y0 = max(0, int(math.floor(cy - radius - 1)))
        y1 = min(self.height, int(math.ceil(cy + radius + 1)) + 1)
        if x0 >= x1 or y0 >= y1:
            return

        fill = self._color if color is None else np.asarray(color, dtype=np.float32)

        Y, X = np.ogrid[y0:y1, x0:x1]
        dist = np.sqrt((X + 0.5 - cx) ** 2 + (Y + 0.5 - cy) ** 2)
        if self.antialias:
            coverage = np.clip(radius - dist + 0.5, 0.0, 1.0).astype(np.float32)
        else:
            coverage = (dist <= radius).astype(np.float32)

        region = self.pixels[y0:y1, x0:x1]
        region += (fill - region) * coverage[..., None]

    def finish(self):
        """Owned (H, W, 3) uint8 copy of the current pixels."""
        return np.clip(np.rint(self.pixels), 0, 255).astype(np.uint8)

    def to_image(self):
        """Finished pixels as a Pillow RGB image."""
        return Image.fromarray(self.finish())
