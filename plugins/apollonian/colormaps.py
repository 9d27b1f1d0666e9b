"""
Circle Palettes

By default every circle gets a uniformly random RGB color. A named palette
instead maps one random draw per circle through a (256, 3) uint8 lookup
table, giving a coherent color scheme while staying deterministic per seed.
"""

import numpy as np

RANDOM_PALETTE = "random"


def _interpolate_colors(stops, n=256):
    """
    Build a LUT by smoothstep interpolation between color stops.

    Args:
        stops: List of (position, (r, g, b)) with positions ascending in [0, 1]
        n: Number of entries in the LUT
    """
    positions = np.array([s[0] for s in stops], dtype=np.float64)
    colors = np.array([s[1] for s in stops], dtype=np.float64)

    t = np.linspace(0.0, 1.0, n)
    seg = np.clip(np.searchsorted(positions, t, side="right") - 1, 0, len(stops) - 2)
    span = positions[seg + 1] - positions[seg]
    frac = np.where(span > 0, (t - positions[seg]) / np.where(span > 0, span, 1.0), 0.0)
    frac = frac * frac * (3 - 2 * frac)  # smoothstep

    lut = colors[seg] + frac[:, None] * (colors[seg + 1] - colors[seg])
    return np.clip(lut, 0, 255).astype(np.uint8)


def neon_bio():
    """Dark purples into green halos and hot pink."""
    return _interpolate_colors([
        (0.00, (40, 15, 60)),
        (0.30, (20, 180, 80)),
        (0.45, (30, 220, 140)),
        (0.60, (140, 40, 180)),
        (0.80, (220, 25, 60)),
        (1.00, (255, 130, 160)),
    ])


def ocean():
    """Deep blue to cyan to white."""
    return _interpolate_colors([
        (0.00, (5, 20, 80)),
        (0.40, (10, 80, 160)),
        (0.70, (30, 170, 215)),
        (1.00, (215, 245, 255)),
    ])


def fire():
    """Dark red through orange to pale yellow."""
    return _interpolate_colors([
        (0.00, (60, 5, 0)),
        (0.35, (180, 30, 0)),
        (0.65, (240, 100, 10)),
        (0.85, (255, 200, 50)),
        (1.00, (255, 255, 200)),
    ])


def plasma():
    """Purple-pink-orange-yellow."""
    return _interpolate_colors([
        (0.00, (30, 0, 60)),
        (0.30, (95, 15, 150)),
        (0.55, (200, 50, 120)),
        (0.80, (248, 150, 40)),
        (1.00, (240, 249, 33)),
    ])


COLORMAPS = {
    "neon_bio": neon_bio,
    "ocean": ocean,
    "fire": fire,
    "plasma": plasma,
}

PALETTE_ORDER = [RANDOM_PALETTE] + list(COLORMAPS.keys())


def get_colormap(name):
    """(256, 3) uint8 LUT for a named palette, None for "random"."""
    if name == RANDOM_PALETTE:
        return None
    if name not in COLORMAPS:
        raise ValueError(f"Unknown palette: {name!r}. Choose from {PALETTE_ORDER}")
    return COLORMAPS[name]()


def circle_colors(rng, count, lut=None):
    """Draw `count` colors from `rng` in order.

    Random palette: three channel draws per circle. Named palette: one LUT
    index per circle.

    Returns:
        (count, 3) uint8 array
    """
    colors = np.empty((count, 3), dtype=np.uint8)
    for i in range(count):
        if lut is None:
            colors[i] = rng.random_color()
        else:
            colors[i] = lut[rng.random_integer(0, 255)]
    return colors
