"""
Apollonian Animation Presets

Each preset is a named set of AnimationConfig overrides known to give a
good looking result. "still" and "animation" reproduce the two classic
setups (800x600 still with seed 12, 1920x1080 ten-second reveal with
seed 2763).
"""

PRESETS = {
    "animation": {
        "name": "Full HD Reveal",
        "description": "10 s at 25 fps, circles appear one by one",
        "width": 1920, "height": 1080,
        "start": 0.0, "end": 10.0, "fps": 25.0,
        "seed": 2763, "depth": 4,
    },
    "still": {
        "name": "Still Gasket",
        "description": "Single 800x600 image, every circle drawn",
        "width": 800, "height": 600,
        "start": 0.0, "end": 1.0, "fps": 1.0,
        "seed": 12, "depth": 4,
    },
    "preview": {
        "name": "Quick Preview",
        "description": "Small, short and shallow; for checking a seed",
        "width": 640, "height": 480,
        "start": 0.0, "end": 4.0, "fps": 12.0,
        "seed": 2763, "depth": 3,
        "preview_interval": 0.5,
    },
    "poster": {
        "name": "Deep Poster",
        "description": "Square, depth 6, ocean palette",
        "width": 2048, "height": 2048,
        "start": 0.0, "end": 20.0, "fps": 30.0,
        "seed": 7, "depth": 6,
        "palette": "ocean",
    },
}

PRESET_ORDER = ["animation", "still", "preview", "poster"]

# Keys that describe a preset rather than configure a run
_META_KEYS = ("name", "description")


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def preset_overrides(name):
    """AnimationConfig keyword arguments for a preset.

    Raises:
        ValueError: unknown preset name
    """
    preset = get_preset(name)
    if preset is None:
        raise ValueError(f"Unknown preset: {name!r}. Available: {PRESET_ORDER}")
    return {k: v for k, v in preset.items() if k not in _META_KEYS}


def list_presets():
    """Return list of (key, name, description) for all presets."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]
