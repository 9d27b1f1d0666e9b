"""
Run Configuration

AnimationConfig collects everything one animation run needs: frame size,
time range, seed, gasket depth, worker count and output location. Values
are validated with pydantic; an empty or reversed time range is widened to
one second and a non-positive fps falls back to 25, matching how the
render form normalises its inputs.
"""

import os

from pydantic import BaseModel, Field, field_validator, model_validator

from .colormaps import PALETTE_ORDER
from .presets import preset_overrides

DEFAULT_FPS = 25.0


class AnimationConfig(BaseModel):
    """Validated parameters of one animation run."""

    # Frame
    width: int = Field(default=1920, ge=1, le=16384, description="Frame width in pixels")
    height: int = Field(default=1080, ge=1, le=16384, description="Frame height in pixels")
    background: tuple[int, int, int] = (0, 0, 0)
    antialias: bool = True

    # Time
    start: float = Field(default=0.0, description="Time of the first frame (s)")
    end: float = Field(default=10.0, description="Time of the last frame (s)")
    fps: float = Field(default=DEFAULT_FPS, le=240.0)

    # Gasket
    seed: int = 2763
    depth: int = Field(default=4, ge=0, le=8, description="Recursion depth")
    curvature_min: int = Field(default=3, ge=1)
    curvature_max: int = Field(default=20, ge=1)
    max_retries: int = Field(default=32, ge=0, description="Reseeds allowed for degenerate gaskets")
    reveal_offset: int = Field(default=3, ge=1)
    palette: str = "random"

    # Batch rendering
    workers: int | None = Field(default=None, ge=1, description="Render threads (None = CPU count)")
    output_dir: str = "."
    filename_pattern: str = "out{:04d}.png"
    preview_interval: float = Field(default=10.0, ge=0.0, description="Seconds between preview updates")

    @field_validator("fps")
    @classmethod
    def _default_fps(cls, v):
        return v if v > 0 else DEFAULT_FPS

    @field_validator("palette")
    @classmethod
    def _known_palette(cls, v):
        if v not in PALETTE_ORDER:
            raise ValueError(f"unknown palette {v!r}, choose from {PALETTE_ORDER}")
        return v

    @field_validator("filename_pattern")
    @classmethod
    def _numbered_pattern(cls, v):
        try:
            a, b = v.format(0), v.format(1)
        except (IndexError, KeyError, ValueError) as e:
            raise ValueError(f"filename_pattern must take one frame number: {e}") from e
        if a == b:
            raise ValueError("filename_pattern must include the frame number")
        return v

    @model_validator(mode="after")
    def _normalise_ranges(self):
        if self.end <= self.start:
            self.end = self.start + 1.0
        if self.curvature_max < self.curvature_min:
            raise ValueError(
                f"curvature_max ({self.curvature_max}) < curvature_min ({self.curvature_min})")
        return self

    @classmethod
    def from_preset(cls, name, **overrides):
        """Config from a named preset, with explicit overrides on top."""
        params = preset_overrides(name)
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)

    def resolved_workers(self):
        """Worker thread count: explicit value or one per CPU core."""
        return self.workers or os.cpu_count() or 1
