"""
Gasket Animation: run setup and frame rendering

init_animation() builds everything a run needs exactly once: the gasket
(reseeding past degenerate seeds), the reveal schedule and the
AnimationState that maps gasket coordinates onto the canvas. The result is
an immutable Animation that is handed to every render call; nothing here
keeps module-level state, so any number of threads can render frames of
the same Animation concurrently.

Usage:
    anim = init_animation(1920, 1080, 0.0, 10.0, 25.0, seed=2763)
    rgb = render_frame(anim, 4.2)   # (1080, 1920, 3) uint8
"""

from dataclasses import dataclass

import numpy as np

from .canvas import Canvas
from .colormaps import RANDOM_PALETTE, circle_colors, get_colormap
from .gasket import ApollonianGasket, DegenerateGasketError
from .rng import DeterministicRandom
from .schedule import REVEAL_OFFSET, frame_from_time, schedule_reveal, total_frames_for

DEFAULT_DEPTH = 4
CURVATURE_RANGE = (3, 20)
MAX_RETRIES = 32


@dataclass(frozen=True)
class AnimationState:
    """Per-run constants; computed by init_animation, read-only afterwards."""

    width: int
    height: int
    start: float
    end: float
    fps: float
    seed: int            # seed the accepted gasket was built with
    requested_seed: int
    depth: int
    offset: complex      # center of the reference circle
    scale: float         # 1 / |reference radius|
    size: int            # half of the shorter canvas side
    padding_x: int
    padding_y: int
    total_frames: int
    palette: str = RANDOM_PALETTE
    antialias: bool = True
    background: tuple = (0, 0, 0)

    def to_pixels(self, circle):
        """Canvas (x, y, radius) of a gasket circle."""
        z = (circle.center - self.offset) * self.scale * self.size
        return (z.real + self.size + self.padding_x,
                z.imag + self.size + self.padding_y,
                abs(circle.radius * self.scale * self.size))

    def frame_index(self, time):
        return frame_from_time(time, self.start, self.end, self.fps)


class Animation:
    """Gasket + reveal schedule + state of one run. Treat as immutable."""

    def __init__(self, gasket, schedule, state):
        self.gasket = gasket
        self.schedule = schedule
        self.state = state
        self.lut = get_colormap(state.palette)

        geom = np.array([state.to_pixels(c) for c in gasket.generated], dtype=np.float64)
        self._pixel_geometry = geom.reshape(-1, 3)

    @property
    def circles(self):
        return self.gasket.generated

    def __len__(self):
        return len(self.gasket.generated)


def build_gasket(seed, depth=DEFAULT_DEPTH, curvature_range=CURVATURE_RANGE,
                 max_retries=MAX_RETRIES, verbose=True):
    """Generate a finite gasket, moving to seed + 1 while the result is degenerate.

    Returns:
        (gasket, accepted_seed, rng) where rng has just drawn the curvatures

    Raises:
        DegenerateGasketError: every seed in [seed, seed + max_retries] failed
    """
    lo, hi = curvature_range
    rnd = DeterministicRandom(seed)
    for attempt in range(max_retries + 1):
        current = seed + attempt
        rnd.reset(current)
        gasket = ApollonianGasket(rnd.random_integer(lo, hi),
                                  rnd.random_integer(lo, hi),
                                  rnd.random_integer(lo, hi))
        gasket.generate(depth)
        if not gasket.is_degenerate():
            return gasket, current, rnd
        if verbose:
            print(f"[AG] Seed {current} gives a degenerate gasket "
                  f"(curvatures {gasket.curvature_seed}), trying {current + 1}")
    raise DegenerateGasketError(
        f"No finite gasket for seeds {seed}..{seed + max_retries}")


def init_animation(width, height, start, end, fps, seed, depth=DEFAULT_DEPTH,
                   curvature_range=CURVATURE_RANGE, max_retries=MAX_RETRIES,
                   reveal_offset=REVEAL_OFFSET, palette=RANDOM_PALETTE,
                   antialias=True, background=(0, 0, 0), verbose=True):
    """(Re)build the gasket, reveal schedule and AnimationState for a run.

    Args:
        width, height: Canvas size in pixels
        start, end: Time of the first and last frame (s)
        fps: Frames per second
        seed: Requested seed; degenerate seeds are skipped upward
        depth: Gasket recursion depth
        curvature_range: Inclusive range for the three starting curvatures

    Returns:
        Animation
    """
    gasket, accepted, rnd = build_gasket(seed, depth, curvature_range, max_retries, verbose)

    ref = gasket.reference
    size = min(width, height) // 2
    padding_x = (width - height) // 2 if width > height else 0
    padding_y = (height - width) // 2 if height > width else 0
    total = total_frames_for(start, end, fps)

    schedule = schedule_reveal(gasket.generated, total, rnd, offset=reveal_offset)

    state = AnimationState(
        width=int(width), height=int(height),
        start=float(start), end=float(end), fps=float(fps),
        seed=accepted, requested_seed=int(seed), depth=int(depth),
        offset=ref.center, scale=1.0 / abs(ref.radius), size=size,
        padding_x=padding_x, padding_y=padding_y,
        total_frames=total, palette=palette, antialias=bool(antialias),
        background=tuple(background),
    )
    return Animation(gasket, schedule, state)


def init_animation_from_config(config, verbose=True):
    """init_animation() driven by an AnimationConfig."""
    return init_animation(
        config.width, config.height, config.start, config.end, config.fps,
        config.seed, depth=config.depth,
        curvature_range=(config.curvature_min, config.curvature_max),
        max_retries=config.max_retries, reveal_offset=config.reveal_offset,
        palette=config.palette, antialias=config.antialias,
        background=config.background, verbose=verbose,
    )


def _draw(canvas, animation, frame_index):
    state = animation.state
    canvas.set_antialias(state.antialias)
    canvas.clear(state.background)

    # Fresh generator per call: colors never depend on which thread renders.
    # One color per circle, visible or not, so colors stay put between frames.
    rnd = DeterministicRandom(state.seed)
    colors = circle_colors(rnd, len(animation), animation.lut)

    visible = animation.schedule.visible_mask(frame_index)
    geom = animation._pixel_geometry
    for i in np.flatnonzero(visible):
        x, y, r = geom[i]
        canvas.fill_disc(x, y, r, colors[i])


def draw_frame(canvas, animation, time):
    """Render the frame for `time` into `canvas` (cleared first)."""
    _draw(canvas, animation, animation.state.frame_index(time))


def render_frame(animation, time, canvas=None):
    """Render the frame for `time` and return it as (H, W, 3) uint8.

    Pure with respect to `animation`; pass a per-thread `canvas` to reuse
    its buffer between calls.
    """
    state = animation.state
    if canvas is None:
        canvas = Canvas(state.width, state.height, state.background)
    draw_frame(canvas, animation, time)
    return canvas.finish()


def render_still(animation, canvas=None):
    """Every circle of the gasket, regardless of reveal frames."""
    state = animation.state
    if canvas is None:
        canvas = Canvas(state.width, state.height, state.background)
    _draw(canvas, animation, np.iinfo(np.int64).max)
    return canvas.finish()
