"""
Animation Controller

Owns one run: builds the Animation (gasket, reveal schedule, state) and
drives the RenderPipeline that renders and saves its frames. This is the
boundary the viewer and the command line talk to:

    ctl = AnimationController(AnimationConfig.from_preset("preview"))
    ctl.init_animation()
    ctl.start()
    ctl.wait()          # raises RenderError if a frame failed
"""

import threading

from .animation import draw_frame, init_animation_from_config, render_frame, render_still
from .canvas import Canvas
from .config import AnimationConfig
from .pipeline import FrameWriter, PreviewStore, RenderPipeline


class AnimationController:
    """Start/stop lifecycle around one Animation and its batch pipeline."""

    def __init__(self, config=None, sink=None, verbose=True):
        self.config = config or AnimationConfig()
        self.sink = sink
        self.verbose = verbose
        self.animation = None
        self.pipeline = None
        self.preview = PreviewStore(interval=self.config.preview_interval)
        self._lock = threading.Lock()
        self._local = threading.local()  # per-thread canvas for workers

    # -----------------------------------------------------------------------
    # Run setup
    # -----------------------------------------------------------------------

    def configure(self, **overrides):
        """Replace config fields (validated). Takes effect on the next init."""
        data = self.config.model_dump()
        data.update(overrides)
        self.config = AnimationConfig(**data)
        self.preview.interval = self.config.preview_interval
        return self.config

    def init_animation(self, width=None, height=None, start=None, end=None,
                       fps=None, seed=None):
        """(Re)build gasket, schedule and state for a run. Returns the AnimationState.

        Arguments left as None keep their configured value. Must be called
        before draw_frame() or start().
        """
        overrides = {k: v for k, v in dict(width=width, height=height, start=start,
                                           end=end, fps=fps, seed=seed).items()
                     if v is not None}
        if self.is_running:
            raise RuntimeError("Cannot re-initialise while the pipeline is running")
        config = self.config
        if overrides:
            config = AnimationConfig(**{**config.model_dump(), **overrides})
        # config only changes once the new animation exists
        animation = init_animation_from_config(config, verbose=self.verbose)
        with self._lock:
            self.config = config
            self.preview.interval = config.preview_interval
            self.animation = animation
        return animation.state

    def _require_animation(self):
        if self.animation is None:
            raise RuntimeError("init_animation() must be called first")
        return self.animation

    # -----------------------------------------------------------------------
    # Single frames
    # -----------------------------------------------------------------------

    def draw_frame(self, canvas, time):
        """Render the frame for `time` into a caller-owned canvas."""
        draw_frame(canvas, self._require_animation(), time)

    def render_frame(self, time):
        return render_frame(self._require_animation(), time)

    def render_still(self):
        return render_still(self._require_animation())

    def save_frame(self, time, path):
        """Render one frame and save it with Pillow. Returns the path."""
        anim = self._require_animation()
        canvas = Canvas(anim.state.width, anim.state.height, anim.state.background)
        draw_frame(canvas, anim, time)
        canvas.to_image().save(path)
        return path

    # -----------------------------------------------------------------------
    # Batch rendering
    # -----------------------------------------------------------------------

    def _render_for_worker(self, time, frame_number):
        anim = self.animation
        canvas = getattr(self._local, "canvas", None)
        if canvas is None or (canvas.width, canvas.height) != (anim.state.width, anim.state.height):
            canvas = Canvas(anim.state.width, anim.state.height, anim.state.background)
            self._local.canvas = canvas
        draw_frame(canvas, anim, time)
        return canvas.finish()

    def start(self, on_finished=None):
        """Render every frame of the current animation on worker threads."""
        anim = self._require_animation()
        with self._lock:
            if self.pipeline is not None and self.pipeline.is_running:
                raise RuntimeError("Animation is already rendering")
            sink = self.sink or FrameWriter(self.config.output_dir, self.config.filename_pattern)
            self.preview.reset()
            self.pipeline = RenderPipeline(
                self._render_for_worker,
                total_frames=anim.state.total_frames,
                start=anim.state.start,
                fps=anim.state.fps,
                sink=sink,
                workers=self.config.resolved_workers(),
                preview=self.preview,
                on_finished=on_finished,
                verbose=self.verbose,
            )
            self.pipeline.start()
        return self.pipeline

    def stop(self):
        """Cancel the batch (any thread, idempotent)."""
        pipeline = self.pipeline
        if pipeline is not None:
            pipeline.stop()

    cancel = stop

    def wait(self, timeout=None):
        """Wait for the batch to end; RenderError if it failed."""
        pipeline = self.pipeline
        if pipeline is None:
            return True
        return pipeline.wait(timeout)

    @property
    def is_running(self):
        return self.pipeline is not None and self.pipeline.is_running

    @property
    def stats(self):
        return None if self.pipeline is None else self.pipeline.stats

    def latest_preview(self):
        return self.preview.latest()
