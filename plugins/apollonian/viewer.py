"""
Interactive Pygame Viewer for the Gasket Animation

Shows single frames on demand and the throttled preview of a running
batch render. All heavy lifting happens in AnimationController; this
window only starts/stops the batch and displays images.

Controls:
  SPACE       Start / stop the batch render (frames go to output_dir)
  LEFT/RIGHT  Step one frame back / forward (SHIFT: ten frames)
  HOME/END    First / last frame
  N           New seed (seed + 1)
  S           Save the complete gasket as a still
  H           Toggle HUD overlay
  Q / ESC     Quit (stops the batch first)
"""

import os
import time

import numpy as np
import pygame

from .controller import AnimationController

MAX_WINDOW = (1280, 800)
HUD_COLOR = (200, 210, 230)


class Viewer:

    def __init__(self, config, max_window=MAX_WINDOW):
        self.ctl = AnimationController(config)
        if self.ctl.config.preview_interval > 1.0:
            self.ctl.configure(preview_interval=1.0)
        self.max_window = max_window
        self.frame = 0
        self.show_hud = True
        self.running = True
        self._image = None
        self._dirty = True
        self._batch_message = ""

    def _window_size(self):
        w, h = self.ctl.config.width, self.ctl.config.height
        scale = min(1.0, self.max_window[0] / w, self.max_window[1] / h)
        return max(1, int(w * scale)), max(1, int(h * scale))

    def _frame_time(self):
        state = self.ctl.animation.state
        return min(state.end, state.start + self.frame / state.fps)

    def _set_frame(self, frame):
        total = self.ctl.animation.state.total_frames
        self.frame = max(0, min(total - 1, frame))
        self._dirty = True

    def _reseed(self):
        if self.ctl.is_running:
            return
        self.ctl.init_animation(seed=self.ctl.animation.state.seed + 1)
        self._set_frame(self.frame)

    def _toggle_batch(self):
        if self.ctl.is_running:
            self.ctl.stop()
            return
        self._batch_message = "rendering..."
        self.ctl.start(on_finished=self._on_batch_finished)

    def _on_batch_finished(self, pipeline):
        s = pipeline.stats
        if pipeline.error is not None:
            self._batch_message = f"failed: {pipeline.error}"
        else:
            self._batch_message = f"{s.persisted}/{pipeline.total_frames} frames in {s.elapsed:.1f}s"
        self._dirty = True  # self.frame may have moved with the preview
        print(f"[AG] Batch {self._batch_message}")

    def _save_still(self):
        out = self.ctl.config.output_dir
        os.makedirs(out, exist_ok=True)
        stamp = time.strftime("%Y%m%d_%H%M%S")
        path = os.path.join(out, f"gasket_{self.ctl.animation.state.seed}_{stamp}.png")
        pygame.image.save(self._to_surface(self.ctl.render_still()), path)
        print(f"Still saved: {path}")

    @staticmethod
    def _to_surface(rgb):
        # pygame surfaces are (W, H); numpy frames are (H, W, 3)
        return pygame.surfarray.make_surface(np.ascontiguousarray(rgb.swapaxes(0, 1)))

    def _current_image(self):
        if self.ctl.is_running:
            latest = self.ctl.latest_preview()
            if latest is not None:
                self.frame = latest[0]
                return latest[1]
            return self._image
        if self._dirty or self._image is None:
            self._image = self.ctl.render_frame(self._frame_time())
            self._dirty = False
        return self._image

    def _draw_hud(self, screen, font):
        state = self.ctl.animation.state
        lines = [
            f"seed {state.seed}  depth {state.depth}  circles {len(self.ctl.animation)}",
            f"frame {self.frame + 1}/{state.total_frames}  t={self._frame_time():.2f}s",
        ]
        if self._batch_message:
            lines.append(f"batch: {self._batch_message}")
        for i, text in enumerate(lines):
            screen.blit(font.render(text, True, HUD_COLOR), (8, 8 + 16 * i))

    def run(self):
        """Main viewer loop."""
        self.ctl.init_animation()

        pygame.init()
        size = self._window_size()
        screen = pygame.display.set_mode(size)
        pygame.display.set_caption("Apollonian Gasket")
        font = pygame.font.SysFont("menlo", 13)
        clock = pygame.time.Clock()

        try:
            while self.running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.running = False
                    elif event.type == pygame.KEYDOWN:
                        self._handle_keydown(event)

                screen.fill((0, 0, 0))
                image = self._current_image()
                if image is not None:
                    surface = self._to_surface(image)
                    screen.blit(pygame.transform.smoothscale(surface, size), (0, 0))
                if self.show_hud:
                    self._draw_hud(screen, font)
                pygame.display.flip()
                clock.tick(30)
        finally:
            self.ctl.stop()
            pygame.quit()

    def _handle_keydown(self, event):
        key = event.key
        step = 10 if event.mod & pygame.KMOD_SHIFT else 1

        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False
        elif key == pygame.K_SPACE:
            self._toggle_batch()
        elif self.ctl.is_running:
            return
        elif key == pygame.K_RIGHT:
            self._set_frame(self.frame + step)
        elif key == pygame.K_LEFT:
            self._set_frame(self.frame - step)
        elif key == pygame.K_HOME:
            self._set_frame(0)
        elif key == pygame.K_END:
            self._set_frame(self.ctl.animation.state.total_frames - 1)
        elif key == pygame.K_n:
            self._reseed()
        elif key == pygame.K_s:
            self._save_still()
        elif key == pygame.K_h:
            self.show_hud = not self.show_hud
