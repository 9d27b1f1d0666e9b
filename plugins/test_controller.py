#!/usr/bin/env python3
"""
End-to-end tests: config, controller and command line.

Verifies:
1. AnimationConfig normalisation and validation
2. A small batch render writes out0000.png .. outNNNN.png
3. Controller guards (draw before init, unknown presets)
4. CLI entry point
"""

import os
import tempfile
import time
from types import SimpleNamespace

import numpy as np
from PIL import Image
from pydantic import ValidationError

from apollonian.__main__ import main
from apollonian.canvas import Canvas
from apollonian.config import AnimationConfig
from apollonian.controller import AnimationController
from apollonian.presets import PRESET_ORDER, list_presets


def test_config_normalisation():
    print("Testing config normalisation...")
    cfg = AnimationConfig(start=5.0, end=5.0, fps=0.0)
    assert cfg.end == 6.0, "Empty time range widens to one second"
    assert cfg.fps == 25.0, "Non-positive fps falls back to 25"

    cfg = AnimationConfig(start=3.0, end=1.0, fps=-4)
    assert cfg.end == 4.0 and cfg.fps == 25.0

    cfg = AnimationConfig(workers=3, output_dir="frames")
    assert cfg.resolved_workers() == 3
    assert AnimationConfig().resolved_workers() >= 1
    print("  ✓ Time range and fps normalised")


def test_config_validation():
    print("Testing config validation...")
    bad = [
        dict(width=0),
        dict(depth=20),
        dict(palette="sepia"),
        dict(curvature_min=10, curvature_max=5),
        dict(filename_pattern="frame.png"),
        dict(workers=0),
    ]
    for kw in bad:
        try:
            AnimationConfig(**kw)
        except ValidationError:
            continue
        raise AssertionError(f"{kw} should not validate")
    print("  ✓ Invalid values rejected")


def test_presets():
    print("Testing presets...")
    assert [k for k, _, _ in list_presets()] == PRESET_ORDER
    for name in PRESET_ORDER:
        AnimationConfig.from_preset(name)
    cfg = AnimationConfig.from_preset("still", seed=99, width=None)
    assert cfg.seed == 99 and cfg.width == 800
    try:
        AnimationConfig.from_preset("bogus")
    except ValueError:
        pass
    else:
        raise AssertionError("unknown preset should raise")
    print("  ✓ Presets build valid configs")


def test_controller_requires_init():
    print("Testing controller guards...")
    ctl = AnimationController(AnimationConfig(width=32, height=32), verbose=False)
    for call in (lambda: ctl.draw_frame(Canvas(32, 32), 0.0), ctl.render_still, ctl.start):
        try:
            call()
        except RuntimeError:
            continue
        raise AssertionError("expected RuntimeError before init_animation()")
    assert ctl.wait(0) is True and ctl.stats is None
    ctl.stop()  # nothing to stop
    print("  ✓ draw_frame/start need init_animation()")


def test_batch_render_writes_numbered_files():
    print("Testing batch render...")
    with tempfile.TemporaryDirectory() as tmp:
        cfg = AnimationConfig(width=64, height=48, start=0.0, end=1.0, fps=10.0,
                              seed=2763, depth=2, workers=2, output_dir=tmp,
                              preview_interval=0.0)
        ctl = AnimationController(cfg, verbose=False)
        state = ctl.init_animation()
        assert state.total_frames == 11

        ctl.start()
        assert ctl.wait(30)
        assert not ctl.is_running

        files = sorted(os.listdir(tmp))
        assert files == [f"out{n:04d}.png" for n in range(11)], files
        stats = ctl.stats
        assert stats.persisted == 11 and stats.discarded == 0 and stats.failed == 0

        # file n holds the frame rendered for time start + n / fps
        for n in (0, 4, 10):
            with Image.open(os.path.join(tmp, f"out{n:04d}.png")) as im:
                on_disk = np.asarray(im.convert("RGB"))
            assert np.array_equal(on_disk, ctl.render_frame(n / 10.0)), f"frame {n}"

        frame_number, preview = ctl.latest_preview()
        assert 0 <= frame_number <= 10 and preview.shape == (48, 64, 3)

        # re-init with a new seed once the run is over
        state2 = ctl.init_animation(seed=12)
        assert state2.requested_seed == 12
    print("  ✓ 11 frames written in order of frame number")


def test_reinit_rejected_while_running():
    """A refused re-init must leave the configuration untouched."""
    print("Testing re-init during a batch...")

    class SlowSink:
        def write(self, frame_number, image):
            time.sleep(0.05)

    cfg = AnimationConfig(width=32, height=32, end=2.0, fps=10.0, seed=77, depth=1, workers=2)
    ctl = AnimationController(cfg, sink=SlowSink(), verbose=False)
    ctl.init_animation()
    ctl.start()
    try:
        try:
            ctl.init_animation(seed=5, width=64)
        except RuntimeError:
            pass
        else:
            raise AssertionError("re-init while running should raise")
        assert ctl.config.seed == 77 and ctl.config.width == 32
    finally:
        ctl.stop()
    state = ctl.init_animation()
    assert state.requested_seed == 77 and state.width == 32
    print("  ✓ Config unchanged after a refused re-init")


def test_save_frame():
    with tempfile.TemporaryDirectory() as tmp:
        ctl = AnimationController(AnimationConfig(width=40, height=40, depth=1), verbose=False)
        ctl.init_animation(end=2.0, fps=5.0, seed=3)
        path = ctl.save_frame(2.0, os.path.join(tmp, "last.png"))
        with Image.open(path) as im:
            assert im.size == (40, 40)
            assert np.array_equal(np.asarray(im.convert("RGB")), ctl.render_still())


def test_cli():
    print("Testing command line...")
    assert main(["--list"]) == 0
    assert main(["--bogus"]) == 2
    assert main(["--seed", "abc"]) == 2
    with tempfile.TemporaryDirectory() as tmp:
        rc = main(["preview", "--size", "48x32", "--from", "0", "--to", "0.5",
                   "--fps", "4", "--depth", "1", "--workers", "2", "--out", tmp])
        assert rc == 0
        assert sorted(os.listdir(tmp)) == [f"out{n:04d}.png" for n in range(3)]

        assert main(["still", "--size", "32x32", "--seed", "12", "--still", "--out", tmp]) == 0
        assert any(f.startswith("gasket_") for f in os.listdir(tmp))

        assert main(["preview", "--size", "32x32", "--frame", "1.5", "--out", tmp]) == 0
        assert "frame_1.500.png" in os.listdir(tmp)
    print("  ✓ Batch, still and single-frame modes")



def test_viewer_setup():
    """Viewer construction only; no window is opened."""
    print("Testing viewer setup...")
    from apollonian.viewer import Viewer

    viewer = Viewer(AnimationConfig(width=2560, height=1440, preview_interval=10.0))
    assert viewer.ctl.config.preview_interval == 1.0, "Viewer wants frequent previews"
    assert viewer._window_size() == (1280, 720)

    surface = Viewer._to_surface(np.zeros((30, 50, 3), dtype=np.uint8))
    assert surface.get_size() == (50, 30)

    # a finished batch leaves self.frame on the last preview: redraw it
    viewer._dirty = False
    done = SimpleNamespace(stats=SimpleNamespace(persisted=3, elapsed=0.1), error=None, total_frames=3)
    viewer._on_batch_finished(done)
    assert viewer._dirty
    print("  ✓ Window fits the screen, frames convert to surfaces")


if __name__ == "__main__":
    print("\n=== Testing Controller ===\n")
    test_config_normalisation()
    test_config_validation()
    test_presets()
    test_controller_requires_init()
    test_batch_render_writes_numbered_files()
    test_reinit_rejected_while_running()
    test_save_frame()
    test_cli()
    test_viewer_setup()
    print("\n✓ All tests passed!\n")
