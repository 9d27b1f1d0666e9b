"""
Apollonian Gasket Animation - Entry Point

Usage:
    python -m apollonian [preset] [options]

Examples:
    python -m apollonian                      # render the "animation" preset
    python -m apollonian preview --out frames
    python -m apollonian --seed 12 --still    # one image, every circle
    python -m apollonian --frame 4.5          # single frame at t = 4.5 s
    python -m apollonian preview --view       # pygame preview window

Options:
    --seed N        Random seed
    --size WxH      Frame size in pixels
    --fps F         Frames per second
    --from T        Start time (s)
    --to T          End time (s)
    --depth D       Gasket recursion depth
    --palette P     random, neon_bio, ocean, fire, plasma
    --workers N     Render threads (default: CPU count)
    --out DIR       Output directory for out0000.png, out0001.png, ...
    --frame T       Render only the frame at time T
    --still         Render only the complete gasket
    --view          Open the interactive viewer
    --list          List presets

Use --list to see all available presets.
"""

import os
import sys

from pydantic import ValidationError

from .config import AnimationConfig
from .controller import AnimationController
from .gasket import DegenerateGasketError
from .pipeline import RenderError
from .presets import PRESET_ORDER, list_presets

# option -> (config field, converter)
_OPTIONS = {
    "--seed": ("seed", int),
    "--fps": ("fps", float),
    "--from": ("start", float),
    "--to": ("end", float),
    "--depth": ("depth", int),
    "--palette": ("palette", str),
    "--workers": ("workers", int),
    "--out": ("output_dir", str),
}


def run_batch(ctl):
    """Render the whole animation; Ctrl+C cancels cleanly."""
    ctl.start()
    try:
        while not ctl.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        print("\n[AG] Interrupted, stopping workers...")
        ctl.stop()
        ctl.wait()
        return 130
    return 0


def main(argv=None):
    args = sys.argv[1:] if argv is None else list(argv)
    preset = "animation"
    overrides = {}
    frame_time = None
    still = False
    view = False

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _OPTIONS and i + 1 < len(args):
            key, conv = _OPTIONS[arg]
            try:
                overrides[key] = conv(args[i + 1])
            except ValueError:
                print(f"Bad value for {arg}: {args[i + 1]}")
                return 2
            i += 2
        elif arg == "--size" and i + 1 < len(args):
            parts = args[i + 1].lower().split("x")
            overrides["width"], overrides["height"] = int(parts[0]), int(parts[1])
            i += 2
        elif arg == "--frame" and i + 1 < len(args):
            frame_time = float(args[i + 1])
            i += 2
        elif arg == "--still":
            still = True
            i += 1
        elif arg == "--view":
            view = True
            i += 1
        elif arg == "--list":
            print("\nAvailable presets:")
            for key, name, desc in list_presets():
                print(f"    {key:12s} {name:18s} {desc}")
            print()
            return 0
        elif arg in ("--help", "-h"):
            print(__doc__)
            return 0
        elif arg in PRESET_ORDER:
            preset = arg
            i += 1
        else:
            print(f"Unknown argument: {arg}")
            print("Use --help for usage")
            return 2

    try:
        config = AnimationConfig.from_preset(preset, **overrides)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}")
        return 2

    if view:
        from .viewer import Viewer
        Viewer(config).run()
        return 0

    ctl = AnimationController(config)
    try:
        state = ctl.init_animation()
    except DegenerateGasketError as e:
        print(f"[AG] {e}")
        return 1

    print(f"Apollonian gasket: preset {preset}, seed {state.seed}"
          f"{'' if state.seed == state.requested_seed else f' (asked {state.requested_seed})'}, "
          f"{len(ctl.animation)} circles, {state.width}x{state.height}")

    os.makedirs(config.output_dir, exist_ok=True)
    if still:
        from PIL import Image
        path = os.path.join(config.output_dir, f"gasket_{state.seed}.png")
        Image.fromarray(ctl.render_still()).save(path)
        print(f"Saved: {path}")
        return 0
    if frame_time is not None:
        path = os.path.join(config.output_dir, f"frame_{frame_time:.3f}.png")
        ctl.save_frame(frame_time, path)
        print(f"Saved: {path}")
        return 0

    print(f"  {state.total_frames} frames, {state.start:g}-{state.end:g}s @ {state.fps:g} fps "
          f"-> {os.path.abspath(config.output_dir)}")
    try:
        return run_batch(ctl)
    except RenderError as e:
        print(f"[AG] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
