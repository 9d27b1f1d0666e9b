#!/usr/bin/env python3
"""
Tests for the reveal scheduler.

Verifies:
1. Frame/time conversions
2. Reveal frames stay in [offset, total_frames] and span it
3. Same seed gives the same schedule
"""

from apollonian.gasket import ApollonianGasket, Circle
from apollonian.rng import DeterministicRandom
from apollonian.schedule import (
    REVEAL_OFFSET, frame_from_time, schedule_reveal, total_frames_for,
)


def _circles(depth=3):
    return ApollonianGasket(3, 5, 7).generate(depth)


def test_frame_time_conversion():
    print("Testing frame/time conversion...")
    assert total_frames_for(0.0, 10.0, 25.0) == 251
    assert total_frames_for(2.0, 3.0, 10.0) == 11
    assert frame_from_time(0.0, 0.0, 10.0, 25.0) == 1
    assert frame_from_time(10.0, 0.0, 10.0, 25.0) == 251
    assert frame_from_time(1.0, 0.0, 10.0, 25.0) == 26
    print("  ✓ Frame 1 at start, last frame at end")



def test_frame_index_of_dispatch_times():
    """Frame n is rendered at start + n / fps and must map to index n + 1."""
    print("Testing frame index of pipeline times...")
    for fps in (25.0, 30.0, 24.0, 12.0, 10.0, 29.97):
        for start in (0.0, 2.5):
            end = start + 10.0
            total = total_frames_for(start, end, fps)
            indices = [frame_from_time(start + n / fps, start, end, fps) for n in range(total)]
            assert indices == list(range(1, total + 1)), f"fps {fps}, start {start}"
            assert frame_from_time(start - 1.0, start, end, fps) == 1
            assert frame_from_time(end + 5.0, start, end, fps) == total
    print("  ✓ Every dispatched frame gets its own reveal step")

def test_reveal_range_and_order():
    print("Testing reveal range...")
    circles = _circles()
    total = 251
    sched = schedule_reveal(circles, total, DeterministicRandom(2763))

    frames = sched.reveal_frames
    assert len(frames) == len(circles)
    assert frames.min() == REVEAL_OFFSET, f"min {frames.min()}"
    assert frames.max() == total, f"max {frames.max()}"
    assert sched.order[0] == 0, "Reference circle must be drawn first"
    assert frames[0] == REVEAL_OFFSET

    in_draw_order = [frames[i] for i in sched.order]
    assert in_draw_order == sorted(in_draw_order), "Reveal frames must not decrease"
    assert sorted(sched.order) == list(range(len(circles))), "Order must be a permutation"
    for i, c in enumerate(circles):
        assert c.reveal_frame == frames[i]
    print("  ✓ Frames cover [offset, total] monotonically")


def test_reveal_deterministic():
    print("Testing schedule determinism...")
    a = schedule_reveal(_circles(), 100, DeterministicRandom(7))
    b = schedule_reveal(_circles(), 100, DeterministicRandom(7))
    c = schedule_reveal(_circles(), 100, DeterministicRandom(8))
    assert a == b, "Same seed must give the same schedule"
    assert a.order != c.order, "Different seeds should shuffle differently"
    print("  ✓ Same seed, same schedule")


def test_reveal_small_inputs():
    print("Testing edge cases...")
    one = [Circle(0, 0, -1)]
    sched = schedule_reveal(one, 50, DeterministicRandom(1))
    assert list(sched.reveal_frames) == [REVEAL_OFFSET]

    # fewer frames than the offset: clamp so everything is still visible
    sched = schedule_reveal(_circles(1), 2, DeterministicRandom(1))
    assert sched.offset == 2
    assert sched.reveal_frames.min() == 2 and sched.reveal_frames.max() == 2

    # more circles than frames: several circles share a frame
    sched = schedule_reveal(_circles(3), 10, DeterministicRandom(1))
    assert sched.reveal_frames.min() == REVEAL_OFFSET
    assert sched.reveal_frames.max() == 10
    assert sched.visible_mask(10).all()
    assert sched.visible_mask(REVEAL_OFFSET).sum() >= 1
    print("  ✓ Offset clamping and shared frames")


if __name__ == "__main__":
    print("\n=== Testing Reveal Scheduler ===\n")
    test_frame_time_conversion()
    test_frame_index_of_dispatch_times()
    test_reveal_range_and_order()
    test_reveal_deterministic()
    test_reveal_small_inputs()
    print("\n✓ All tests passed!\n")
