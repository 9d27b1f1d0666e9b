"""
Reveal Scheduler

Decides when each circle of the gasket first appears in the animation.
The reference (enclosing) circle always shows from the first frames; the
rest are shuffled into a random draw order and spread evenly over the
remaining frames, so the packing fills in gradually and is complete on
the last frame.
"""

import math

import numpy as np

REVEAL_OFFSET = 3  # first frame index at which anything is revealed


class RevealSchedule:
    """Reveal frame per circle, aligned with the gasket's generation order."""

    def __init__(self, reveal_frames, order, total_frames, offset):
        self.reveal_frames = reveal_frames  # (N,) int64, generation order
        self.order = order                  # generation indices in draw order
        self.total_frames = total_frames
        self.offset = offset

    def visible_mask(self, frame_index):
        """Boolean mask of circles visible at `frame_index`."""
        return self.reveal_frames <= frame_index

    def __len__(self):
        return len(self.reveal_frames)

    def __eq__(self, other):
        if not isinstance(other, RevealSchedule):
            return NotImplemented
        return (self.total_frames == other.total_frames
                and self.offset == other.offset
                and self.order == other.order
                and np.array_equal(self.reveal_frames, other.reveal_frames))


def total_frames_for(start, end, fps):
    """Frame count of an animation from `start` to `end` (both included)."""
    return int(math.floor((end - start) * fps)) + 1


def frame_from_time(time, start, end, fps):
    """1-based frame index of `time`: 1 at `start`, total_frames at `end`.

    Rounds to the nearest frame so that start + n / fps maps to n + 1
    exactly, whatever the float error in the division. Clamped to
    [1, total_frames].
    """
    index = int(round((time - start) * fps)) + 1
    return max(1, min(index, total_frames_for(start, end, fps)))


def schedule_reveal(circles, total_frames, rng, offset=REVEAL_OFFSET):
    """Assign a reveal frame to every circle.

    The first circle keeps position 0; the others are Fisher-Yates shuffled
    with `rng`. Shuffled position i is revealed at
    offset + floor(i * (total_frames - offset) / (N - 1)), which is
    non-decreasing, starts at `offset` and ends exactly on the last frame.

    Args:
        circles: Gasket circles in generation order (mutated: reveal_frame)
        total_frames: Number of output frames (>= 1)
        rng: DeterministicRandom already reset to the run's seed
        offset: First reveal frame, clamped to [1, total_frames]

    Returns:
        RevealSchedule
    """
    n = len(circles)
    total_frames = max(1, int(total_frames))
    offset = max(1, min(int(offset), total_frames))

    rest = list(range(1, n))
    rng.shuffle(rest)
    order = [0] + rest if n else []

    span = total_frames - offset
    reveal = np.empty(n, dtype=np.int64)
    for position, index in enumerate(order):
        if n > 1:
            reveal[index] = offset + (position * span) // (n - 1)
        else:
            reveal[index] = offset
        circles[index].reveal_frame = int(reveal[index])

    return RevealSchedule(reveal, order, total_frames, offset)
