"""
Multi-threaded Frame Rendering Pipeline

Renders a whole animation in parallel and writes one image per frame.

    [worker x N] -- claim (time, frame#) --> render --> bounded queue
                                                            |
    [collector] <-------------------------------------------+
        persist to storage (file name carries the frame number)
        publish a throttled preview copy

Workers claim work from a single cursor under one lock, so frame numbers
are handed out strictly in order; they may *finish* in any order. The
result queue holds at most workers + 2 frames: two counting semaphores
(free slots / ready results) block workers when the collector falls
behind and block the collector when nothing is ready. There is no
reordering buffer; a frame is written as soon as it is collected and the
zero-padded number in its file name restores the order on disk.

Cancellation is cooperative: workers check the continue flag before
claiming a frame and after publishing one, the collector once per
iteration. An in-flight render always runs to completion.
"""

import enum
import os
import threading
import time
from collections import deque

import numpy as np
from PIL import Image


class RenderError(RuntimeError):
    """A frame failed to render or to persist; the run was cancelled."""


class PipelineStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"      # all frames collected, shutting down
    CANCELLING = "cancelling"  # stop() or a fatal error, shutting down


class Result:
    """One rendered frame travelling from a worker to the collector."""

    def __init__(self, image, frame_number, time):
        self.image = image
        self.frame_number = frame_number
        self.time = time

    def dispose(self):
        """Release the pixel buffer. Returns False if already disposed."""
        if self.image is None:
            return False
        self.image = None
        return True


class PipelineStats:
    """Counters of one run. persisted + discarded + failed == dispatched
    once the pipeline is idle again."""

    def __init__(self):
        self.dispatched = 0        # frames claimed by workers
        self.persisted = 0         # frames written to storage
        self.discarded = 0         # rendered but dropped by cancellation
        self.failed = 0            # render or write raised
        self.created = 0           # Result objects built
        self.disposed = 0          # Result objects released
        self.max_queue_length = 0
        self.elapsed = 0.0

    def as_dict(self):
        return dict(vars(self))

    def __repr__(self):
        return f"PipelineStats({self.as_dict()})"


# ── Storage ──────────────────────────────────────────────────────────────

class FrameWriter:
    """Writes frames as image files named by frame number (out0000.png, ...)."""

    def __init__(self, output_dir=".", pattern="out{:04d}.png"):
        self.output_dir = output_dir
        self.pattern = pattern
        os.makedirs(output_dir, exist_ok=True)

    def path_for(self, frame_number):
        return os.path.join(self.output_dir, self.pattern.format(frame_number))

    def write(self, frame_number, image):
        """Save an (H, W, 3) uint8 frame with Pillow. Returns the path."""
        path = self.path_for(frame_number)
        Image.fromarray(image).save(path)
        return path


# ── Preview ──────────────────────────────────────────────────────────────

class PreviewStore:
    """Latest preview frame, updated at most once per `interval` seconds.

    The collector offers every frame; only frames newer than the one shown
    and arriving after the interval has elapsed are copied in. Readers on
    other threads (viewer, CLI) call latest().
    """

    def __init__(self, interval=10.0, on_update=None):
        self.interval = interval
        self.on_update = on_update
        self._lock = threading.Lock()
        self._image = None
        self._frame_number = -1
        self._last_time = None
        self.updates = 0

    def offer(self, frame_number, image, now=None):
        """Maybe take a copy of `image`. Returns True if the preview changed."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if frame_number <= self._frame_number:
                return False
            if self._last_time is not None and now < self._last_time + self.interval:
                return False
            self._image = np.array(image, copy=True)
            self._frame_number = frame_number
            self._last_time = now
            self.updates += 1
        if self.on_update is not None:
            self.on_update(frame_number)
        return True

    def latest(self):
        """(frame_number, image copy) of the current preview, or None."""
        with self._lock:
            if self._image is None:
                return None
            return self._frame_number, self._image.copy()

    def reset(self):
        with self._lock:
            self._image = None
            self._frame_number = -1
            self._last_time = None


# ── Pipeline ─────────────────────────────────────────────────────────────

class RenderPipeline:
    """Worker pool + bounded result queue + ordered-by-name frame collector.

    Args:
        render_fn: callable(time, frame_number) -> (H, W, 3) uint8 image;
            called concurrently from every worker thread
        total_frames: Number of frames to produce
        start: Time of frame 0 (s)
        fps: Frames per second; frame n renders time start + n / fps
        sink: Object with write(frame_number, image); FrameWriter by default
        workers: Worker thread count (None = CPU count)
        preview: Optional PreviewStore fed by the collector
        on_finished: Optional callable(pipeline) run on the collector thread
            after shutdown (completion, cancellation or error)
        verbose: Print progress lines
    """

    def __init__(self, render_fn, total_frames, start=0.0, fps=25.0, sink=None,
                 workers=None, preview=None, on_finished=None, verbose=True):
        if total_frames < 1:
            raise ValueError(f"total_frames must be >= 1, got {total_frames}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.render_fn = render_fn
        self.total_frames = int(total_frames)
        self.start_time = float(start)
        self.fps = float(fps)
        self.sink = sink if sink is not None else FrameWriter()
        self.workers = max(1, int(workers or os.cpu_count() or 1))
        self.queue_capacity = self.workers + 2
        self.preview = preview
        self.on_finished = on_finished
        self.verbose = verbose

        # Cursor + continue flag ("input data lock")
        self._state_lock = threading.Lock()
        self._next_time = self.start_time
        self._next_frame_number = 0
        self._continue = False

        # Output queue + its semaphores
        self._queue_lock = threading.Lock()
        self._queue = deque()
        self._slots_free = None
        self._results_ready = None

        self._stats_lock = threading.Lock()
        self.stats = PipelineStats()

        self._lifecycle_lock = threading.Lock()
        self._pool = []
        self._collector = None
        self._done = threading.Event()
        self._done.set()
        self.status = PipelineStatus.IDLE
        self.error = None
        self.error_context = ""

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def start(self):
        """Spawn the workers and the collector (IDLE -> RUNNING)."""
        with self._lifecycle_lock:
            if self.status != PipelineStatus.IDLE:
                raise RuntimeError(f"Pipeline is {self.status.value}, cannot start")

            with self._queue_lock:
                self._queue.clear()
            self._slots_free = threading.Semaphore(self.queue_capacity)
            self._results_ready = threading.Semaphore(0)
            self.stats = PipelineStats()
            self.error = None
            self.error_context = ""
            self._done.clear()
            with self._state_lock:
                self._next_time = self.start_time
                self._next_frame_number = 0
                self._continue = True
                self.status = PipelineStatus.RUNNING

            self._pool = [
                threading.Thread(target=self._worker, name=f"ag-render-{i}", daemon=True)
                for i in range(self.workers)
            ]
            for t in self._pool:
                t.start()
            self._collector = threading.Thread(
                target=self._collect, name="ag-collector", daemon=True)
            self._collector.start()

        self._log(f"Rendering {self.total_frames} frames on {self.workers} threads "
                  f"(queue capacity {self.queue_capacity})")

    def stop(self):
        """Cancel the run and wait until every thread has exited.

        Safe from any thread and idempotent. Frames already persisted stay
        on disk; queued and in-flight frames are discarded.
        """
        with self._lifecycle_lock:
            with self._state_lock:
                if self.status == PipelineStatus.IDLE:
                    return
                self._continue = False
                if self.status == PipelineStatus.RUNNING:
                    self.status = PipelineStatus.CANCELLING
            ready = self._results_ready
            collector = self._collector
        if ready is not None:
            ready.release()  # wake the collector if it waits on an empty queue

        me = threading.current_thread()
        if collector is not None and me is not collector and me not in self._pool:
            collector.join()

    cancel = stop

    def wait(self, timeout=None):
        """Block until the run is over.

        Returns:
            True when finished, False on timeout

        Raises:
            RenderError: a render or a write failed during the run
        """
        if not self._done.wait(timeout):
            return False
        if self.error is not None:
            raise RenderError(f"{self.error_context} failed: {self.error}") from self.error
        return True

    @property
    def is_running(self):
        return not self._done.is_set()

    def queue_length(self):
        with self._queue_lock:
            return len(self._queue)

    # -----------------------------------------------------------------------
    # Threads
    # -----------------------------------------------------------------------

    def _worker(self):
        """Claim frames one by one, render them, push them into the queue."""
        while True:
            with self._state_lock:
                if not self._continue or self._next_frame_number >= self.total_frames:
                    self._results_ready.release()  # lets the collector re-check and give up
                    return
                my_time = self._next_time
                my_frame = self._next_frame_number
                self._next_frame_number += 1
                self._next_time = self.start_time + self._next_frame_number / self.fps
                self._count("dispatched")  # under the cursor lock, see _complete()

            try:
                image = self.render_fn(my_time, my_frame)
            except Exception as e:
                self._count("failed")
                self._fail(e, f"Render of frame {my_frame}")
                self._results_ready.release()
                return

            result = Result(image, my_frame, my_time)
            self._count("created")

            self._slots_free.acquire()  # backpressure: wait for room in the queue
            with self._state_lock:
                accepted = self._continue
                if accepted:
                    with self._queue_lock:
                        self._queue.append(result)
                        length = len(self._queue)
            if not accepted:
                self._release(result, "discarded")
                self._results_ready.release()
                return
            self._track_queue_length(length)
            self._results_ready.release()  # notify the collector

            with self._state_lock:
                if not self._continue:
                    return

    def _collect(self):
        """Drain finished frames, persist them, feed the preview."""
        t0 = time.perf_counter()
        try:
            while True:
                self._results_ready.acquire()  # wait until a frame is finished

                with self._state_lock:  # user break or fatal error?
                    if not self._continue:
                        break

                with self._queue_lock:
                    result = self._queue.popleft() if self._queue else None
                if result is None:
                    if self._complete():
                        break
                    continue
                self._slots_free.release()

                stage = "Write"
                try:
                    self.sink.write(result.frame_number, result.image)
                    stage = "Preview"
                    if self.preview is not None and self.preview.offer(result.frame_number, result.image):
                        self._log_progress(time.perf_counter() - t0)
                except Exception as e:
                    self._release(result, "failed")
                    self._fail(e, f"{stage} of frame {result.frame_number}")
                    break
                self._release(result, "persisted")

                if self._complete():
                    break
        finally:
            self.stats.elapsed = time.perf_counter() - t0
            self._shutdown()

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _complete(self):
        """All frames dispatched and every dispatched frame accounted for."""
        with self._state_lock:
            exhausted = self._next_frame_number >= self.total_frames
        with self._stats_lock:
            s = self.stats
            return exhausted and s.persisted + s.discarded + s.failed == s.dispatched

    def _shutdown(self):
        """Collector-side teardown: unblock and join workers, drop leftovers."""
        with self._state_lock:
            if self.status == PipelineStatus.RUNNING:
                self.status = PipelineStatus.DRAINING
            self._continue = False

        # workers stuck on a full queue get a slot, see the flag and leave
        self._slots_free.release(self.workers)
        for t in self._pool:
            t.join()

        with self._queue_lock:
            leftovers = list(self._queue)
            self._queue.clear()
        for result in leftovers:
            self._release(result, "discarded")

        cancelled = self.status == PipelineStatus.CANCELLING
        with self._state_lock:
            self.status = PipelineStatus.IDLE
        self._pool = []

        s = self.stats
        verb = "Cancelled" if cancelled else "Finished"
        self._log(f"{verb}: {s.persisted}/{self.total_frames} frames written, "
                  f"{s.discarded} discarded, {s.failed} failed, {s.elapsed:.1f}s")
        self._done.set()
        if self.on_finished is not None:
            self.on_finished(self)

    def _fail(self, exc, context):
        """Record the first fatal error and cancel the run."""
        with self._state_lock:
            if self.error is None:
                self.error = exc
                self.error_context = context
            self._continue = False
            if self.status == PipelineStatus.RUNNING:
                self.status = PipelineStatus.CANCELLING
        self._log(f"{context} failed: {exc!r}")

    def _release(self, result, outcome):
        if result.dispose():
            with self._stats_lock:
                self.stats.disposed += 1
                setattr(self.stats, outcome, getattr(self.stats, outcome) + 1)

    def _count(self, field):
        with self._stats_lock:
            setattr(self.stats, field, getattr(self.stats, field) + 1)

    def _track_queue_length(self, length):
        with self._stats_lock:
            if length > self.stats.max_queue_length:
                self.stats.max_queue_length = length

    def _log_progress(self, elapsed):
        done = self.stats.persisted + 1
        pct = 100.0 * done / self.total_frames
        self._log(f"Frames (mt{self.workers}): {done} ({pct:.1f}%), {elapsed:.1f}s")

    def _log(self, msg):
        if self.verbose:
            print(f"[AG] {msg}", flush=True)
