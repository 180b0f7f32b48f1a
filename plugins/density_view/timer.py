"""
Frame Timing

Timer measures the delta between frames; FpsCounter counts frames seen in
the trailing second. Both take an optional clock for deterministic use.
"""

import time
from collections import deque


class Timer:

    def __init__(self, clock=time.perf_counter):
        self.clock = clock
        self.last_tick = clock()

    def tick(self):
        self.last_tick = self.clock()

    def delta(self):
        """Seconds since the last tick."""
        return self.clock() - self.last_tick


class FpsCounter:

    def __init__(self, clock=time.perf_counter, window=1.0):
        self.clock = clock
        self.window = window
        self.frames = deque()

    def add_frame(self):
        self.frames.append(self.clock())

    def fps(self):
        """Frames added within the last `window` seconds."""
        now = self.clock()
        while self.frames and self.frames[0] + self.window < now:
            self.frames.popleft()
        return len(self.frames)
