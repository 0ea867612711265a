import heapq
import io

import pytest
from PIL import Image


class _Handle:
    def __init__(self, callback, args):
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for ``loop.call_later``; time only moves on ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._counter = 0

    def call_later(self, delay, callback, *args):
        handle = _Handle(callback, args)
        self._counter += 1
        heapq.heappush(self._queue, (self.now + delay, self._counter, handle))
        return handle

    @property
    def pending(self):
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds):
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = when
            handle.callback(*handle.args)
        self.now = target


@pytest.fixture
def scheduler():
    return FakeScheduler()


def png_bytes(size=(20, 20), color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def red_png():
    return png_bytes()
