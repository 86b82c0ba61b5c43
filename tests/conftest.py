"""Shared pytest fixtures."""

import heapq
import itertools

import pytest


class ManualScheduler:
    """Scheduler driven by hand: nothing fires until ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._counter = itertools.count()

    def call_later(self, delay, callback):
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), handle, callback))
        return handle

    @property
    def pending(self):
        return [item for item in self._queue if not item[2].cancelled]

    def advance(self, seconds):
        """Move time forward, firing due callbacks in order."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle, callback = heapq.heappop(self._queue)
            self.now = when
            if not handle.cancelled:
                callback()
        self.now = target


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def scheduler():
    """Create a manual scheduler for engine tests."""
    return ManualScheduler()


@pytest.fixture
def clock():
    """Create a controllable clock for store tests."""
    return FakeClock()


@pytest.fixture
def sample_result():
    """Create a sample FetchResult for testing."""
    from rsvp_reader.fetching import FetchResult

    return FetchResult(
        title="Test Article",
        content="This is the first paragraph.\n\nThis is the second one.",
        excerpt="This is the first paragraph.",
        byline="Jane Writer",
        length=10,
    )


@pytest.fixture
def article_html():
    """A small but realistic article page."""
    paragraphs = "\n".join(
        f"<p>Paragraph {i} talks about speed reading, focus and the way the eye "
        f"moves across a line of printed text when nothing interrupts it.</p>"
        for i in range(1, 7)
    )
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Reading Faster | Example Blog</title>
  <meta name="author" content="Jane Writer">
  <meta name="description" content="How to read faster without losing comprehension.">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/about">About</a></nav>
  <article>
    <h1>Reading Faster</h1>
    {paragraphs}
  </article>
  <footer>Copyright Example Blog</footer>
  <script>console.log("tracking");</script>
</body>
</html>"""


@pytest.fixture
def app(monkeypatch):
    """Create Flask test application."""
    monkeypatch.setenv("RSVP_READER_JSON_LOGGING", "false")

    import rsvp_reader.config as config_module

    config_module._config_instance = None

    from rsvp_reader.app import create_app

    app = create_app(test_config={"TESTING": True})
    yield app

    app.config["FETCH_SERVICE"].stop()
    config_module._config_instance = None


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
