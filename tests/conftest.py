"""
Shared pytest fixtures for the scrolling marquee tests.
"""
import os
import sys
from collections import deque
from dataclasses import dataclass

# Ensure project root is on path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Qt widget tests run without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from core.marquee import MarqueeBackend, MarqueeController, MarqueeDelegate


@dataclass(frozen=True)
class FakeFont:
    """Monospace stand-in: every character is char_width wide."""
    char_width: float = 10.0
    height: float = 20.0


@dataclass
class RecordedAnimation:
    from_x: float
    to_x: float
    duration: float
    delay: float
    on_start: object
    on_complete: object


class FakeBackend(MarqueeBackend):
    """Records animations and queues posted callbacks so tests drive the event loop."""

    def __init__(self):
        self.x = 0.0
        self.animations: list[RecordedAnimation] = []
        self.posted: deque = deque()
        self.moves: list[float] = []
        self.labels: list[tuple] = []
        self.colors: tuple | None = None
        self.fail_next_animation = False

    def measure(self, text, font):
        return len(text) * font.char_width, font.height

    def default_font(self, container_height):
        return FakeFont(char_width=10.0, height=container_height * 0.8)

    def label_x(self):
        return self.x

    def move_label(self, x):
        self.x = x
        self.moves.append(x)

    def animate(self, from_x, to_x, duration, delay, on_start, on_complete):
        if self.fail_next_animation:
            self.fail_next_animation = False
            raise RuntimeError("animation engine unavailable")
        self.animations.append(RecordedAnimation(from_x, to_x, duration, delay, on_start, on_complete))
        on_start()

    def post(self, callback):
        self.posted.append(callback)

    def update_label(self, text, font, width, height):
        self.labels.append((text, font, width, height))

    def set_colors(self, text_color, background_color):
        self.colors = (text_color, background_color)

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def complete(self, finished: bool = True):
        """End the most recent animation, as the engine would."""
        anim = self.animations[-1]
        if finished:
            self.x = anim.to_x
        anim.on_complete(finished)

    def run_posted(self) -> int:
        """Run queued callbacks, including any they queue, and return how many ran."""
        count = 0
        while self.posted:
            self.posted.popleft()()
            count += 1
        return count


class RecordingDelegate(MarqueeDelegate):
    def __init__(self):
        self.events: list[tuple] = []

    def on_begin_scrolling(self, marquee, delay):
        self.events.append(("begin", delay))

    def on_end_scrolling(self, marquee, finished):
        self.events.append(("end", finished))


LONG_TEXT = "x" * 50   # 500 wide with the default fake font
SHORT_TEXT = "x" * 20  # 200 wide


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def delegate():
    return RecordingDelegate()


@pytest.fixture()
def marquee(backend, delegate):
    """320x44 controller showing LONG_TEXT with a recording delegate."""
    controller = MarqueeController(320, 44, backend, text=LONG_TEXT)
    controller.delegate = delegate
    return controller


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for every Qt test in the session."""
    qtwidgets = pytest.importorskip("PySide6.QtWidgets")
    app = qtwidgets.QApplication.instance() or qtwidgets.QApplication([])
    yield app
