# core/marquee.py
"""Qt-free scrolling marquee state machine.

The controller decides whether text overflowing its container should be
animated, computes the start/end positions and duration of each scroll
cycle, and chains cycles while scrolling stays enabled. Measuring text,
moving the label and running the animation are delegated to a
``MarqueeBackend`` supplied by the host toolkit.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

# Extra travel past the computed end point so the trailing glyph clears the edge.
SCROLL_PADDING = 10.0

# Default font size as a fraction of the container height.
DEFAULT_FONT_SCALE = 0.8


class ScrollMode(Enum):
    BEST_FIT = "best_fit"    # scroll just far enough to reveal the tail
    CIRCULAR = "circular"    # enter from the right edge, exit on the left
    FULL_EXIT = "full_exit"  # start at the origin, exit on the left

    @classmethod
    def from_value(cls, value) -> "ScrollMode":
        """Accept a member, a picker index (0-2) or a config string."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"Invalid scroll mode index: {value}")
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == key or member.name.lower() == key:
                    return member
        raise ValueError(f"Invalid scroll mode: {value!r}")


class ScrollSpeed(float, Enum):
    """Scroll rate in points per second."""
    SLOW = 40.0
    MEDIUM = 80.0
    FAST = 160.0

    @classmethod
    def from_index(cls, index: int) -> "ScrollSpeed":
        if index == 1:
            return cls.MEDIUM
        if index == 2:
            return cls.FAST
        return cls.SLOW

    @classmethod
    def from_value(cls, value) -> "ScrollSpeed":
        """Accept a member, a points-per-second number or a config string."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Invalid scroll speed: {value!r}")
        try:
            return cls(float(value))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid scroll speed: {value!r}") from None


class ScrollingNotRequired(Exception):
    """The text fits inside the container, so there is nothing to scroll.

    Expected during normal use: callers should treat it as a no-op or as
    user feedback, never as a failure.
    """

    def __init__(self, label_width: float, container_width: float):
        super().__init__(
            f"Text width {label_width:g} fits container width {container_width:g}"
        )
        self.label_width = label_width
        self.container_width = container_width


@dataclass
class MarqueeConfig:
    """Caller-tunable marquee settings, loadable from the ``marquee`` config section."""
    mode: ScrollMode = ScrollMode.BEST_FIT
    speed: ScrollSpeed = ScrollSpeed.SLOW
    delay: float = 0.0
    automatic_mode: bool = False
    text_color: str = "#000000"
    background_color: str = "transparent"
    font_family: Optional[str] = None

    def __post_init__(self):
        self.mode = ScrollMode.from_value(self.mode)
        self.speed = ScrollSpeed.from_value(self.speed)
        self.delay = float(self.delay)
        if not isinstance(self.automatic_mode, bool):
            raise ValueError(f"automatic_mode must be true or false: {self.automatic_mode!r}")
        if self.delay < 0:
            raise ValueError(f"Scroll delay must not be negative: {self.delay}")

    @classmethod
    def from_config(cls, config_manager) -> "MarqueeConfig":
        defaults = cls()
        return cls(
            mode=config_manager.get("marquee.mode", defaults.mode),
            speed=config_manager.get("marquee.speed", defaults.speed),
            delay=config_manager.get("marquee.delay", defaults.delay),
            automatic_mode=config_manager.get("marquee.automatic_mode", defaults.automatic_mode),
            text_color=config_manager.get("marquee.text_color", defaults.text_color),
            background_color=config_manager.get("marquee.background_color", defaults.background_color),
            font_family=config_manager.get("marquee.font_family"),
        )


@dataclass(frozen=True)
class ScrollPlan:
    """One scroll cycle: move the label from start_x to end_x over duration seconds."""
    start_x: float
    end_x: float
    offset: float
    duration: float
    delay: float


def plan_scroll(mode: ScrollMode, speed: ScrollSpeed, label_x: float,
                label_width: float, container_width: float,
                delay: float = 0.0) -> ScrollPlan:
    """Compute the start position, travel and duration of a scroll cycle.

    A label left away from the origin by a previous cycle is snapped back
    first: to the right edge of the container in circular mode, to 0
    otherwise. Circular mode travels an extra container width when it
    starts off-screen on the right.
    """
    start_x = label_x
    if start_x != 0.0:
        start_x = container_width if mode is ScrollMode.CIRCULAR else 0.0

    if mode is ScrollMode.BEST_FIT:
        offset = (label_width - container_width) + SCROLL_PADDING
    elif mode is ScrollMode.CIRCULAR:
        offset = label_width + SCROLL_PADDING
        if start_x == container_width:
            offset += container_width
    else:
        offset = label_width + SCROLL_PADDING

    return ScrollPlan(
        start_x=start_x,
        end_x=start_x - offset,
        offset=offset,
        duration=label_width / speed.value,
        delay=delay,
    )


class MarqueeDelegate:
    """Observer notified when a scroll cycle begins and ends.

    Both hooks are notifications only; their return values are ignored.
    """

    def on_begin_scrolling(self, marquee: "MarqueeController", delay: float) -> None:
        pass

    def on_end_scrolling(self, marquee: "MarqueeController", finished: bool) -> None:
        pass


class MarqueeBackend(ABC):
    """Host toolkit services the controller depends on."""

    @abstractmethod
    def measure(self, text: str, font: Any) -> Tuple[float, float]:
        """Return the (width, height) of text rendered in font."""

    @abstractmethod
    def default_font(self, container_height: float) -> Any:
        """Font used when the caller sets none."""

    @abstractmethod
    def label_x(self) -> float:
        """Current horizontal position of the label inside the container."""

    @abstractmethod
    def move_label(self, x: float) -> None:
        """Place the label at x immediately, without animating."""

    @abstractmethod
    def animate(self, from_x: float, to_x: float, duration: float, delay: float,
                on_start: Callable[[], None],
                on_complete: Callable[[bool], None]) -> None:
        """Move the label linearly from from_x to to_x after delay seconds.

        on_start is called when the animation is dispatched. on_complete
        receives True when the animation ran to its end and False when it
        was interrupted, and must be called on the UI thread.
        """

    @abstractmethod
    def post(self, callback: Callable[[], None]) -> None:
        """Run callback on the next turn of the UI event loop."""

    def update_label(self, text: Optional[str], font: Any, width: float, height: float) -> None:
        """Present new text; hosts that draw the label themselves override this."""

    def set_colors(self, text_color: str, background_color: str) -> None:
        """Apply presentation colors; no effect on scrolling."""


class MarqueeController:
    """Scrolls a single line of text across a fixed-size container.

    ``scrolling_enabled`` records the caller's intent to keep scrolling
    across cycles; ``scroll_in_progress`` is True only while an animation
    dispatched to the backend is running.
    """

    def __init__(self, width: float, height: float, backend: MarqueeBackend,
                 font: Any = None, text: Optional[str] = None,
                 config: Optional[MarqueeConfig] = None):
        if width <= 0 or height <= 0:
            raise ValueError(
                f"Marquee container must not have zero width or height (got {width}x{height})"
            )
        self._width = float(width)
        self._height = float(height)
        self._backend = backend

        self._font = font if font is not None else backend.default_font(self._height)
        self._text: Optional[str] = None
        self._label_width = 0.0
        self._label_height = 0.0

        config = config or MarqueeConfig()
        self._mode = config.mode
        self._speed = config.speed
        self._delay = config.delay
        self._automatic_mode = config.automatic_mode
        self._text_color = config.text_color
        self._background_color = config.background_color
        self.delegate: Optional[MarqueeDelegate] = None

        self._scrolling_enabled = False
        self._scroll_in_progress = False

        self._backend.set_colors(self._text_color, self._background_color)
        if text is not None:
            # Construction never auto-starts, whatever the config says.
            self._set_label(text)
        else:
            self._backend.update_label(None, self._font, 0.0, 0.0)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def label_width(self) -> float:
        return self._label_width

    @property
    def label_height(self) -> float:
        return self._label_height

    @property
    def scroll_required(self) -> bool:
        return self._label_width > self._width

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def text(self) -> Optional[str]:
        return self._text

    @text.setter
    def text(self, value: Optional[str]):
        self._set_label(value)
        if self._automatic_mode:
            try:
                self.start()
            except ScrollingNotRequired:
                logger.debug("Automatic start skipped: text fits the container")

    @property
    def font(self) -> Any:
        return self._font

    @font.setter
    def font(self, value: Any):
        self._font = value if value is not None else self._backend.default_font(self._height)
        self._set_label(self._text)

    @property
    def mode(self) -> ScrollMode:
        return self._mode

    @mode.setter
    def mode(self, value):
        self._mode = ScrollMode.from_value(value)

    @property
    def speed(self) -> ScrollSpeed:
        return self._speed

    @speed.setter
    def speed(self, value):
        self._speed = ScrollSpeed.from_value(value)

    @property
    def delay(self) -> float:
        return self._delay

    @delay.setter
    def delay(self, value: float):
        if value < 0:
            raise ValueError(f"Scroll delay must not be negative: {value}")
        self._delay = float(value)

    @property
    def automatic_mode(self) -> bool:
        return self._automatic_mode

    @automatic_mode.setter
    def automatic_mode(self, value: bool):
        self._automatic_mode = bool(value)

    @property
    def text_color(self) -> str:
        return self._text_color

    @text_color.setter
    def text_color(self, value: str):
        self._text_color = value
        self._backend.set_colors(self._text_color, self._background_color)

    @property
    def background_color(self) -> str:
        return self._background_color

    @background_color.setter
    def background_color(self, value: str):
        self._background_color = value
        self._backend.set_colors(self._text_color, self._background_color)

    def apply_config(self, config: MarqueeConfig) -> None:
        """Copy every setting from config; takes effect from the next cycle."""
        self._mode = config.mode
        self._speed = config.speed
        self._delay = config.delay
        self._automatic_mode = config.automatic_mode
        self._text_color = config.text_color
        self._background_color = config.background_color
        self._backend.set_colors(self._text_color, self._background_color)

    # ------------------------------------------------------------------
    # Scroll state
    # ------------------------------------------------------------------

    @property
    def scrolling_enabled(self) -> bool:
        return self._scrolling_enabled

    @property
    def scroll_in_progress(self) -> bool:
        return self._scroll_in_progress

    def start(self) -> None:
        """Begin scrolling, or keep scrolling if a cycle is already running.

        Raises ScrollingNotRequired when the text fits the container.
        """
        if not self.scroll_required:
            logger.debug(
                f"Scrolling not required: label {self._label_width:g} <= container {self._width:g}"
            )
            raise ScrollingNotRequired(self._label_width, self._width)

        self._scrolling_enabled = True

        if self._scroll_in_progress:
            # Has no visible effect: the running animation repositions the label every frame.
            self._backend.move_label(0.0)
            return

        plan = plan_scroll(self._mode, self._speed, self._backend.label_x(),
                           self._label_width, self._width, self._delay)
        if plan.start_x != self._backend.label_x():
            self._backend.move_label(plan.start_x)

        self._scroll_in_progress = True
        logger.debug(
            f"Dispatching scroll cycle: {plan.start_x:g} -> {plan.end_x:g} "
            f"over {plan.duration:g}s after {plan.delay:g}s ({self._mode.value})"
        )
        try:
            self._backend.animate(plan.start_x, plan.end_x, plan.duration, plan.delay,
                                  on_start=lambda: self._on_cycle_started(plan.delay),
                                  on_complete=self._on_cycle_completed)
        except Exception:
            self._scroll_in_progress = False
            raise

    def stop(self) -> None:
        """Stop after the current cycle; the running animation is left alone."""
        self._scrolling_enabled = False

    def _on_cycle_started(self, delay: float) -> None:
        delegate = self.delegate
        if delegate is not None:
            self._backend.post(lambda: delegate.on_begin_scrolling(self, delay))

    def _on_cycle_completed(self, finished: bool) -> None:
        logger.debug(f"Scroll cycle {'finished' if finished else 'interrupted'}")
        delegate = self.delegate
        if delegate is not None:
            self._backend.post(lambda: delegate.on_end_scrolling(self, finished))

        self._scroll_in_progress = False

        if finished:
            self._backend.post(self._restart)

    def _restart(self) -> None:
        if self._scrolling_enabled:
            try:
                self.start()
            except ScrollingNotRequired:
                # Text was shortened mid-cycle; intent is kept for the next long text.
                self._backend.move_label(0.0)
        elif self._backend.label_x() != 0.0:
            self._backend.move_label(0.0)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_label(self, text: Optional[str]) -> None:
        self._text = text
        if text is None:
            self._label_width, self._label_height = 0.0, 0.0
        else:
            width, height = self._backend.measure(text, self._font)
            self._label_width, self._label_height = float(width), float(height)
        self._backend.update_label(text, self._font, self._label_width, self._label_height)
