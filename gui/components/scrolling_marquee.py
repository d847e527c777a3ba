from PySide6.QtWidgets import QWidget, QLabel
from PySide6.QtCore import Qt, QTimer, QPoint, Signal, QPropertyAnimation, QSequentialAnimationGroup, QEasingCurve
from PySide6.QtGui import QFont, QFontMetrics, QColor
from dataclasses import replace
from typing import Optional
import math
import re
import logging

from core.marquee import (
    DEFAULT_FONT_SCALE,
    MarqueeBackend,
    MarqueeConfig,
    MarqueeController,
    MarqueeDelegate,
    ScrollMode,
    ScrollSpeed,
)

logger = logging.getLogger(__name__)

_RGB_FUNCTION = re.compile(r"rgba?\((.*)\)", re.IGNORECASE)


def _css_color(color: QColor) -> str:
    """Style-sheet form of color: a name when opaque, rgba() otherwise."""
    if color.alpha() == 0:
        return "transparent"
    if color.alpha() == 255:
        return color.name()
    return f"rgba({color.red()}, {color.green()}, {color.blue()}, {color.alpha()})"


def _qcolor(value: str) -> QColor:
    """Parse a style-sheet colour: a name, #hex, rgb() or rgba().

    An rgba() alpha written as a fraction or percentage (0.5, 50%) is
    scaled to 0-255; a bare integer is taken as 0-255.
    """
    value = value.strip()
    if value == "transparent":
        return QColor(0, 0, 0, 0)
    match = _RGB_FUNCTION.fullmatch(value)
    if match is None:
        return QColor(value)
    parts = [part.strip() for part in match.group(1).split(",")]
    if len(parts) not in (3, 4):
        return QColor()
    try:
        r, g, b = (int(float(part)) for part in parts[:3])
        alpha = 255
        if len(parts) == 4:
            token = parts[3]
            if token.endswith("%"):
                alpha = round(float(token[:-1]) * 2.55)
            elif "." in token:
                alpha = round(float(token) * 255)
            else:
                alpha = int(token)
    except ValueError:
        return QColor()
    if not all(0 <= c <= 255 for c in (r, g, b, alpha)):
        return QColor()
    return QColor(r, g, b, alpha)


def _normalized_color(value: str) -> str:
    """Canonical style-sheet form of value; ValueError when Qt cannot parse it."""
    color = _qcolor(value)
    if not color.isValid():
        raise ValueError(f"Invalid colour: {value!r}")
    return _css_color(color)


def _normalized_config(config: MarqueeConfig) -> MarqueeConfig:
    return replace(config,
                   text_color=_normalized_color(config.text_color),
                   background_color=_normalized_color(config.background_color))


class QtMarqueeBackend(MarqueeBackend):
    """Runs marquee scroll cycles with Qt animations on a child QLabel.

    At most one animation group is alive at a time. It finishes naturally
    (reported as finished) or is stopped by interrupt() (reported as
    interrupted).
    """

    def __init__(self, container: QWidget, label: QLabel):
        self._container = container
        self._label = label
        self._group: Optional[QSequentialAnimationGroup] = None
        self._on_complete = None

    def measure(self, text, font):
        fm = QFontMetrics(font)
        return fm.horizontalAdvance(text), fm.height()

    def default_font(self, container_height):
        font = QFont(self._label.font())
        font.setPixelSize(max(1, int(container_height * DEFAULT_FONT_SCALE)))
        return font

    def label_x(self):
        return float(self._label.x())

    def move_label(self, x):
        self._label.move(round(x), self._label.y())

    def animate(self, from_x, to_x, duration, delay, on_start, on_complete):
        y = self._label.y()
        slide = QPropertyAnimation(self._label, b"pos")
        slide.setStartValue(QPoint(round(from_x), y))
        slide.setEndValue(QPoint(round(to_x), y))
        slide.setDuration(max(1, int(duration * 1000)))
        slide.setEasingCurve(QEasingCurve.Type.Linear)

        group = QSequentialAnimationGroup(self._container)
        if delay > 0:
            group.addPause(int(delay * 1000))
        group.addAnimation(slide)
        group.finished.connect(self._on_group_finished)

        self._group = group
        self._on_complete = on_complete
        group.start()
        on_start()

    def post(self, callback):
        QTimer.singleShot(0, callback)

    def update_label(self, text, font, width, height):
        self._label.setFont(font)
        self._label.setText(text or "")
        self._label.resize(math.ceil(width), math.ceil(height))
        y = max(0, (self._container.height() - math.ceil(height)) // 2)
        self._label.move(self._label.x(), y)

    def set_colors(self, text_color, background_color):
        self._label.setStyleSheet(f"color: {text_color}; background: {background_color};")

    def interrupt(self):
        """Stop the running cycle, if any, and report it as interrupted."""
        group, on_complete = self._take()
        if group is None:
            return
        group.stop()
        group.deleteLater()
        logger.debug("Marquee animation interrupted")
        on_complete(False)

    def _on_group_finished(self):
        group, on_complete = self._take()
        if group is None:
            return
        group.deleteLater()
        on_complete(True)

    def _take(self):
        group, on_complete = self._group, self._on_complete
        self._group = None
        self._on_complete = None
        return group, on_complete


class _SignalRelay(MarqueeDelegate):
    """Turns controller notifications into widget signals and forwards them."""

    def __init__(self, marquee: "ScrollingMarquee"):
        self._marquee = marquee

    def on_begin_scrolling(self, marquee, delay):
        self._marquee.scrollingBegan.emit(delay)
        if self._marquee.delegate is not None:
            self._marquee.delegate.on_begin_scrolling(self._marquee, delay)

    def on_end_scrolling(self, marquee, finished):
        self._marquee.scrollingEnded.emit(finished)
        if self._marquee.delegate is not None:
            self._marquee.delegate.on_end_scrolling(self._marquee, finished)


class ScrollingMarquee(QWidget):
    """A fixed-size label that scrolls its text when it overflows the width.

    Scrolling runs in cycles (see ScrollMode) and repeats until
    stopScrolling() is called. startScrolling() raises ScrollingNotRequired
    when the text fits. Hiding the widget interrupts the running cycle.
    """

    # delay in seconds before the cycle's movement starts
    scrollingBegan = Signal(float)
    # True when the cycle ran to its end, False when interrupted
    scrollingEnded = Signal(bool)

    def __init__(self, width: int, height: int, text: Optional[str] = None,
                 font: Optional[QFont] = None, config: Optional[MarqueeConfig] = None,
                 parent=None):
        super().__init__(parent)
        self.setFixedSize(max(0, width), max(0, height))

        self._label = QLabel(self)
        self._label.setTextFormat(Qt.PlainText)
        self._backend = QtMarqueeBackend(self, self._label)

        if config is not None:
            config = _normalized_config(config)

        if font is None and config is not None and config.font_family:
            font = QFont(config.font_family)
            font.setPixelSize(max(1, int(height * DEFAULT_FONT_SCALE)))

        self._controller = MarqueeController(width, height, self._backend,
                                             font=font, text=text, config=config)
        self.delegate: Optional[MarqueeDelegate] = None
        self._controller.delegate = _SignalRelay(self)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def controller(self) -> MarqueeController:
        return self._controller

    def setText(self, text: Optional[str]):
        self._controller.text = text

    def text(self) -> Optional[str]:
        return self._controller.text

    def setFont(self, font: Optional[QFont]):
        self._controller.font = font

    def font(self) -> QFont:
        return self._controller.font

    def setMode(self, mode):
        self._controller.mode = mode

    def mode(self) -> ScrollMode:
        return self._controller.mode

    def setScrollSpeed(self, speed):
        self._controller.speed = speed

    def scrollSpeed(self) -> ScrollSpeed:
        return self._controller.speed

    def setDelay(self, seconds: float):
        self._controller.delay = seconds

    def delay(self) -> float:
        return self._controller.delay

    def setAutomaticMode(self, enabled: bool):
        self._controller.automatic_mode = enabled

    def automaticMode(self) -> bool:
        return self._controller.automatic_mode

    def setTextColor(self, color):
        self._controller.text_color = _normalized_color(color) if isinstance(color, str) else _css_color(QColor(color))

    def textColor(self) -> QColor:
        return _qcolor(self._controller.text_color)

    def setBackgroundColor(self, color):
        self._controller.background_color = _normalized_color(color) if isinstance(color, str) else _css_color(QColor(color))

    def backgroundColor(self) -> QColor:
        return _qcolor(self._controller.background_color)

    def applyConfig(self, config: MarqueeConfig):
        """Apply every setting in config from the next cycle on; bad colours raise ValueError."""
        self._controller.apply_config(_normalized_config(config))

    def startScrolling(self):
        self._controller.start()

    def stopScrolling(self):
        self._controller.stop()

    def scrollingEnabled(self) -> bool:
        return self._controller.scrolling_enabled

    def scrollInProgress(self) -> bool:
        return self._controller.scroll_in_progress

    def labelPosition(self) -> QPoint:
        return self._label.pos()

    # ------------------------------------------------------------------
    # Qt overrides
    # ------------------------------------------------------------------

    def hideEvent(self, event):
        self._backend.interrupt()
        super().hideEvent(event)
