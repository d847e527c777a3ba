"""Tests for the Qt ScrollingMarquee widget, run on the offscreen platform."""
import time

import pytest
import yaml

pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtGui import QColor, QFont
from PySide6.QtTest import QTest

from config.config_manager import ConfigManager
from core.marquee import MarqueeConfig, ScrollMode, ScrollSpeed, ScrollingNotRequired
from gui.components.scrolling_marquee import ScrollingMarquee

LONG_TEXT = "This is a test of the scrolling marquee custom control. How do I look?"
SHORT_TEXT = "Hi"


def _wait_until(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        QTest.qWait(20)
    return True


def _small_font():
    font = QFont()
    font.setPixelSize(12)
    return font


@pytest.fixture()
def marquee(qapp):
    m = ScrollingMarquee(60, 20, text=LONG_TEXT, font=_small_font())
    if not m.controller.scroll_required:
        pytest.skip("no usable fonts on this platform")
    ended = []
    m.scrollingEnded.connect(ended.append)
    m.ended = ended
    yield m
    m.stopScrolling()
    m.hide()
    m.deleteLater()


class TestConstruction:

    def test_defaults(self, qapp):
        m = ScrollingMarquee(320, 44, text=LONG_TEXT)
        assert m.automaticMode() is False
        assert m.mode() is ScrollMode.BEST_FIT
        assert m.scrollSpeed() is ScrollSpeed.SLOW
        assert m.delay() == 0
        assert m.scrollingEnabled() is False
        assert m.scrollInProgress() is False
        assert m.textColor() == QColor("#000000")
        assert m.backgroundColor().alpha() == 0
        assert m.font().pixelSize() == int(44 * 0.8)
        assert m.text() == LONG_TEXT
        assert m.width() == 320
        assert m.height() == 44

    @pytest.mark.parametrize("width,height", [(0, 44), (320, 0)])
    def test_zero_size_rejected(self, qapp, width, height):
        with pytest.raises(ValueError):
            ScrollingMarquee(width, height)

    def test_config_font_family(self, qapp):
        m = ScrollingMarquee(320, 40, config=MarqueeConfig(font_family="Monospace"))
        assert m.font().family() == "Monospace"
        assert m.font().pixelSize() == 32


class TestColors:

    def test_text_color_roundtrip(self, qapp):
        m = ScrollingMarquee(320, 44)
        m.setTextColor(QColor("red"))
        assert m.textColor() == QColor("red")

    def test_background_color_roundtrip(self, qapp):
        m = ScrollingMarquee(320, 44)
        m.setBackgroundColor(QColor(10, 20, 30, 128))
        assert m.backgroundColor() == QColor(10, 20, 30, 128)
        m.setBackgroundColor(QColor(0, 0, 0, 0))
        assert m.backgroundColor().alpha() == 0

    def test_config_colours_with_fractional_alpha(self, qapp, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"marquee": {
            "text_color": "rgba(255, 0, 0, 0.5)",
            "background_color": "rgb(10, 20, 30)",
        }}))
        config = MarqueeConfig.from_config(ConfigManager(str(path)))
        m = ScrollingMarquee(320, 44, config=config)
        assert m.textColor() == QColor(255, 0, 0, 128)
        assert m.backgroundColor() == QColor(10, 20, 30)

    @pytest.mark.parametrize("value", ["rgba(255, 0, 0, 0.25)", "rgba(255, 0, 0, 25%)"])
    def test_string_colour_setter(self, qapp, value):
        m = ScrollingMarquee(320, 44)
        m.setTextColor(value)
        assert m.textColor() == QColor(255, 0, 0, 64)

    @pytest.mark.parametrize("field", ["text_color", "background_color"])
    def test_invalid_config_colour_rejected(self, qapp, field):
        with pytest.raises(ValueError):
            ScrollingMarquee(320, 44, config=MarqueeConfig(**{field: "not-a-colour"}))


class TestApplyConfig:

    def test_settings_take_effect(self, qapp):
        m = ScrollingMarquee(320, 44)
        m.applyConfig(MarqueeConfig(mode="full_exit", speed="fast", delay=0.5,
                                    automatic_mode=True, text_color="rgba(0, 0, 255, 0.5)"))
        assert m.mode() is ScrollMode.FULL_EXIT
        assert m.scrollSpeed() is ScrollSpeed.FAST
        assert m.delay() == 0.5
        assert m.automaticMode() is True
        assert m.textColor() == QColor(0, 0, 255, 128)
        assert m.backgroundColor().alpha() == 0

    def test_invalid_colour_leaves_settings_unchanged(self, qapp):
        m = ScrollingMarquee(320, 44)
        with pytest.raises(ValueError):
            m.applyConfig(MarqueeConfig(mode="circular", background_color="rgb(1, 2)"))
        assert m.mode() is ScrollMode.BEST_FIT


class TestScrolling:

    def test_short_text_not_required(self, qapp):
        m = ScrollingMarquee(320, 44, text=SHORT_TEXT)
        with pytest.raises(ScrollingNotRequired):
            m.startScrolling()
        assert m.scrollingEnabled() is False
        assert m.scrollInProgress() is False

    def test_start_stop_runs_to_completion(self, marquee):
        marquee.setScrollSpeed(ScrollSpeed.FAST)
        marquee.startScrolling()
        assert marquee.scrollingEnabled() is True
        assert marquee.scrollInProgress() is True

        marquee.stopScrolling()
        assert marquee.scrollingEnabled() is False
        assert _wait_until(lambda: marquee.ended)
        assert marquee.ended == [True]
        assert marquee.scrollInProgress() is False
        QTest.qWait(50)
        assert marquee.labelPosition().x() == 0

    def test_automatic_mode(self, marquee):
        marquee.setScrollSpeed(ScrollSpeed.FAST)
        marquee.setText(SHORT_TEXT)
        marquee.setAutomaticMode(True)
        marquee.setText(LONG_TEXT)
        assert marquee.scrollingEnabled() is True
        assert marquee.scrollInProgress() is True
        marquee.stopScrolling()
        assert _wait_until(lambda: marquee.ended)
        assert marquee.ended == [True]

    def test_hide_interrupts_running_cycle(self, marquee):
        began = []
        marquee.scrollingBegan.connect(began.append)
        marquee.setDelay(0.25)
        marquee.show()
        marquee.startScrolling()
        marquee.hide()
        assert marquee.scrollInProgress() is False
        assert marquee.scrollingEnabled() is True

        QTest.qWait(50)
        assert began == [0.25]
        assert marquee.ended == [False]
        QTest.qWait(100)
        assert marquee.scrollInProgress() is False

    def test_delegate_receives_widget(self, marquee):
        calls = []

        class _Delegate:
            def on_begin_scrolling(self, m, delay):
                calls.append(("begin", m, delay))

            def on_end_scrolling(self, m, finished):
                calls.append(("end", m, finished))

        marquee.delegate = _Delegate()
        marquee.show()
        marquee.startScrolling()
        marquee.hide()
        QTest.qWait(50)
        assert calls == [("begin", marquee, 0.0), ("end", marquee, False)]
