import logging
import sys
import os
import argparse
from PySide6.QtWidgets import QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QComboBox, QPushButton, QLabel
from config.config_manager import ConfigManager
from core.marquee import MarqueeConfig, MarqueeDelegate, ScrollMode, ScrollSpeed, ScrollingNotRequired
from gui.components.scrolling_marquee import ScrollingMarquee

logger = logging.getLogger(__name__)

_MODE_LABELS = ["Best fit", "Circular", "Full exit"]
_SPEED_LABELS = ["Slow", "Medium", "Fast"]


def setup_logging(log_level):
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir = os.path.expanduser("~/.scrolling-marquee")
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "scrolling-marquee.log")
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path, mode="a"),
            logging.StreamHandler(sys.stdout)
        ]
    )


class LoggingDelegate(MarqueeDelegate):
    """Reports scroll cycle transitions to the log."""

    def on_begin_scrolling(self, marquee, delay):
        if delay > 0:
            logger.info(f"Scrolling will start in {delay:g} seconds")
        else:
            logger.info(f"Scrolling started; speed {marquee.scrollSpeed().name.lower()}")

    def on_end_scrolling(self, marquee, finished):
        logger.info(f"Scrolling {'finished' if finished else 'interrupted'}")


class DemoWindow(QMainWindow):
    """Marquee with mode/speed pickers; picker changes apply to the next cycle."""

    def __init__(self, text: str, width: int, height: int, config: MarqueeConfig):
        super().__init__()
        self.setWindowTitle("Scrolling Marquee")

        central = QWidget(self)
        layout = QVBoxLayout(central)

        self.marquee = ScrollingMarquee(width, height, config=config)
        self.marquee.delegate = LoggingDelegate()
        layout.addWidget(self.marquee)

        pickers = QHBoxLayout()
        self.mode_selector = QComboBox()
        self.mode_selector.addItems(_MODE_LABELS)
        self.mode_selector.setCurrentIndex(list(ScrollMode).index(config.mode))
        self.mode_selector.currentIndexChanged.connect(self._on_mode_changed)
        pickers.addWidget(self.mode_selector)

        self.speed_selector = QComboBox()
        self.speed_selector.addItems(_SPEED_LABELS)
        self.speed_selector.setCurrentIndex(list(ScrollSpeed).index(config.speed))
        self.speed_selector.currentIndexChanged.connect(self._on_speed_changed)
        pickers.addWidget(self.speed_selector)

        start_button = QPushButton("Start")
        start_button.clicked.connect(self.start)
        pickers.addWidget(start_button)
        stop_button = QPushButton("Stop")
        stop_button.clicked.connect(self.marquee.stopScrolling)
        pickers.addWidget(stop_button)
        layout.addLayout(pickers)

        self.status_label = QLabel()
        layout.addWidget(self.status_label)

        self.setCentralWidget(central)
        self.marquee.setText(text)

    def _on_mode_changed(self, index: int):
        self.marquee.setMode(ScrollMode.from_value(index))

    def _on_speed_changed(self, index: int):
        self.marquee.setScrollSpeed(ScrollSpeed.from_index(index))

    def start(self):
        try:
            self.marquee.startScrolling()
            self.status_label.setText("")
        except ScrollingNotRequired:
            self.status_label.setText("Text is too short to scroll.")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scrolling marquee demo.")
    parser.add_argument("--text", help="Text to scroll (default: demo.text from config)")
    parser.add_argument("--mode", choices=[m.value for m in ScrollMode], help="Scroll mode")
    parser.add_argument("--speed", choices=[s.name.lower() for s in ScrollSpeed], help="Scroll speed")
    parser.add_argument("--delay", type=float, help="Seconds to wait before each cycle")
    parser.add_argument("--auto", action="store_true", help="Start scrolling as soon as text is set")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--log-level", help="Override logging_level from config")
    return parser.parse_args(argv)


def build_marquee_config(config_manager, args) -> MarqueeConfig:
    config = MarqueeConfig.from_config(config_manager)
    if args.mode:
        config.mode = ScrollMode.from_value(args.mode)
    if args.speed:
        config.speed = ScrollSpeed.from_value(args.speed)
    if args.delay is not None:
        if args.delay < 0:
            raise ValueError(f"Scroll delay must not be negative: {args.delay}")
        config.delay = args.delay
    if args.auto:
        config.automatic_mode = True
    return config


def main(argv=None):
    args = parse_args(argv)
    config_manager = ConfigManager(args.config)
    setup_logging(args.log_level or config_manager.logging_level)

    try:
        marquee_config = build_marquee_config(config_manager, args)
    except ValueError as e:
        logger.error(f"Invalid marquee configuration: {e}")
        return 2

    app = QApplication(sys.argv[:1])
    window = DemoWindow(
        text=args.text or config_manager.get("demo.text", ""),
        width=int(config_manager.get("demo.width", 320)),
        height=int(config_manager.get("demo.height", 44)),
        config=marquee_config,
    )
    window.show()
    if not marquee_config.automatic_mode:
        window.start()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
