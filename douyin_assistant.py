"""
Douyin Assistant - Feed nurturing and live-room interaction on one device.

Usage:
    python douyin_assistant.py --device emulator-5554 --mode nurturing --duration 30
    python douyin_assistant.py --device 192.168.1.20:5555 --mode live --settings settings.json

Modes:
- nurturing: watch the feed, like/comment/favorite/follow by weighted
  chance (biased by keywords in the video description), swipe on
- live: stay in the current live room and like/comment/gift/follow at
  random intervals

Weights, timings, comment pools and keywords come from the JSON settings
file (see config.InteractionSettings). A missing file means defaults.
"""
import argparse
import logging
import os
import sys
import time

from appium import webdriver
from appium.options.android import UiAutomator2Options

from appium_ui_controller import AppiumUIController
from config import Config, ConfigurationError, InteractionSettings
from flow_logger import FlowLogger
from interaction_scheduler import InteractionScheduler, UIEventPoller
from interaction_stats import InteractionStatsAggregator, StatsReporter
from interactions import InteractionMode

logger = logging.getLogger("douyin_assistant")

MODES = {
    'nurturing': InteractionMode.ACCOUNT_NURTURING,
    'live': InteractionMode.LIVE_INTERACTION,
}


def setup_logging(log_file: str = None, verbose: bool = False) -> None:
    """Console logging, plus a file handler when log_file is given."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        fh = logging.FileHandler(log_file, encoding='utf-8')
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        logging.getLogger().addHandler(fh)


def connect(device: str, appium_url: str) -> webdriver.Remote:
    """Open an Appium session attached to the running Douyin app."""
    options = UiAutomator2Options()
    options.platform_name = "Android"
    options.automation_name = "UiAutomator2"
    options.device_name = device
    options.udid = device
    options.app_package = Config.DOUYIN_PACKAGE
    options.app_activity = Config.DOUYIN_ACTIVITY
    options.no_reset = True
    options.new_command_timeout = Config.APPIUM_NEW_COMMAND_TIMEOUT

    return webdriver.Remote(command_executor=appium_url, options=options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Douyin Interaction Assistant')
    parser.add_argument('--device', required=True, help='ADB serial / udid of the device')
    parser.add_argument('--mode', choices=sorted(MODES), default='nurturing',
                        help='Interaction mode')
    parser.add_argument('--settings', default=Config.SETTINGS_FILE,
                        help='JSON settings file (weights, timings, keywords)')
    parser.add_argument('--appium-url', default=Config.DEFAULT_APPIUM_URL,
                        help='Appium server URL')
    parser.add_argument('--duration', type=float, default=30,
                        help='Session duration in minutes (0 = until Ctrl+C)')
    parser.add_argument('--poll-interval', type=float, default=1.0,
                        help='Seconds between UI detection passes')
    parser.add_argument('--stats-interval', type=float, default=60.0,
                        help='Seconds between stats reports')
    parser.add_argument('--log-file', default=None, help='Also log to this file')
    parser.add_argument('--flow-log-dir', default=None,
                        help='Write a JSONL flow log of screens and actions to this directory')
    parser.add_argument('--ocr', action='store_true',
                        help='Read video descriptions with Claude when the UI tree has none')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    return parser


def run_session(scheduler: InteractionScheduler, mode: InteractionMode, duration_minutes: float,
                poll_interval: float, stats_interval: float) -> None:
    """Start pollers and the mode, block until duration elapses or Ctrl+C."""
    poller = UIEventPoller(scheduler, poll_interval=poll_interval)
    reporter = StatsReporter(scheduler.stats, interval=stats_interval)

    poller.start()
    reporter.start()
    scheduler.start_mode(mode)

    deadline = time.monotonic() + duration_minutes * 60 if duration_minutes > 0 else None
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        scheduler.stop_all(timeout=Config.LIVE_STOP_TIMEOUT)
        poller.stop()
        reporter.stop()


def main():
    args = build_parser().parse_args()
    setup_logging(args.log_file, args.verbose)

    try:
        settings = InteractionSettings.from_file(args.settings)
        scheduler_kwargs = {'settings': settings}
    except ConfigurationError as e:
        logger.error(f"Bad settings: {e}")
        sys.exit(2)

    mode = MODES[args.mode]
    logger.info(f"[DEVICE] {args.device} mode={mode.name}")

    driver = connect(args.device, args.appium_url)
    logger.info("Connected!")

    flow_logger = None
    try:
        controller = AppiumUIController(driver)

        if args.ocr:
            from vision import ClaudeTextRecognizer, ScreenTextReader
            scheduler_kwargs['text_reader'] = ScreenTextReader(controller, ClaudeTextRecognizer())

        if args.flow_log_dir:
            flow_logger = FlowLogger(args.mode, log_dir=args.flow_log_dir)
            scheduler_kwargs['flow_logger'] = flow_logger

        scheduler = InteractionScheduler(
            controller, controller, stats=InteractionStatsAggregator(), **scheduler_kwargs)
        run_session(scheduler, mode, args.duration, args.poll_interval, args.stats_interval)

        stats = scheduler.get_stats(mode)
        print(f"\n=== Session Complete ===")
        print(f"Mode: {mode.name}")
        print(f"Stats: {stats.summary()}")
        if flow_logger:
            flow_logger.log_session_end(stats.to_dict())
    finally:
        if flow_logger:
            flow_logger.close()
        driver.quit()


if __name__ == '__main__':
    main()
