"""
Interaction Scheduler - Mode control and the feed decision loop.

Two mutually exclusive modes:
- ACCOUNT_NURTURING: on each UI event while the feed is shown, after the
  minimum dwell time, maybe run the per-action gates and maybe swipe on.
- LIVE_INTERACTION: the live manager's own timer thread.

The UIEventPoller is the UI-event source: it calls handle_ui_event() on a
fixed cadence from a daemon thread.

Usage:
    scheduler = InteractionScheduler(controller, controller, settings)
    poller = UIEventPoller(scheduler, poll_interval=1.0)
    poller.start()
    scheduler.start_mode(InteractionMode.ACCOUNT_NURTURING)
"""
import logging
import random
import threading
import time
from typing import Any, Callable, Optional

from automation_base import InputDispatcher, UIProbe
from config import Config, InteractionSettings
from douyin_screen_detector import ClassificationResult, DouyinScreenDetector, ScreenState
from element_registry import ElementRegistry, UIElementSnapshot
from interaction_stats import InteractionStats, InteractionStatsAggregator
from interactions import InteractionMode, get_interaction_manager
from interactions.live_interaction import LiveInteractionLevel, detect_live_interaction_level
from keyword_store import KeywordStore

logger = logging.getLogger(__name__)


class InteractionScheduler:
    """Owns the active mode and routes UI events to the right manager."""

    def __init__(self, probe: UIProbe, dispatcher: InputDispatcher,
                 settings: Optional[InteractionSettings] = None,
                 stats: Optional[InteractionStatsAggregator] = None,
                 keyword_store: Optional[KeywordStore] = None,
                 registry: Optional[ElementRegistry] = None,
                 classifier: Optional[DouyinScreenDetector] = None,
                 text_reader=None, flow_logger=None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            probe: UI query backend.
            dispatcher: Synthetic input backend.
            settings: Weights and timings (defaults if None).
            stats: Stats sink; a fresh aggregator if None.
            keyword_store: Keywords; built from settings.keywords if None.
            registry: Element registry shared with the managers.
            classifier: Screen classifier.
            text_reader: Optional ScreenTextReader for OCR fallback.
            flow_logger: Optional FlowLogger.
            rng: Random source shared by the scheduler and both managers.
            clock: Monotonic time source for dwell tracking.
            sleep: Blocking wait for settle delays.
        """
        self.probe = probe
        self.dispatcher = dispatcher
        self.settings = settings or InteractionSettings()
        self.stats = stats or InteractionStatsAggregator()
        self.keywords = keyword_store or KeywordStore(self.settings.keywords)
        self.registry = registry or ElementRegistry()
        self.classifier = classifier or DouyinScreenDetector()
        self.flow_logger = flow_logger
        self.rng = rng or random.Random()
        self.clock = clock

        common = dict(stats=self.stats, rng=self.rng, sleep=sleep, flow_logger=flow_logger)
        args = (self.registry, probe, dispatcher, self.settings)
        self.video_manager = get_interaction_manager(
            InteractionMode.ACCOUNT_NURTURING, *args,
            keyword_store=self.keywords, text_reader=text_reader, **common)
        self.live_manager = get_interaction_manager(InteractionMode.LIVE_INTERACTION, *args, **common)

        self._mode_lock = threading.RLock()
        self._mode = InteractionMode.NONE
        self._screen_entered_at = clock()

    # ==================== Control surface ====================

    @property
    def active_mode(self) -> InteractionMode:
        with self._mode_lock:
            return self._mode

    def start_mode(self, mode: InteractionMode) -> None:
        """Start `mode`, stopping the other mode first."""
        if mode == InteractionMode.NONE:
            self.stop_all()
            return
        with self._mode_lock:
            if self._mode == mode:
                return
            if self._mode != InteractionMode.NONE:
                self.stop_mode(self._mode)

            self._mode = mode
            self.reset_dwell()
            if mode == InteractionMode.LIVE_INTERACTION:
                self.live_manager.start()
            else:
                self.video_manager.reset_video()
                self.video_manager.resume()
        logger.info(f"Mode started: {mode.name}")

    def stop_mode(self, mode: InteractionMode, timeout: Optional[float] = None) -> None:
        """Stop `mode` if it is the active one.

        An action already in flight finishes; nothing after it is started.

        Args:
            mode: Mode to stop.
            timeout: Seconds to wait for the live thread to exit (None = don't wait).
        """
        with self._mode_lock:
            if self._mode != mode or mode == InteractionMode.NONE:
                return
            if mode == InteractionMode.LIVE_INTERACTION:
                self.live_manager.stop(timeout=timeout)
            else:
                self.video_manager.cancel()
                self.video_manager.reset_video()
            self._mode = InteractionMode.NONE
            self.registry.clear()
        logger.info(f"Mode stopped: {mode.name}")

    def stop_all(self, timeout: Optional[float] = None) -> None:
        self.stop_mode(self.active_mode, timeout=timeout)

    def get_stats(self, mode: InteractionMode) -> InteractionStats:
        return self.stats.get(mode)

    def reset_stats(self, mode: Optional[InteractionMode] = None) -> None:
        self.stats.reset(mode)

    def set_probability(self, name: str, value: Any) -> int:
        """Validate and set a 0-100 weight (raises ConfigurationError)."""
        value = self.settings.set_probability(name, value)
        logger.info(f"{name} = {value}")
        return value

    def get_probability(self, name: str) -> int:
        return self.settings.get_probability(name)

    def live_interaction_level(self) -> LiveInteractionLevel:
        return detect_live_interaction_level(self.registry.snapshot)

    # ==================== Event handling ====================

    def reset_dwell(self) -> None:
        self._screen_entered_at = self.clock()

    @property
    def watch_seconds(self) -> float:
        return self.clock() - self._screen_entered_at

    def handle_ui_event(self) -> ClassificationResult:
        """One detection + classification pass, then the feed policy."""
        snapshot, _ = self.registry.detect(self.probe)
        result = self.classifier.classify(self.probe, snapshot)

        if result.changed:
            self.reset_dwell()
            if self.flow_logger:
                self.flow_logger.log_screen_change(
                    result.previous_state.name, result.state.name, result.key_markers)

        if self.active_mode == InteractionMode.ACCOUNT_NURTURING:
            if result.state == ScreenState.FEED:
                self._handle_feed(snapshot)
            else:
                logger.debug(f"Nurturing: ignoring {result.state.name} screen")
        return result

    def _handle_feed(self, snapshot: UIElementSnapshot) -> None:
        watch = self.watch_seconds
        if watch < self.settings.min_watch_seconds:
            return

        if self.rng.random() < Config.INTERACT_CHANCE:
            self.video_manager.perform_random_interactions(snapshot)

        # Mode may have been stopped while the gates ran
        if self.active_mode != InteractionMode.ACCOUNT_NURTURING:
            return
        if watch >= self.settings.max_watch_seconds or self.rng.random() < Config.EARLY_SWIPE_CHANCE:
            self.next_video()

    def next_video(self) -> bool:
        """Swipe up to the next video. Returns False if the swipe failed."""
        try:
            width, height = self.dispatcher.screen_size()
            x = width // 2
            path = [
                (x, int(height * Config.SWIPE_START_RATIO)),
                (x, int(height * Config.SWIPE_END_RATIO)),
            ]
            self.dispatcher.swipe(path, Config.SWIPE_DURATION_MS)
        except Exception:
            logger.exception("Swipe to next video failed - continuing")
            return False

        self.stats.record_video(InteractionMode.ACCOUNT_NURTURING)
        self.reset_dwell()
        self.video_manager.reset_video()
        logger.debug("Next video")
        return True


class UIEventPoller:
    """Daemon thread calling scheduler.handle_ui_event() every poll_interval."""

    def __init__(self, scheduler: InteractionScheduler, poll_interval: float = 1.0):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.scheduler = scheduler
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.scheduler.handle_ui_event()
            except Exception:
                logger.exception("UI event handling failed - continuing")
            if self._stop_event.wait(self.poll_interval):
                break

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="ui-event-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
