"""Live-room interactions on a background thread.

The loop waits a random interval, draws one number and maps it onto the
cumulative live bands (like, comment, gift). A draw past every band gets a
second, fixed-chance draw for follow.

Usage:
    manager = LiveInteractionManager(registry, probe, dispatcher, settings, stats=agg)
    manager.start()
    ...
    manager.stop()
"""
import logging
import re
import threading
from decimal import Decimal, InvalidOperation
from enum import Enum, auto
from typing import Optional

from config import Config
from douyin_id_map import ElementRole, SEND_TEXT, FOLLOW_TEXT, TEN_THOUSAND_SUFFIX
from element_registry import UIElementSnapshot
from .base_interaction import (
    ActionResult,
    BaseInteractionManager,
    InteractionMode,
    InteractionType,
)

logger = logging.getLogger(__name__)

VIEWER_COUNT_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*(' + TEN_THOUSAND_SUFFIX + r')?')


class LiveInteractionLevel(Enum):
    """How busy a live room is, from its viewer count."""
    LOW = auto()
    MEDIUM = auto()
    HIGH = auto()


def parse_viewer_count(text: str) -> int:
    """Parse a displayed viewer count.

    "1.2万" -> 12000, "12,345" -> 12345, anything unparseable -> 0.
    """
    if not text:
        return 0
    match = VIEWER_COUNT_PATTERN.search(text.replace(',', '').replace('，', ''))
    if not match:
        return 0
    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return 0
    if match.group(2):
        value *= 10000
    return int(value)


def interaction_level(count: int) -> LiveInteractionLevel:
    if count >= Config.LIVE_LEVEL_HIGH:
        return LiveInteractionLevel.HIGH
    if count >= Config.LIVE_LEVEL_MEDIUM:
        return LiveInteractionLevel.MEDIUM
    return LiveInteractionLevel.LOW


def detect_live_interaction_level(snapshot: UIElementSnapshot) -> LiveInteractionLevel:
    """Interaction level from the snapshot's viewer count (MEDIUM on error)."""
    try:
        return interaction_level(parse_viewer_count(snapshot.text(ElementRole.LIVE_VIEWER_COUNT)))
    except Exception as e:
        logger.warning(f"Could not read live viewer count: {e}")
        return LiveInteractionLevel.MEDIUM


class LiveInteractionManager(BaseInteractionManager):
    """Randomized like/comment/gift/follow loop for a live room."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._stop_event = threading.Event()
        self._stop_event.set()
        self._thread: Optional[threading.Thread] = None

    @property
    def mode(self) -> InteractionMode:
        return InteractionMode.LIVE_INTERACTION

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set()

    def start(self) -> None:
        """Start the loop thread (no-op if already running)."""
        if self.is_running:
            return
        # Fresh token per run so a stale thread never resumes
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop_event,), name="live-interaction", daemon=True)
        self._thread.start()
        logger.info("Live interaction started")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the loop. An in-flight action finishes; nothing new starts."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread() and timeout:
            thread.join(timeout=timeout)
        logger.info("Live interaction stopped")

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            delay = self.rng.uniform(self.settings.live_min_interval, self.settings.live_max_interval)
            if stop_event.wait(delay):
                break
            try:
                self.perform_random_interaction()
            except Exception:
                logger.exception("Live interaction loop error - continuing")

    # ==================== Decision ====================

    def perform_random_interaction(self) -> Optional[ActionResult]:
        """Pick one action from the cumulative bands and run it."""
        s = self.settings
        rand = self.rng.randrange(100)

        like_end = s.live_like_probability
        comment_end = like_end + s.live_comment_probability
        gift_end = comment_end + s.live_gift_probability

        if rand < like_end:
            return self.like()
        if rand < comment_end:
            return self.comment()
        if rand < gift_end:
            return self.gift()
        if self.rng.randrange(100) < Config.LIVE_FOLLOW_CHANCE:
            return self.follow()
        return None

    # ==================== Actions ====================

    def like(self) -> ActionResult:
        """Tap the like button, or burst-tap the lower right of the stream."""
        def sequence():
            if not self.tap_role(ElementRole.LIVE_LIKE_BUTTON):
                taps = self.rng.randint(Config.LIVE_LIKE_BURST_MIN, Config.LIVE_LIKE_BURST_MAX)
                for i in range(taps):
                    if i:
                        self.sleep(Config.LIVE_LIKE_BURST_GAP)
                    self.tap_position(Config.LIVE_LIKE_POS)
            self.count(InteractionType.LIKE)
            return True
        return self.run_action(InteractionType.LIKE, sequence)

    def comment(self) -> ActionResult:
        def sequence():
            self.tap_role_or_fallback(ElementRole.LIVE_COMMENT_BUTTON, Config.LIVE_COMMENT_POS)
            self.sleep(Config.SETTLE_AFTER_TAP)

            snapshot = self.redetect()
            message = self.rng.choice(self.settings.live_comments)
            roles = [ElementRole.LIVE_COMMENT_EDIT_FIELD, ElementRole.COMMENT_EDIT_FIELD]
            if not self.enter_text(roles, message, snapshot):
                return False
            self.sleep(Config.SETTLE_AFTER_TEXT)

            if not self.tap_text(SEND_TEXT):
                return False
            self.count(InteractionType.COMMENT)
            return True
        return self.run_action(InteractionType.COMMENT, sequence, Config.COOLDOWN_LIVE_COMMENT)

    def gift(self) -> ActionResult:
        """Open the gift panel, pick the free gift slot, send, dismiss."""
        def sequence():
            self.tap_role_or_fallback(ElementRole.LIVE_GIFT_BUTTON, Config.LIVE_GIFT_POS)
            self.sleep(Config.SETTLE_AFTER_TAP)

            self.tap_position(Config.LIVE_FREE_GIFT_POS)
            self.sleep(Config.SETTLE_AFTER_TEXT)

            sent = self.tap_text(SEND_TEXT)
            if sent:
                self.count(InteractionType.GIFT)
            self.sleep(Config.SETTLE_AFTER_GIFT_SEND)

            # The panel is dismissed whether or not a gift went out
            self.tap_position(Config.LIVE_GIFT_DISMISS_POS)
            self.sleep(Config.SETTLE_AFTER_GIFT_DISMISS)
            return sent
        return self.run_action(InteractionType.GIFT, sequence)

    def follow(self) -> ActionResult:
        """Follow the host via the button or a top-of-screen "关注" label."""
        def sequence():
            if not self.tap_role(ElementRole.LIVE_FOLLOW_BUTTON):
                max_top = self.screen_size()[1] * Config.LIVE_FOLLOW_MAX_TOP_RATIO
                if not self.tap_text(FOLLOW_TEXT, lambda h: h.top < max_top):
                    return False
            self.count(InteractionType.FOLLOW)
            return True
        return self.run_action(InteractionType.FOLLOW, sequence)
