"""
DouyinScreenDetector - Deterministic screen state detection for Douyin.

Rules are checked in priority order against the CURRENT probe (not a stored
snapshot), first match wins:
    FEED -> LIVE -> COMMENT -> PROFILE

When no rule matches, the previous state is kept. A transient detection gap
never drops the state back to UNKNOWN once a state has been established.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from automation_base import UIProbe
from douyin_id_map import (
    ElementRole,
    FEED_MARKERS,
    LIVE_MARKERS,
    COMMENT_INDICATOR,
    COMMENT_PLACEHOLDER,
    PROFILE_MARKERS,
)

logger = logging.getLogger(__name__)


class ScreenState(Enum):
    """Logical Douyin views."""
    UNKNOWN = auto()
    FEED = auto()       # Video feed (recommend / home)
    PROFILE = auto()    # A user's profile page
    LIVE = auto()       # Live room
    COMMENT = auto()    # Comment sheet open


@dataclass
class ClassificationResult:
    """Result of one classification pass.

    `changed` is the dwell-timer reset signal for the scheduler.
    """
    state: ScreenState
    previous_state: ScreenState
    changed: bool
    matched_rule: str
    key_markers: List[str] = field(default_factory=list)


class DouyinScreenDetector:
    """Classifies the foreground Douyin screen from UI probe results."""

    def __init__(self, debounce_passes: int = 1):
        """
        Args:
            debounce_passes: Consecutive passes a new state must win before
                             it replaces the current one (1 = immediately).
        """
        if debounce_passes < 1:
            raise ValueError("debounce_passes must be >= 1")
        self.debounce_passes = debounce_passes
        self._state = ScreenState.UNKNOWN
        self._pending_state: Optional[ScreenState] = None
        self._pending_count = 0

        # Detection rules in priority order (first match wins)
        self.rules = [
            ('FEED', self._detect_feed),
            ('LIVE', self._detect_live),
            ('COMMENT', self._detect_comment),
            ('PROFILE', self._detect_profile),
        ]

    @property
    def state(self) -> ScreenState:
        return self._state

    def reset(self) -> None:
        """Forget the sticky state."""
        self._state = ScreenState.UNKNOWN
        self._pending_state = None
        self._pending_count = 0

    def classify(self, probe: UIProbe, snapshot=None) -> ClassificationResult:
        """Resolve the current screen state.

        Args:
            probe: UI query backend for the current pass.
            snapshot: Optional UIElementSnapshot from the SAME pass; its
                      LIVE_ROOM_PRESENT flag counts as a live marker.

        Returns:
            ClassificationResult; state is sticky when no rule matches.
        """
        previous = self._state
        matched_rule = 'none'
        markers: List[str] = []
        candidate = None

        for rule_name, detector_fn in self.rules:
            try:
                found = detector_fn(probe, snapshot)
            except Exception as e:
                logger.warning(f"Screen rule {rule_name} failed: {e}")
                continue
            if found:
                candidate = ScreenState[rule_name]
                matched_rule = rule_name
                markers = found
                break

        if candidate is None:
            # Sticky: keep whatever we had
            self._pending_state = None
            self._pending_count = 0
        elif candidate == self._state:
            self._pending_state = None
            self._pending_count = 0
        else:
            if candidate == self._pending_state:
                self._pending_count += 1
            else:
                self._pending_state = candidate
                self._pending_count = 1
            if self._pending_count >= self.debounce_passes:
                self._state = candidate
                self._pending_state = None
                self._pending_count = 0

        changed = self._state != previous
        if changed:
            logger.info(f"Screen changed: {previous.name} -> {self._state.name} ({markers})")

        return ClassificationResult(
            state=self._state,
            previous_state=previous,
            changed=changed,
            matched_rule=matched_rule,
            key_markers=markers,
        )

    # ==================== Helpers ====================

    def _present(self, probe: UIProbe, text: str) -> bool:
        return bool(probe.find_by_text(text))

    def _any_present(self, probe: UIProbe, markers: List[str]) -> List[str]:
        """Return the first marker found, as a one-item list (empty if none)."""
        for marker in markers:
            if self._present(probe, marker):
                return [marker]
        return []

    # ==================== Rules ====================

    def _detect_feed(self, probe, snapshot) -> List[str]:
        """Video feed: any of video / recommend / home."""
        return self._any_present(probe, FEED_MARKERS)

    def _detect_live(self, probe, snapshot) -> List[str]:
        """Live room: live-now / viewer count / gift, or the live-room flag."""
        found = self._any_present(probe, LIVE_MARKERS)
        if found:
            return found
        if snapshot is not None and snapshot.has(ElementRole.LIVE_ROOM_PRESENT):
            return ['live_room_flag']
        return []

    def _detect_comment(self, probe, snapshot) -> List[str]:
        """Comment sheet: comment indicator AND input placeholder."""
        if self._present(probe, COMMENT_INDICATOR) and self._present(probe, COMMENT_PLACEHOLDER):
            return [COMMENT_INDICATOR, COMMENT_PLACEHOLDER]
        return []

    def _detect_profile(self, probe, snapshot) -> List[str]:
        """Profile: following, follower and like-count labels all present."""
        for marker in PROFILE_MARKERS:
            if not self._present(probe, marker):
                return []
        return list(PROFILE_MARKERS)
