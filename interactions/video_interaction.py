"""Feed (account nurturing) interactions: like, comment, favorite, follow.

The per-video content (description text and its keyword match) is resolved
once per video and dropped when the feed moves on.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from config import Config
from douyin_id_map import ElementRole, SEND_TEXT, FOLLOW_TEXT
from element_registry import UIElementSnapshot
from text_analyzer import (
    KeywordMatchResult,
    VideoTextInfo,
    analyze_description,
    match_keywords,
)
from .base_interaction import (
    ActionResult,
    BaseInteractionManager,
    InteractionMode,
    InteractionType,
    effective_probability,
)

logger = logging.getLogger(__name__)


@dataclass
class VideoContent:
    """What is known about the video on screen."""
    description: str
    text_info: VideoTextInfo
    match_result: KeywordMatchResult = field(default_factory=KeywordMatchResult)


class VideoInteractionManager(BaseInteractionManager):
    """Runs gated interactions on the video currently shown in the feed."""

    def __init__(self, *args, keyword_store=None, text_reader=None, **kwargs):
        """
        Args:
            keyword_store: KeywordStore supplying enabled keywords.
            text_reader: Optional ScreenTextReader for OCR when the
                         description element is missing.
        """
        super().__init__(*args, **kwargs)
        self.keyword_store = keyword_store
        self.text_reader = text_reader
        self._content: Optional[VideoContent] = None
        self._ocr_attempted = False
        self._cancel_event = threading.Event()

    @property
    def mode(self) -> InteractionMode:
        return InteractionMode.ACCOUNT_NURTURING

    def reset_video(self) -> None:
        """Forget the cached content (called after a swipe)."""
        self._content = None
        self._ocr_attempted = False

    # ==================== Cancellation ====================

    def cancel(self) -> None:
        """Stop the feed pass in progress after its current action."""
        self._cancel_event.set()

    def resume(self) -> None:
        """Allow new feed passes. A pass cancelled earlier stays cancelled."""
        if self._cancel_event.is_set():
            self._cancel_event = threading.Event()

    def load_content(self, snapshot: UIElementSnapshot) -> Optional[VideoContent]:
        """Resolve and cache the current video's description and boosts.

        The description element is looked up on every call until one is
        read. OCR is tried at most once per video.

        Returns:
            VideoContent, or None when no description could be read.
        """
        if self._content is not None:
            return self._content

        description = snapshot.text(ElementRole.VIDEO_DESCRIPTION)
        if not description and self.text_reader is not None and not self._ocr_attempted:
            self._ocr_attempted = True
            description = self.text_reader.read_bottom_text()
        if not description or not description.strip():
            logger.debug("No description for this video")
            return None

        keywords = self.keyword_store.enabled() if self.keyword_store is not None else []
        match_result = match_keywords(description, keywords)
        if match_result.has_matches() and self.keyword_store is not None:
            self.keyword_store.record_matches(match_result.matched_keywords)

        self._content = VideoContent(
            description=description,
            text_info=analyze_description(description),
            match_result=match_result,
        )
        logger.info(f"Video: {description[:40]!r} tags={self._content.text_info.hashtags} "
                    f"score={match_result.match_score}")
        return self._content

    # ==================== Decision ====================

    def gate(self, base: int, boost: int) -> bool:
        """One percentage draw against base + boost (capped at 100)."""
        return self.rng.randrange(100) < effective_probability(base, boost)

    def perform_random_interactions(self, snapshot: Optional[UIElementSnapshot] = None) -> List[ActionResult]:
        """Evaluate every action gate for the current video.

        Without content a single unweighted draw picks one action. After
        cancel() no further gate, pause or action is started.
        """
        cancel_event = self._cancel_event
        if cancel_event.is_set():
            return []

        snapshot = snapshot or self.registry.snapshot
        content = self.load_content(snapshot)

        if content is None:
            r = self.rng.random()
            if r < Config.SIMPLE_LIKE_SHARE:
                return [self.like()]
            if r < Config.SIMPLE_COMMENT_SHARE:
                return [self.comment()]
            return [self.follow()]

        boosts = content.match_result
        s = self.settings
        plan = [
            (s.like_probability, boosts.like_boost, self.like),
            (s.comment_probability, boosts.comment_boost, self.comment),
            (s.favorite_probability, boosts.like_boost // 2, self.favorite),
            (s.follow_probability, boosts.follow_boost, self.follow),
        ]

        results = []
        for base, boost, action in plan:
            if cancel_event.is_set():
                break
            if not self.gate(base, boost):
                continue
            if results:
                self.sleep(self.rng.uniform(Config.GATE_PAUSE_MIN, Config.GATE_PAUSE_MAX))
                if cancel_event.is_set():
                    break
            results.append(action())

        if cancel_event.is_set():
            logger.info(f"Feed pass cancelled after {len(results)} action(s)")
        return results

    # ==================== Actions ====================

    def like(self) -> ActionResult:
        def sequence():
            self.tap_role_or_fallback(ElementRole.LIKE_BUTTON, Config.FEED_LIKE_POS)
            self.count(InteractionType.LIKE)
            return True
        return self.run_action(InteractionType.LIKE, sequence, Config.COOLDOWN_LIKE)

    def favorite(self) -> ActionResult:
        def sequence():
            self.tap_role_or_fallback(ElementRole.FAVORITE_BUTTON, Config.FEED_FAVORITE_POS)
            self.count(InteractionType.FAVORITE)
            return True
        return self.run_action(InteractionType.FAVORITE, sequence, Config.COOLDOWN_LIKE)

    def comment(self) -> ActionResult:
        """Open comments, type a canned message, send."""
        def sequence():
            self.tap_role_or_fallback(ElementRole.COMMENT_BUTTON, Config.FEED_COMMENT_POS)
            self.sleep(Config.SETTLE_AFTER_TAP)

            snapshot = self.redetect()
            message = self.rng.choice(self.settings.feed_comments)
            if not self.enter_text([ElementRole.COMMENT_EDIT_FIELD], message, snapshot):
                return False
            self.sleep(Config.SETTLE_AFTER_TEXT)

            if not self.tap_text(SEND_TEXT):
                return False
            self.count(InteractionType.COMMENT)
            return True
        return self.run_action(InteractionType.COMMENT, sequence, Config.COOLDOWN_COMMENT)

    def follow(self) -> ActionResult:
        """Follow from the feed button, or via the author's profile."""
        def sequence():
            if self.tap_role(ElementRole.FOLLOW_BUTTON):
                self.count(InteractionType.FOLLOW)
                return True

            self.tap_role_or_fallback(ElementRole.AUTHOR_AVATAR, Config.FEED_AVATAR_POS)
            self.sleep(Config.SETTLE_AFTER_PROFILE_OPEN)

            followed = self.tap_text(FOLLOW_TEXT)
            if followed:
                self.count(InteractionType.FOLLOW)
                self.sleep(Config.SETTLE_AFTER_FOLLOW)
            # Leave the profile either way
            self.dispatcher.navigate_back()
            return followed
        return self.run_action(InteractionType.FOLLOW, sequence, Config.COOLDOWN_FOLLOW)
