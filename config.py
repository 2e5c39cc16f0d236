"""
Centralized Configuration Module.

This is the SINGLE SOURCE OF TRUTH for timing constants, fallback tap
positions and the user-facing interaction settings.

Usage:
    from config import Config, InteractionSettings

    settings = InteractionSettings.from_file("settings.json")
    settings.set_probability("like_probability", 60)

    min_watch = Config.MIN_WATCH_SECONDS
"""

import os
import json
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any, Tuple


class ConfigurationError(ValueError):
    """Raised when a probability weight, timing or keyword is malformed."""


@dataclass(frozen=True)
class Config:
    """
    Centralized configuration constants.

    These values should NEVER be redefined in other files.
    If you need to change a value, change it HERE.
    """

    # ==================== APP ====================

    # Douyin package name (prefix of every resource ID)
    DOUYIN_PACKAGE: str = "com.ss.android.ugc.aweme"

    # Launch activity used when the CLI opens a new Appium session
    DOUYIN_ACTIVITY: str = "com.ss.android.ugc.aweme.splash.SplashActivity"

    # Project root directory
    PROJECT_ROOT: str = os.path.dirname(os.path.abspath(__file__))

    # ==================== APPIUM ====================

    DEFAULT_APPIUM_URL: str = "http://127.0.0.1:4723"
    APPIUM_NEW_COMMAND_TIMEOUT: int = 300

    # ==================== FEED BROWSING ====================

    # Minimum dwell on a video before anything happens (seconds)
    MIN_WATCH_SECONDS: float = 5.0

    # Dwell after which the next video is forced (seconds)
    MAX_WATCH_SECONDS: float = 30.0

    # Chance per UI event that the per-action gates are evaluated
    INTERACT_CHANCE: float = 0.3

    # Chance per UI event to move on early
    EARLY_SWIPE_CHANCE: float = 0.2

    # Pause between two gated actions on the same video (seconds)
    GATE_PAUSE_MIN: float = 0.5
    GATE_PAUSE_MAX: float = 2.0

    # Unweighted split used when no per-video content is available
    SIMPLE_LIKE_SHARE: float = 0.6
    SIMPLE_COMMENT_SHARE: float = 0.8

    # ==================== LIVE ROOM ====================

    LIVE_MIN_INTERVAL: float = 3.0
    LIVE_MAX_INTERVAL: float = 15.0
    LIVE_FOLLOW_CHANCE: int = 20        # Out of 100, only when no band matched
    LIVE_LIKE_BURST_MIN: int = 1
    LIVE_LIKE_BURST_MAX: int = 9
    LIVE_LIKE_BURST_GAP: float = 0.1

    # Wait for an in-flight live action when the session shuts down (seconds)
    LIVE_STOP_TIMEOUT: float = 10.0

    # Viewer thresholds for the interaction level
    LIVE_LEVEL_HIGH: int = 10000
    LIVE_LEVEL_MEDIUM: int = 1000

    # ==================== SETTLE DELAYS ====================
    # Waits between sub-steps of a composite action (seconds)

    SETTLE_AFTER_TAP: float = 1.0          # Panel / keyboard to appear
    SETTLE_AFTER_TEXT: float = 0.5         # Text to land before "send"
    SETTLE_AFTER_PROFILE_OPEN: float = 1.5
    SETTLE_AFTER_FOLLOW: float = 1.0
    SETTLE_AFTER_GIFT_SEND: float = 2.0
    SETTLE_AFTER_GIFT_DISMISS: float = 0.5

    # Time the interaction flag stays busy after a sequence ends
    COOLDOWN_LIKE: float = 1.0
    COOLDOWN_COMMENT: float = 2.0
    COOLDOWN_LIVE_COMMENT: float = 1.0
    COOLDOWN_FOLLOW: float = 2.0

    # ==================== GESTURES ====================

    SWIPE_START_RATIO: float = 0.7      # Next video: from 70% of height...
    SWIPE_END_RATIO: float = 0.3        # ...up to 30%
    SWIPE_DURATION_MS: int = 300

    # ==================== SCREEN POSITIONS ====================
    # Relative (x, y) fallbacks used when a role is not resolved

    FEED_LIKE_POS: Tuple[float, float] = (0.9, 0.5)
    FEED_COMMENT_POS: Tuple[float, float] = (0.9, 0.6)
    FEED_FAVORITE_POS: Tuple[float, float] = (0.9, 0.7)
    FEED_AVATAR_POS: Tuple[float, float] = (0.9, 0.3)

    LIVE_LIKE_POS: Tuple[float, float] = (0.9, 0.85)
    LIVE_COMMENT_POS: Tuple[float, float] = (0.5, 0.95)
    LIVE_GIFT_POS: Tuple[float, float] = (0.8, 0.95)
    LIVE_FREE_GIFT_POS: Tuple[float, float] = (0.1, 0.7)
    LIVE_GIFT_DISMISS_POS: Tuple[float, float] = (0.5, 0.3)
    LIVE_FOLLOW_MAX_TOP_RATIO: float = 0.3

    # ==================== OCR ====================

    BOTTOM_TEXT_START_RATIO: float = 0.7
    BOTTOM_TEXT_END_RATIO: float = 0.9
    OCR_MODEL: str = "claude-haiku-4-5"

    # ==================== FILES ====================

    LOGS_DIR: str = "logs"
    FLOW_LOGS_DIR: str = "flow_logs"
    SETTINGS_FILE: str = "settings.json"

    # ==================== CLASS METHODS ====================

    @classmethod
    def resolve(cls, relative: Tuple[float, float], screen_size: Tuple[int, int]) -> Tuple[int, int]:
        """Turn a relative (x, y) position into pixels for the given screen."""
        width, height = screen_size
        return int(width * relative[0]), int(height * relative[1])


# Canned feed comments (keyword independent)
FEED_COMMENTS: List[str] = [
    "不错啊",
    "学到了",
    "很好看",
    "支持一下",
    "很喜欢",
    "继续加油",
    "太棒了",
    "厉害了",
    "收藏了",
    "点赞",
]

# Canned live-room comments
LIVE_COMMENTS: List[str] = [
    "主播好漂亮",
    "真好看",
    "主播说话真好听",
    "主播玩的真不错",
    "支持主播",
    "主播笑起来真好看",
    "这个直播间氛围不错",
    "主播今天状态很好啊",
    "喜欢你的直播",
    "主播真可爱",
    "主播好有才华",
    "主播可以跟粉丝互动一下吗",
    "6666666",
    "厉害了",
    "这个真的不错",
    "主播还会开播吗",
    "主播多久开播一次",
    "很有意思",
]


PROBABILITY_FIELDS = (
    'like_probability',
    'comment_probability',
    'favorite_probability',
    'follow_probability',
    'live_like_probability',
    'live_comment_probability',
    'live_gift_probability',
)


def validate_probability(name: str, value: Any) -> int:
    """Validate a 0-100 probability weight and return it as int.

    Raises:
        ConfigurationError: If the value is not an integer in [0, 100].
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
    value = int(value)
    if not 0 <= value <= 100:
        raise ConfigurationError(f"{name} must be between 0 and 100, got {value}")
    return value


@dataclass
class InteractionSettings:
    """
    User-configured interaction weights and timings.

    Probabilities are percentages (0-100). Feed weights are evaluated as
    independent gates; live weights form cumulative bands.

    Usage:
        settings = InteractionSettings.from_file("settings.json")
        settings.set_probability("comment_probability", 15)
    """

    # Feed (account nurturing) gates
    like_probability: int = 50
    comment_probability: int = 10
    favorite_probability: int = 20
    follow_probability: int = 5

    # Live-room bands
    live_like_probability: int = 60
    live_comment_probability: int = 20
    live_gift_probability: int = 5

    # Dwell control
    min_watch_seconds: float = Config.MIN_WATCH_SECONDS
    max_watch_seconds: float = Config.MAX_WATCH_SECONDS

    # Live loop pacing
    live_min_interval: float = Config.LIVE_MIN_INTERVAL
    live_max_interval: float = Config.LIVE_MAX_INTERVAL

    # Comment pools
    feed_comments: List[str] = field(default_factory=lambda: list(FEED_COMMENTS))
    live_comments: List[str] = field(default_factory=lambda: list(LIVE_COMMENTS))

    # Raw keyword dicts, loaded into a KeywordStore by the caller
    keywords: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check every field, raising ConfigurationError on the first problem."""
        for name in PROBABILITY_FIELDS:
            setattr(self, name, validate_probability(name, getattr(self, name)))

        if self.min_watch_seconds < 0:
            raise ConfigurationError("min_watch_seconds must not be negative")
        if self.max_watch_seconds < self.min_watch_seconds:
            raise ConfigurationError("max_watch_seconds must be >= min_watch_seconds")
        if self.live_min_interval <= 0:
            raise ConfigurationError("live_min_interval must be positive")
        if self.live_max_interval < self.live_min_interval:
            raise ConfigurationError("live_max_interval must be >= live_min_interval")
        if not self.feed_comments:
            raise ConfigurationError("feed_comments must not be empty")
        if not self.live_comments:
            raise ConfigurationError("live_comments must not be empty")

        if not isinstance(self.keywords, list):
            raise ConfigurationError(f"keywords must be a list, got {type(self.keywords).__name__}")
        # Imported here: keyword_store imports this module
        from keyword_store import parse_keyword_entry
        for entry in self.keywords:
            parse_keyword_entry(entry)

    def get_probability(self, name: str) -> int:
        """Get a probability weight by field name."""
        if name not in PROBABILITY_FIELDS:
            raise ConfigurationError(f"Unknown probability setting: {name}")
        return getattr(self, name)

    def set_probability(self, name: str, value: Any) -> int:
        """Validate and store a probability weight. Returns the stored value."""
        if name not in PROBABILITY_FIELDS:
            raise ConfigurationError(f"Unknown probability setting: {name}")
        value = validate_probability(name, value)
        setattr(self, name, value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging / saving."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InteractionSettings':
        """Build settings from a plain dict, ignoring unknown keys.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings must be a JSON object, got {type(data).__name__}")
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {k: v for k, v in data.items() if k in known}
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> 'InteractionSettings':
        """
        Load settings from a JSON file.

        Args:
            path: JSON file path (default: Config.SETTINGS_FILE). A missing
                  file yields default settings.

        Returns:
            InteractionSettings instance

        Raises:
            ConfigurationError: If the file is not valid JSON or has bad values
        """
        path = path or Config.SETTINGS_FILE
        if not os.path.exists(path):
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid settings file {path}: {e}") from e

        return cls.from_dict(data)
