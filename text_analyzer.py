"""
Text Analyzer - Extracts tags, mentions and keyword signal from on-screen text.

Works on whatever text the UI tree or OCR produced for the current video:
- analyze_description(): hashtags (#topic#), @mentions, cleaned text
- match_keywords(): weighted keyword matches that boost interaction odds

Pure functions, no device or network access.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

# Douyin topics are wrapped in a pair of '#' markers
HASHTAG_PATTERN = re.compile(r'#([^#]+)#')

# @user, letters/digits/underscore plus CJK ideographs
MENTION_PATTERN = re.compile(r'@([\w\u4e00-\u9fa5]+)')


class MatchType(Enum):
    """How a keyword is compared against text."""
    EXACT = 0
    FUZZY = 1   # Case-insensitive


@dataclass
class Keyword:
    """User-configured keyword that biases interaction probabilities.

    Attributes:
        id: Store-assigned identifier.
        text: Keyword text.
        match_type: EXACT or FUZZY (both use case-insensitive containment).
        boost_factor: Default additive boost for every action.
        enabled: Disabled keywords never match.
        match_count: Times this keyword matched recognized text.
        priority: Adds priority*2 to every boost and 5*priority to the score.
        category: Distinct categories add 15 each to the score.
        like_boost / comment_boost / follow_boost: Per-action overrides of
            boost_factor (None = use boost_factor).
    """
    id: int
    text: str
    match_type: MatchType = MatchType.FUZZY
    boost_factor: int = 0
    enabled: bool = True
    match_count: int = 0
    priority: int = 0
    category: str = ""
    like_boost: Optional[int] = None
    comment_boost: Optional[int] = None
    follow_boost: Optional[int] = None

    @property
    def effective_like_boost(self) -> int:
        return self.boost_factor if self.like_boost is None else self.like_boost

    @property
    def effective_comment_boost(self) -> int:
        return self.boost_factor if self.comment_boost is None else self.comment_boost

    @property
    def effective_follow_boost(self) -> int:
        return self.boost_factor if self.follow_boost is None else self.follow_boost


@dataclass
class VideoTextInfo:
    """Structured view of a video description."""
    original_text: str
    clean_text: str = ""
    hashtags: List[str] = field(default_factory=list)
    mentions: List[str] = field(default_factory=list)


@dataclass
class KeywordMatch:
    """Where a keyword first occurs in the (lower-cased) text."""
    keyword: Keyword
    start_index: int
    end_index: int


@dataclass
class KeywordMatchResult:
    """Result of matching keywords against one text."""
    matched_keywords: List[Keyword] = field(default_factory=list)
    matches: List[KeywordMatch] = field(default_factory=list)
    like_boost: int = 0
    comment_boost: int = 0
    follow_boost: int = 0
    match_score: int = 0

    def has_matches(self) -> bool:
        return bool(self.matched_keywords)


@dataclass
class AuthorInfo:
    """Author details recoverable from text."""
    username: str = ""
    description: str = ""
    follower_count: int = 0
    verified: bool = False


def _unique(items: List[str]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))


def _strip_tags(text: str) -> str:
    """Remove hashtags then mentions until nothing matches either pattern."""
    previous = None
    while previous != text:
        previous = text
        text = HASHTAG_PATTERN.sub("", text)
        text = MENTION_PATTERN.sub("", text)
    return text


def analyze_description(text: str) -> VideoTextInfo:
    """Extract hashtags and mentions from a video description.

    Args:
        text: Recognized description text.

    Returns:
        VideoTextInfo with hashtags and mentions in first-seen order and
        clean_text free of both patterns.
    """
    info = VideoTextInfo(original_text=text or "")
    if not text:
        return info

    try:
        hashtags = [m.group(1).strip() for m in HASHTAG_PATTERN.finditer(text)]
        info.hashtags = _unique([h for h in hashtags if h])

        mentions = [m.group(1).strip() for m in MENTION_PATTERN.finditer(text)]
        info.mentions = _unique([m for m in mentions if m])

        info.clean_text = _strip_tags(text).strip()
        logger.debug(f"Analyzed text: {info}")
    except Exception as e:
        logger.error(f"Error analyzing text: {e}")

    return info


def calculate_match_score(result: KeywordMatchResult) -> int:
    """Overall score: 10 per keyword, 5 per priority point, 15 per distinct category."""
    score = len(result.matched_keywords) * 10
    score += sum(k.priority for k in result.matched_keywords) * 5
    categories = {k.category for k in result.matched_keywords}
    score += len(categories) * 15
    return score


def match_keywords(text: str, keywords: List[Keyword]) -> KeywordMatchResult:
    """Match keywords against text and accumulate interaction boosts.

    Both EXACT and FUZZY keywords are matched by case-insensitive containment.

    Never raises: on an internal error the partial result gathered so far is
    returned.

    Args:
        text: Recognized text (description, OCR output).
        keywords: Candidate keywords; disabled ones are skipped.

    Returns:
        KeywordMatchResult (all zeros for blank text or no keywords).
    """
    result = KeywordMatchResult()

    if not text or not text.strip() or not keywords:
        return result

    try:
        lower_text = text.lower()

        for keyword in keywords:
            if not keyword.enabled:
                continue

            value = (keyword.text or "").lower()
            if not value.strip():
                continue

            start = lower_text.find(value)
            if start < 0:
                continue

            result.matched_keywords.append(keyword)

            base_boost = keyword.priority * 2
            result.like_boost += keyword.effective_like_boost + base_boost
            result.comment_boost += keyword.effective_comment_boost + base_boost
            result.follow_boost += keyword.effective_follow_boost + base_boost

            result.matches.append(KeywordMatch(
                keyword=keyword,
                start_index=start,
                end_index=start + len(value),
            ))
    except Exception as e:
        logger.error(f"Error matching keywords: {e}")

    try:
        result.match_score = calculate_match_score(result)
    except Exception as e:
        logger.error(f"Error scoring keyword matches: {e}")

    if result.has_matches():
        logger.debug(f"Keyword match: {[k.text for k in result.matched_keywords]} "
                     f"score={result.match_score}")
    return result


def extract_author_info(text: str) -> AuthorInfo:
    """Pull the first @username (up to the next space) out of text."""
    info = AuthorInfo()
    at_index = text.find('@') if text else -1
    if at_index >= 0:
        end_index = text.find(' ', at_index)
        if end_index > at_index:
            info.username = text[at_index + 1:end_index]
        else:
            info.username = text[at_index + 1:]
    return info
