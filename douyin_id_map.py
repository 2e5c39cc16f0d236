"""
Douyin ID Map - Role to Locator Abstraction Layer

Douyin's Android app uses obfuscated resource IDs (e3t, d0d, afz) that change
between builds. The rest of the code never names those IDs: it asks for a
logical ElementRole and this module says how to find it.

This module provides:
- ElementRole: the stable logical names of the affordances we care about
- Resource-ID locators per role (short IDs, package prefix added on lookup)
- Text markers for presence roles and screen classification

Usage:
    from douyin_id_map import ElementRole, get_role_ids, full_resource_id

    ids = get_role_ids(ElementRole.LIKE_BUTTON)       # ['e3t']
    rid = full_resource_id(ids[0])                    # 'com.ss.android.ugc.aweme:id/e3t'
"""

from enum import Enum, auto
from typing import List, Dict

from config import Config


class ElementRole(Enum):
    """Logical UI affordances, independent of their transient on-screen IDs."""
    # Feed video
    LIKE_BUTTON = auto()
    COMMENT_BUTTON = auto()
    FAVORITE_BUTTON = auto()
    SHARE_BUTTON = auto()
    AUTHOR_AVATAR = auto()
    VIDEO_DESCRIPTION = auto()
    FOLLOW_BUTTON = auto()
    COMMENT_EDIT_FIELD = auto()

    # Live room
    LIVE_LIKE_BUTTON = auto()
    LIVE_COMMENT_BUTTON = auto()
    LIVE_COMMENT_EDIT_FIELD = auto()
    LIVE_GIFT_BUTTON = auto()
    LIVE_FOLLOW_BUTTON = auto()
    LIVE_VIEWER_COUNT = auto()
    LIVE_TITLE = auto()

    # Presence flags (found by text, carry no usable element)
    COMMENT_AREA_PRESENT = auto()
    LIVE_ROOM_PRESENT = auto()


# =============================================================================
# Resource-ID Locators
# =============================================================================

# Short IDs; the live comment box reuses the live comment button's ID
ROLE_IDS: Dict[ElementRole, List[str]] = {
    ElementRole.LIKE_BUTTON: ["e3t"],
    ElementRole.COMMENT_BUTTON: ["d0d"],
    ElementRole.FAVORITE_BUTTON: ["afz"],
    ElementRole.SHARE_BUTTON: ["b19"],
    ElementRole.AUTHOR_AVATAR: ["bcu"],
    ElementRole.VIDEO_DESCRIPTION: ["at6"],
    ElementRole.FOLLOW_BUTTON: ["aga"],
    ElementRole.COMMENT_EDIT_FIELD: ["b9l"],

    ElementRole.LIVE_LIKE_BUTTON: ["f2a"],
    ElementRole.LIVE_COMMENT_BUTTON: ["a1_"],
    ElementRole.LIVE_COMMENT_EDIT_FIELD: ["a1_"],
    ElementRole.LIVE_GIFT_BUTTON: ["afy"],
    ElementRole.LIVE_FOLLOW_BUTTON: ["age"],
    ElementRole.LIVE_VIEWER_COUNT: ["e5u"],
    ElementRole.LIVE_TITLE: ["title"],
}

# Presence roles are detected by on-screen text
ROLE_TEXT_MARKERS: Dict[ElementRole, List[str]] = {
    ElementRole.COMMENT_AREA_PRESENT: ["写评论..."],
    ElementRole.LIVE_ROOM_PRESENT: ["直播间"],
}

# Roles whose element text is kept in the snapshot
TEXT_BEARING_ROLES = frozenset({
    ElementRole.VIDEO_DESCRIPTION,
    ElementRole.LIVE_VIEWER_COUNT,
    ElementRole.LIVE_TITLE,
})


# =============================================================================
# Text Patterns (screen classification and composite actions)
# =============================================================================

FEED_MARKERS = ["视频", "推荐", "首页"]
LIVE_MARKERS = ["直播中", "观看人数", "礼物"]
COMMENT_INDICATOR = "评论"
COMMENT_PLACEHOLDER = "写评论..."
PROFILE_MARKERS = ["关注", "粉丝", "获赞"]

SEND_TEXT = "发送"
FOLLOW_TEXT = "关注"

# "Ten thousand" suffix used in viewer counts ("1.2万")
TEN_THOUSAND_SUFFIX = "万"


# =============================================================================
# Helper Functions
# =============================================================================

def full_resource_id(short_id: str, package: str = Config.DOUYIN_PACKAGE) -> str:
    """Build full resource ID from short name. e.g. 'e3t' -> 'com.ss.android.ugc.aweme:id/e3t'"""
    if ':id/' in short_id:
        return short_id
    return f"{package}:id/{short_id}"


def get_role_ids(role: ElementRole) -> List[str]:
    """
    Get the known short resource IDs for a role.

    Returns:
        List of short IDs; empty for presence roles.
    """
    return list(ROLE_IDS.get(role, []))


def get_text_markers(role: ElementRole) -> List[str]:
    """Get the text markers for a presence role (empty for ID roles)."""
    return list(ROLE_TEXT_MARKERS.get(role, []))


def is_text_role(role: ElementRole) -> bool:
    """True if the role is located by on-screen text rather than resource ID."""
    return role in ROLE_TEXT_MARKERS
