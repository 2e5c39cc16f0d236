"""
Keyword Store - In-memory keyword list with validated CRUD.

Keywords are user configuration: they are created, edited and removed here
and nowhere else. The scheduler only reads enabled keywords and bumps their
match counters. Keywords are never deleted automatically.

Usage:
    store = KeywordStore()
    kw = store.add("猫", boost_factor=20, category="pets")
    store.update(kw.id, enabled=False)
    store.load([{"text": "美食", "boost_factor": 10}])
"""

import logging
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from config import ConfigurationError
from text_analyzer import Keyword, MatchType

logger = logging.getLogger(__name__)

# Fields a caller may change through update()
EDITABLE_FIELDS = frozenset({
    'text', 'match_type', 'boost_factor', 'enabled', 'priority', 'category',
    'like_boost', 'comment_boost', 'follow_boost',
})


def _coerce_match_type(value: Any) -> MatchType:
    """Accept a MatchType, its int value, or its name ('exact' / 'fuzzy')."""
    if isinstance(value, MatchType):
        return value
    if isinstance(value, str):
        try:
            return MatchType[value.strip().upper()]
        except KeyError:
            raise ConfigurationError(f"Unknown match type: {value!r}")
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return MatchType(value)
        except ValueError:
            raise ConfigurationError(f"Unknown match type: {value!r}")
    raise ConfigurationError(f"Unknown match type: {value!r}")


def _check_non_negative(name: str, value: Any, optional: bool = False) -> None:
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {value}")


def validate_keyword(keyword: Keyword) -> Keyword:
    """Validate a keyword, returning it with a normalized match type.

    Raises:
        ConfigurationError: On blank text or negative boosts/priority.
    """
    if not isinstance(keyword.text, str) or not keyword.text.strip():
        raise ConfigurationError("Keyword text must not be empty")
    _check_non_negative('boost_factor', keyword.boost_factor)
    _check_non_negative('priority', keyword.priority)
    for name in ('like_boost', 'comment_boost', 'follow_boost'):
        _check_non_negative(name, getattr(keyword, name), optional=True)
    if not isinstance(keyword.category, str):
        raise ConfigurationError(f"category must be a string, got {keyword.category!r}")
    return replace(
        keyword,
        text=keyword.text.strip(),
        match_type=_coerce_match_type(keyword.match_type),
        enabled=bool(keyword.enabled),
    )


def _entry_fields(entry: Any) -> Dict[str, Any]:
    if not isinstance(entry, dict) or 'text' not in entry:
        raise ConfigurationError(f"Keyword entry needs a 'text' field: {entry!r}")
    return {k: v for k, v in entry.items() if k in EDITABLE_FIELDS}


def parse_keyword_entry(entry: Any) -> Keyword:
    """Validate one settings-file keyword dict without storing it.

    Raises:
        ConfigurationError: If the entry is malformed.
    """
    return validate_keyword(Keyword(id=0, **_entry_fields(entry)))


class KeywordStore:
    """Thread-safe keyword list. Readers get copies, never live objects."""

    def __init__(self, keywords: Optional[Iterable[Dict[str, Any]]] = None):
        self._lock = Lock()
        self._keywords: Dict[int, Keyword] = {}
        self._next_id = 1
        if keywords:
            self.load(keywords)

    def add(self, text: str, match_type: Any = MatchType.FUZZY, boost_factor: int = 0,
            enabled: bool = True, priority: int = 0, category: str = "",
            like_boost: Optional[int] = None, comment_boost: Optional[int] = None,
            follow_boost: Optional[int] = None) -> Keyword:
        """Create a keyword and return a copy of it.

        Raises:
            ConfigurationError: If any field is invalid.
        """
        with self._lock:
            keyword = validate_keyword(Keyword(
                id=self._next_id,
                text=text,
                match_type=match_type,
                boost_factor=boost_factor,
                enabled=enabled,
                priority=priority,
                category=category,
                like_boost=like_boost,
                comment_boost=comment_boost,
                follow_boost=follow_boost,
            ))
            self._keywords[keyword.id] = keyword
            self._next_id += 1
            logger.info(f"Keyword added: #{keyword.id} '{keyword.text}' boost={keyword.boost_factor}")
            return replace(keyword)

    def update(self, keyword_id: int, **changes) -> Keyword:
        """Edit fields of an existing keyword.

        Raises:
            KeyError: If the keyword does not exist.
            ConfigurationError: On an unknown field or invalid value.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ConfigurationError(f"Cannot update keyword fields: {sorted(unknown)}")

        with self._lock:
            if keyword_id not in self._keywords:
                raise KeyError(f"No keyword with id {keyword_id}")
            updated = validate_keyword(replace(self._keywords[keyword_id], **changes))
            self._keywords[keyword_id] = updated
            logger.info(f"Keyword updated: #{keyword_id} {changes}")
            return replace(updated)

    def remove(self, keyword_id: int) -> bool:
        """Delete a keyword. Returns False if it did not exist."""
        with self._lock:
            removed = self._keywords.pop(keyword_id, None)
        if removed:
            logger.info(f"Keyword removed: #{keyword_id} '{removed.text}'")
        return removed is not None

    def get(self, keyword_id: int) -> Optional[Keyword]:
        with self._lock:
            keyword = self._keywords.get(keyword_id)
            return replace(keyword) if keyword else None

    def list(self) -> List[Keyword]:
        """All keywords in creation order."""
        with self._lock:
            return [replace(k) for k in self._keywords.values()]

    def enabled(self) -> List[Keyword]:
        """Enabled keywords in creation order."""
        with self._lock:
            return [replace(k) for k in self._keywords.values() if k.enabled]

    def record_matches(self, keywords: Iterable[Keyword]) -> None:
        """Increment match_count for each matched keyword still in the store."""
        with self._lock:
            for keyword in keywords:
                stored = self._keywords.get(keyword.id)
                if stored is not None:
                    self._keywords[keyword.id] = replace(stored, match_count=stored.match_count + 1)

    def load(self, entries: Iterable[Dict[str, Any]]) -> List[Keyword]:
        """
        Add keywords from plain dicts (settings file format).

        Each dict needs 'text'; other keys match add()'s arguments.

        Raises:
            ConfigurationError: If an entry is malformed. Entries before it
                                stay added.
        """
        added = []
        for entry in entries:
            added.append(self.add(**_entry_fields(entry)))
        return added

    def __len__(self) -> int:
        with self._lock:
            return len(self._keywords)
