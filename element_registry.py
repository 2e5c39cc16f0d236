"""
Element Registry - Maps logical roles onto the live Douyin UI tree.

One detection pass probes every ElementRole and publishes an immutable
UIElementSnapshot. Readers (classifier, scheduler, interaction managers)
always see a whole snapshot: the registry swaps the reference under a lock
and never edits a published snapshot.

Detection only resolves roles by their stable locators. Falling back to
screen-relative coordinates when a role is missing is the caller's job.
"""
import logging
import time
from dataclasses import dataclass, field
from threading import Lock
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from automation_base import ElementHandle, UIProbe
from douyin_id_map import (
    ElementRole,
    TEXT_BEARING_ROLES,
    get_text_markers,
    is_text_role,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleEntry:
    """What one detection pass found for a role."""
    handle: Optional[ElementHandle] = None
    text: str = ""


@dataclass(frozen=True)
class UIElementSnapshot:
    """Immutable, timestamped result of one detection pass."""
    entries: Mapping[ElementRole, RoleEntry] = field(
        default_factory=lambda: MappingProxyType({}))
    timestamp: float = 0.0

    def has(self, role: ElementRole) -> bool:
        return role in self.entries

    def get(self, role: ElementRole) -> Optional[ElementHandle]:
        entry = self.entries.get(role)
        return entry.handle if entry else None

    def text(self, role: ElementRole) -> str:
        entry = self.entries.get(role)
        return entry.text if entry else ""

    def detected_roles(self) -> List[ElementRole]:
        return list(self.entries.keys())

    def is_empty(self) -> bool:
        return not self.entries


EMPTY_SNAPSHOT = UIElementSnapshot()


def build_snapshot(entries: Dict[ElementRole, RoleEntry], timestamp: Optional[float] = None) -> UIElementSnapshot:
    """Freeze a role dict into a snapshot."""
    return UIElementSnapshot(
        entries=MappingProxyType(dict(entries)),
        timestamp=time.time() if timestamp is None else timestamp,
    )


class ElementRegistry:
    """Owns the current UIElementSnapshot."""

    def __init__(self, clock=time.time):
        """
        Args:
            clock: Timestamp source for snapshots (injectable for tests).
        """
        self._clock = clock
        self._lock = Lock()
        self._snapshot = EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> UIElementSnapshot:
        """The most recently published snapshot."""
        with self._lock:
            return self._snapshot

    def detect(self, probe: UIProbe) -> Tuple[UIElementSnapshot, bool]:
        """Run one detection pass over every role.

        A failing probe call for one role is logged and skipped; the other
        roles are still probed. When nothing at all is found the previously
        published snapshot stays in place.

        Args:
            probe: UI query backend.

        Returns:
            (current snapshot, whether any role was detected in this pass)
        """
        entries: Dict[ElementRole, RoleEntry] = {}

        for role in ElementRole:
            try:
                entry = self._probe_role(probe, role)
            except Exception as e:
                logger.warning(f"Detection of {role.name} failed: {e}")
                continue
            if entry is not None:
                entries[role] = entry

        if not entries:
            logger.debug("Detection pass found no elements")
            return self.snapshot, False

        snapshot = build_snapshot(entries, self._clock())
        with self._lock:
            self._snapshot = snapshot
        logger.debug(f"Detected roles: {[r.name for r in entries]}")
        return snapshot, True

    def clear(self) -> None:
        """Publish an empty snapshot (mode stop, screen departure)."""
        with self._lock:
            self._snapshot = EMPTY_SNAPSHOT

    def _probe_role(self, probe: UIProbe, role: ElementRole) -> Optional[RoleEntry]:
        if is_text_role(role):
            for marker in get_text_markers(role):
                if probe.find_by_text(marker):
                    return RoleEntry()
            return None

        found = probe.find_by_role(role)
        if not found:
            return None
        handle = found[0]
        text = handle.text if role in TEXT_BEARING_ROLES else ""
        return RoleEntry(handle=handle, text=text or "")
