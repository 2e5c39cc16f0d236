"""Base interaction manager and shared types for feed and live automation."""
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from threading import Lock
from typing import Callable, List, Optional, Tuple

from automation_base import ElementHandle, InputDispatcher, StatsSink, UIProbe
from config import Config, InteractionSettings
from douyin_id_map import ElementRole
from element_registry import ElementRegistry, UIElementSnapshot

logger = logging.getLogger(__name__)


class InteractionMode(Enum):
    """Automation modes. At most one is active at a time."""
    NONE = auto()
    ACCOUNT_NURTURING = auto()    # Feed browsing
    LIVE_INTERACTION = auto()     # Live room


class InteractionType(Enum):
    """The action a manager is currently running (NONE = idle)."""
    NONE = auto()
    LIKE = auto()
    COMMENT = auto()
    FAVORITE = auto()
    FOLLOW = auto()
    GIFT = auto()


@dataclass
class ActionResult:
    """Outcome of one composite action.

    Attributes:
        success: Whether the action reached the point where it is counted.
        interaction: Which action was attempted.
        error: Why the action was abandoned or failed.
        duration_seconds: Time from the first sub-step to the end of cooldown.
        timestamp: ISO timestamp of the result.
    """
    success: bool
    interaction: InteractionType
    error: Optional[str] = None
    duration_seconds: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


def effective_probability(base: int, boost: int) -> int:
    """Gate threshold: base weight plus keyword boost, capped at 100."""
    return min(base + boost, 100)


class BaseInteractionManager(ABC):
    """Abstract base class for mode-specific interaction managers.

    A manager owns the "current interaction" flag for its mode. Only one
    composite action runs at a time: run_action() refuses a new action while
    the flag is set and clears it in its finally block, after the cooldown.

    Sub-step waits go through the injected `sleep` and all random draws
    through the injected `rng`, so a test can script both.
    """

    def __init__(self, registry: ElementRegistry, probe: UIProbe,
                 dispatcher: InputDispatcher, settings: InteractionSettings,
                 stats: Optional[StatsSink] = None, rng: Optional[random.Random] = None,
                 sleep: Callable[[float], None] = time.sleep, flow_logger=None):
        """
        Args:
            registry: Shared element registry (re-detected mid-sequence).
            probe: UI query backend.
            dispatcher: Synthetic input backend.
            settings: Interaction weights and timings (read live).
            stats: Receives one record() per counted action.
            rng: Random source for every draw.
            sleep: Blocking wait used for settle delays and cooldowns.
            flow_logger: Optional FlowLogger for action entries.
        """
        self.registry = registry
        self.probe = probe
        self.dispatcher = dispatcher
        self.settings = settings
        self.stats = stats
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.flow_logger = flow_logger

        self._flag_lock = Lock()
        self._current = InteractionType.NONE

    @property
    @abstractmethod
    def mode(self) -> InteractionMode:
        """Return the mode this manager acts for."""
        pass

    @property
    def current_interaction(self) -> InteractionType:
        with self._flag_lock:
            return self._current

    @property
    def is_busy(self) -> bool:
        return self.current_interaction != InteractionType.NONE

    # ==================== Action boundary ====================

    def _begin(self, kind: InteractionType) -> bool:
        with self._flag_lock:
            if self._current != InteractionType.NONE:
                return False
            self._current = kind
            return True

    def _end(self) -> None:
        with self._flag_lock:
            self._current = InteractionType.NONE

    def run_action(self, kind: InteractionType, sequence: Callable[[], bool],
                   cooldown: float = 0.0) -> ActionResult:
        """Run one composite action under the interaction flag.

        Args:
            kind: Action being run.
            sequence: Sub-steps; returns True once the action was counted.
            cooldown: Wait after the sequence before the flag is released.

        Returns:
            ActionResult. Dispatch errors are logged and reported, never raised.
        """
        if not self._begin(kind):
            logger.debug(f"{kind.name} skipped: {self.current_interaction.name} in progress")
            return ActionResult(success=False, interaction=kind, error="busy")

        started = time.monotonic()
        result = ActionResult(success=False, interaction=kind)
        try:
            result.success = bool(sequence())
            if not result.success:
                result.error = "abandoned"
            if cooldown > 0:
                self.sleep(cooldown)
        except Exception as e:
            logger.exception(f"{self.mode.name} {kind.name} failed - continuing")
            result.error = f"{type(e).__name__}: {e}"
            if self.flow_logger:
                self.flow_logger.log_error(kind.name, result.error)
        finally:
            self._end()

        result.duration_seconds = time.monotonic() - started
        if self.flow_logger:
            self.flow_logger.log_action(self.mode.name, kind.name, result.success, result.error)
        return result

    def count(self, kind: InteractionType) -> None:
        """Record a successfully dispatched action."""
        logger.info(f"[{self.mode.name}] {kind.name}")
        if self.stats is not None:
            self.stats.record(self.mode, kind)

    # ==================== Sub-step helpers ====================

    def screen_size(self) -> Tuple[int, int]:
        return self.dispatcher.screen_size()

    def tap_position(self, relative: Tuple[float, float]) -> None:
        x, y = Config.resolve(relative, self.screen_size())
        self.dispatcher.tap(x, y)

    def tap_handle(self, handle: ElementHandle) -> None:
        x, y = handle.center
        self.dispatcher.tap(x, y)

    def tap_role(self, role: ElementRole, snapshot: Optional[UIElementSnapshot] = None) -> bool:
        """Tap a role's element if the snapshot has one."""
        snapshot = snapshot or self.registry.snapshot
        handle = snapshot.get(role)
        if handle is None:
            return False
        self.tap_handle(handle)
        return True

    def tap_role_or_fallback(self, role: ElementRole, fallback: Tuple[float, float],
                             snapshot: Optional[UIElementSnapshot] = None) -> None:
        """Tap a role's element, or the relative fallback position if unresolved."""
        if not self.tap_role(role, snapshot):
            logger.debug(f"{role.name} not resolved, tapping fallback {fallback}")
            self.tap_position(fallback)

    def find_text(self, text: str,
                  predicate: Optional[Callable[[ElementHandle], bool]] = None) -> List[ElementHandle]:
        found = self.probe.find_by_text(text)
        if predicate is not None:
            found = [h for h in found if predicate(h)]
        return found

    def tap_text(self, text: str,
                 predicate: Optional[Callable[[ElementHandle], bool]] = None) -> bool:
        """Tap the first element containing `text` (optionally filtered)."""
        found = self.find_text(text, predicate)
        if not found:
            logger.info(f"'{text}' not found on screen")
            return False
        self.tap_handle(found[0])
        return True

    def redetect(self) -> UIElementSnapshot:
        """Run a fresh detection pass and return the current snapshot."""
        snapshot, _ = self.registry.detect(self.probe)
        return snapshot

    def enter_text(self, roles: List[ElementRole], text: str,
                   snapshot: UIElementSnapshot) -> bool:
        """Set text on the first resolved role among `roles`."""
        for role in roles:
            handle = snapshot.get(role)
            if handle is not None:
                self.dispatcher.set_text(handle, text)
                return True
        logger.info(f"No edit field among {[r.name for r in roles]}")
        return False
