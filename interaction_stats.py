"""
Interaction Stats - Per-mode session counters and a periodic reporter.

Counters are bumped only from the dispatch path (one call per counted
action) and read by a reporter thread on its own cadence, so every update
and read goes through one lock and readers get copies.
"""
import logging
import threading
from dataclasses import dataclass, asdict, replace
from typing import Callable, Dict, Optional

from automation_base import StatsSink
from interactions import InteractionMode, InteractionType

logger = logging.getLogger(__name__)

# InteractionType -> InteractionStats field
_COUNTER_FIELDS = {
    InteractionType.LIKE: 'like',
    InteractionType.COMMENT: 'comment',
    InteractionType.FAVORITE: 'favorite',
    InteractionType.FOLLOW: 'follow',
    InteractionType.GIFT: 'gift',
}


@dataclass
class InteractionStats:
    """Counters for one mode. `total` counts actions, not videos."""
    like: int = 0
    comment: int = 0
    favorite: int = 0
    gift: int = 0
    follow: int = 0
    total: int = 0
    videos_viewed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def summary(self) -> str:
        return (f"like={self.like} comment={self.comment} favorite={self.favorite} "
                f"gift={self.gift} follow={self.follow} total={self.total} "
                f"videos={self.videos_viewed}")


class InteractionStatsAggregator(StatsSink):
    """Thread-safe per-mode stats."""

    MODES = (InteractionMode.ACCOUNT_NURTURING, InteractionMode.LIVE_INTERACTION)

    def __init__(self):
        self._lock = threading.Lock()
        self._stats: Dict[InteractionMode, InteractionStats] = {
            mode: InteractionStats() for mode in self.MODES
        }

    def _check_mode(self, mode: InteractionMode) -> None:
        if mode not in self._stats:
            raise ValueError(f"No stats for mode {mode}")

    def record(self, mode: InteractionMode, interaction: InteractionType) -> None:
        """Count one dispatched action for `mode`."""
        self._check_mode(mode)
        name = _COUNTER_FIELDS.get(interaction)
        if name is None:
            raise ValueError(f"Not a countable interaction: {interaction}")
        with self._lock:
            stats = self._stats[mode]
            setattr(stats, name, getattr(stats, name) + 1)
            stats.total += 1

    def record_video(self, mode: InteractionMode) -> None:
        self._check_mode(mode)
        with self._lock:
            self._stats[mode].videos_viewed += 1

    def get(self, mode: InteractionMode) -> InteractionStats:
        """Copy of the counters for `mode`."""
        self._check_mode(mode)
        with self._lock:
            return replace(self._stats[mode])

    def reset(self, mode: Optional[InteractionMode] = None) -> None:
        """Zero one mode's counters, or all of them."""
        with self._lock:
            if mode is None:
                for m in self._stats:
                    self._stats[m] = InteractionStats()
            else:
                self._check_mode(mode)
                self._stats[mode] = InteractionStats()
        logger.info(f"Stats reset: {mode.name if mode else 'all modes'}")

    def snapshot(self) -> Dict[InteractionMode, InteractionStats]:
        with self._lock:
            return {m: replace(s) for m, s in self._stats.items()}


class StatsReporter:
    """Background thread that reports stats every `interval` seconds.

    Usage:
        reporter = StatsReporter(aggregator, interval=60)
        reporter.start()
        ...
        reporter.stop()
    """

    def __init__(self, aggregator: InteractionStatsAggregator, interval: float = 60.0,
                 callback: Optional[Callable[[Dict[InteractionMode, InteractionStats]], None]] = None):
        """
        Args:
            aggregator: Stats source.
            interval: Seconds between reports.
            callback: Receives each report; defaults to logging it.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.aggregator = aggregator
        self.interval = interval
        self.callback = callback or self.log_report
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def log_report(report: Dict[InteractionMode, InteractionStats]) -> None:
        for mode, stats in report.items():
            logger.info(f"[STATS] {mode.name}: {stats.summary()}")

    def report_once(self) -> None:
        self.callback(self.aggregator.snapshot())

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.report_once()
            except Exception:
                logger.exception("Stats report failed - continuing")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="stats-reporter", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
