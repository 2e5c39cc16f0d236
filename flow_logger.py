"""
Flow Logger - Captures interaction session events for later analysis.

Every screen change and action of a session is written as one JSON line so
runs can be compared (which screens were seen, which actions were counted,
which were abandoned).
"""
import os
import json
import logging
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class FlowLogger:
    """Logs interaction session events to JSONL files."""

    def __init__(self, session_name: str, log_dir: str = "flow_logs"):
        """Initialize logger for an interaction session.

        Args:
            session_name: Label for the session (device or mode name).
            log_dir: Directory to store log files.
        """
        self.session_name = session_name
        self.log_dir = log_dir
        self.session_start = datetime.now()
        self.action_count = 0
        self._lock = Lock()

        os.makedirs(log_dir, exist_ok=True)

        timestamp = self.session_start.strftime("%Y%m%d_%H%M%S")
        self.log_file = os.path.join(log_dir, f"{session_name}_{timestamp}.jsonl")

        self._file = open(self.log_file, 'a', encoding='utf-8')

        self._write_entry({
            'event': 'session_start',
            'session': session_name,
            'timestamp': self.session_start.isoformat(),
        })

    def log_screen_change(self, previous: str, current: str, markers: Optional[List[str]] = None):
        """Log a screen state transition.

        Args:
            previous: Previous ScreenState name.
            current: New ScreenState name.
            markers: Markers that decided the new state.
        """
        self._write_entry({
            'event': 'screen_change',
            'timestamp': datetime.now().isoformat(),
            'previous': previous,
            'current': current,
            'markers': markers or [],
        })

    def log_action(self, mode: str, interaction: str, success: bool, error: Optional[str] = None):
        """Log one composite action outcome."""
        with self._lock:
            self.action_count += 1
            count = self.action_count
        self._write_entry({
            'event': 'action',
            'timestamp': datetime.now().isoformat(),
            'action': count,
            'mode': mode,
            'interaction': interaction,
            'result': 'success' if success else 'failure',
            'error': error,
        })

    def log_error(self, error_type: str, error_message: str):
        """Log an error raised during an action."""
        self._write_entry({
            'event': 'error',
            'timestamp': datetime.now().isoformat(),
            'action': self.action_count,
            'error_type': error_type,
            'error_message': error_message,
        })

    def log_session_end(self, stats: Optional[Dict[str, Any]] = None):
        """Log the end of the session with final stats."""
        self._write_entry({
            'event': 'session_end',
            'timestamp': datetime.now().isoformat(),
            'total_actions': self.action_count,
            'duration_seconds': (datetime.now() - self.session_start).total_seconds(),
            'stats': stats or {},
        })

    def _write_entry(self, entry: Dict):
        """Write a log entry to the file.

        Args:
            entry: Dict to write as JSON line.
        """
        try:
            with self._lock:
                self._file.write(json.dumps(entry, ensure_ascii=False) + '\n')
                self._file.flush()
        except Exception as e:
            logger.warning(f"Flow log write failed: {e}")

    def close(self):
        """Close the log file."""
        with self._lock:
            if not self._file.closed:
                self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
