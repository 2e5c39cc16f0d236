"""
Automation Backend Base Classes.

Abstract base classes defining the collaborators the decision engine consumes.
Implementations:
    - AppiumUIController (UIProbe + InputDispatcher + ScreenCapture over Appium)
    - ClaudeTextRecognizer (TextRecognizer over the Anthropic vision API)
    - InteractionStatsAggregator (StatsSink)

The scheduler receives these at construction, so the same decision code runs
against a real device or against the fakes used in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple


class CaptureNotReadyError(Exception):
    """Screen capture session or permission is not established yet."""


@dataclass(frozen=True)
class ElementHandle:
    """Opaque reference to one on-screen UI element.

    Attributes:
        element: Backend object (Appium WebElement, or None in tests).
        bounds: (x1, y1, x2, y2) in screen pixels.
        text: Visible text or content-desc captured at probe time.
    """
    element: Any
    bounds: Tuple[int, int, int, int]
    text: str = ""

    @property
    def center(self) -> Tuple[int, int]:
        x1, y1, x2, y2 = self.bounds
        return (x1 + x2) // 2, (y1 + y2) // 2

    @property
    def top(self) -> int:
        return self.bounds[1]


class UIProbe(ABC):
    """Query primitives over the foreground app's UI tree."""

    @abstractmethod
    def find_by_role(self, role) -> List[ElementHandle]:
        """
        Find elements for a logical role by its stable resource identifiers.

        Args:
            role: ElementRole from douyin_id_map

        Returns:
            Matching elements (empty list when none)
        """
        pass

    @abstractmethod
    def find_by_text(self, text: str) -> List[ElementHandle]:
        """
        Find elements whose text or content description contains `text`.

        Returns:
            Matching elements in tree order (empty list when none)
        """
        pass


class InputDispatcher(ABC):
    """Synthetic input primitives."""

    @abstractmethod
    def tap(self, x: int, y: int) -> None:
        pass

    @abstractmethod
    def swipe(self, path: Sequence[Tuple[int, int]], duration_ms: int) -> None:
        """Drag a single pointer through `path` over `duration_ms`."""
        pass

    @abstractmethod
    def set_text(self, handle: ElementHandle, text: str) -> None:
        pass

    @abstractmethod
    def navigate_back(self) -> None:
        pass

    @abstractmethod
    def screen_size(self) -> Tuple[int, int]:
        """Return (width, height) in pixels."""
        pass


class ScreenCapture(ABC):
    """Screen pixel capture."""

    @abstractmethod
    def capture_frame(self):
        """
        Capture the current screen.

        Returns:
            PIL.Image.Image

        Raises:
            CaptureNotReadyError: If the capture session is not established
        """
        pass


class TextRecognizer(ABC):
    """Optical text recognition over a screen region."""

    @abstractmethod
    def recognize_text(self, image, region: Optional[Tuple[int, int, int, int]] = None) -> str:
        """
        Recognize text inside `region` (x1, y1, x2, y2) of `image`.

        Returns:
            Recognized text, or "" on failure
        """
        pass


class StatsSink(ABC):
    """Receives one call per successfully dispatched action."""

    @abstractmethod
    def record(self, mode, interaction) -> None:
        pass

    @abstractmethod
    def record_video(self, mode) -> None:
        """Called when the feed moves on to the next video."""
        pass
