"""
Appium UI Controller - Douyin UI probing and input over Appium.

Implements the UIProbe, InputDispatcher and ScreenCapture interfaces on one
Appium WebDriver session, so the scheduler can drive a real device.
"""
import io
import logging
from typing import List, Optional, Sequence, Tuple

from appium import webdriver
from appium.webdriver.common.appiumby import AppiumBy
from PIL import Image
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.actions import interaction
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.actions.pointer_input import PointerInput

from automation_base import (
    CaptureNotReadyError,
    ElementHandle,
    InputDispatcher,
    ScreenCapture,
    UIProbe,
)
from config import Config
from douyin_id_map import full_resource_id, get_role_ids

logger = logging.getLogger(__name__)

KEYCODE_BACK = 4


def _xpath_literal(text: str) -> str:
    """Quote text for an XPath string literal."""
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def text_xpath(text: str) -> str:
    """XPath matching elements whose text or content-desc contains `text`."""
    literal = _xpath_literal(text)
    return f"//*[contains(@text, {literal}) or contains(@content-desc, {literal})]"


class AppiumUIController(UIProbe, InputDispatcher, ScreenCapture):
    """Controls the Douyin app through an Appium WebDriver."""

    def __init__(self, driver: webdriver.Remote, package: str = Config.DOUYIN_PACKAGE):
        """
        Initialize the controller.

        Args:
            driver: Appium WebDriver instance (must already be connected).
            package: App package used to prefix short resource IDs.
        """
        self._driver = driver
        self.package = package
        self._screen_size: Optional[Tuple[int, int]] = None

    @property
    def driver(self) -> webdriver.Remote:
        """Get the underlying Appium driver."""
        return self._driver

    def _require_driver(self, what: str) -> webdriver.Remote:
        if not self._driver:
            raise RuntimeError(f"Appium driver not connected - cannot {what}")
        return self._driver

    def _to_handle(self, element) -> ElementHandle:
        rect = element.rect
        x1, y1 = int(rect['x']), int(rect['y'])
        bounds = (x1, y1, x1 + int(rect['width']), y1 + int(rect['height']))
        text = element.text or element.get_attribute('content-desc') or ""
        return ElementHandle(element=element, bounds=bounds, text=text)

    # ==================== UIProbe ====================

    def find_by_role(self, role) -> List[ElementHandle]:
        driver = self._require_driver("find elements")
        for short_id in get_role_ids(role):
            elements = driver.find_elements(AppiumBy.ID, full_resource_id(short_id, self.package))
            if elements:
                return [self._to_handle(e) for e in elements]
        return []

    def find_by_text(self, text: str) -> List[ElementHandle]:
        driver = self._require_driver("find elements")
        elements = driver.find_elements(AppiumBy.XPATH, text_xpath(text))
        return [self._to_handle(e) for e in elements]

    # ==================== InputDispatcher ====================

    def tap(self, x: int, y: int) -> None:
        """Tap at coordinates."""
        logger.debug(f"[TAP] ({x}, {y})")
        self._require_driver("tap").tap([(x, y)])

    def swipe(self, path: Sequence[Tuple[int, int]], duration_ms: int) -> None:
        """Drag one finger through every point of `path`.

        Args:
            path: At least two (x, y) points.
            duration_ms: Total gesture duration, split evenly between segments.
        """
        if len(path) < 2:
            raise ValueError("swipe path needs at least two points")
        driver = self._require_driver("swipe")

        segment_ms = max(1, duration_ms // (len(path) - 1))
        actions = ActionChains(driver)
        actions.w3c_actions = ActionBuilder(
            driver, mouse=PointerInput(interaction.POINTER_TOUCH, "touch"), duration=segment_ms)
        start_x, start_y = path[0]
        actions.w3c_actions.pointer_action.move_to_location(start_x, start_y)
        actions.w3c_actions.pointer_action.pointer_down()
        for x, y in path[1:]:
            actions.w3c_actions.pointer_action.move_to_location(x, y)
        actions.w3c_actions.pointer_action.pointer_up()
        actions.perform()
        logger.debug(f"[SWIPE] {path[0]} -> {path[-1]} ({duration_ms}ms)")

    def set_text(self, handle: ElementHandle, text: str) -> None:
        """Replace the text of an edit field (supports Unicode)."""
        element = handle.element
        if element is None:
            raise ValueError("handle has no element to type into")
        element.clear()
        element.send_keys(text)
        logger.debug(f"[TEXT] {len(text)} chars")

    def navigate_back(self) -> None:
        """Press the back button."""
        self._require_driver("press back").press_keycode(KEYCODE_BACK)

    def screen_size(self) -> Tuple[int, int]:
        if self._screen_size is None:
            size = self._require_driver("read window size").get_window_size()
            self._screen_size = (int(size['width']), int(size['height']))
        return self._screen_size

    # ==================== ScreenCapture ====================

    def capture_frame(self) -> Image.Image:
        if not self._driver:
            raise CaptureNotReadyError("Appium driver not connected")
        try:
            png = self._driver.get_screenshot_as_png()
        except WebDriverException as e:
            raise CaptureNotReadyError(f"Screenshot failed: {e}") from e
        image = Image.open(io.BytesIO(png))
        image.load()
        return image
