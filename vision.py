"""
Vision module - reads on-screen text with Claude when the UI tree has none.

Some Douyin builds render the video description without an accessible text
node. ScreenTextReader then crops the bottom text band of a screenshot and
asks Claude to transcribe it.
"""
import base64
import io
import logging
from typing import Optional, Tuple

import anthropic
from PIL import Image

from automation_base import CaptureNotReadyError, ScreenCapture, TextRecognizer
from config import Config

logger = logging.getLogger(__name__)

OCR_PROMPT = """Transcribe all text visible in this cropped phone screenshot.

It is the caption area of a Douyin video: a description, #hashtags# and @mentions.
Output only the text exactly as shown, on one line, with no explanation.
If there is no text, output nothing."""


def encode_image(image: Image.Image) -> str:
    """Encode a PIL image as base64 PNG"""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return base64.standard_b64encode(buffer.getvalue()).decode("utf-8")


def bottom_text_region(size: Tuple[int, int],
                       start_ratio: float = Config.BOTTOM_TEXT_START_RATIO,
                       end_ratio: float = Config.BOTTOM_TEXT_END_RATIO) -> Tuple[int, int, int, int]:
    """Full-width band between start_ratio and end_ratio of the height."""
    width, height = size
    return 0, int(height * start_ratio), width, int(height * end_ratio)


class ClaudeTextRecognizer(TextRecognizer):
    """TextRecognizer backed by the Anthropic Messages API."""

    def __init__(self, client: Optional[anthropic.Anthropic] = None,
                 model: str = Config.OCR_MODEL, max_tokens: int = 300):
        self.client = client or anthropic.Anthropic()
        self.model = model
        self.max_tokens = max_tokens

    def recognize_text(self, image, region=None) -> str:
        """
        Transcribe text inside `region` of `image`.

        Returns:
            Recognized text, or "" on any API or image error
        """
        try:
            if region is not None:
                image = image.crop(region)
            image_data = encode_image(image)

            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/png",
                                "data": image_data
                            }
                        },
                        {
                            "type": "text",
                            "text": OCR_PROMPT
                        }
                    ]
                }]
            )
        except Exception as e:
            logger.warning(f"Text recognition failed: {e}")
            return ""

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return text.strip()


class ScreenTextReader:
    """Captures the screen and recognizes the bottom caption band."""

    def __init__(self, capture: ScreenCapture, recognizer: TextRecognizer,
                 start_ratio: float = Config.BOTTOM_TEXT_START_RATIO,
                 end_ratio: float = Config.BOTTOM_TEXT_END_RATIO):
        self.capture = capture
        self.recognizer = recognizer
        self.start_ratio = start_ratio
        self.end_ratio = end_ratio

    def read_bottom_text(self) -> str:
        """Recognized caption text, or "" when capture is not available."""
        try:
            frame = self.capture.capture_frame()
        except CaptureNotReadyError as e:
            logger.debug(f"Screen capture not ready: {e}")
            return ""

        region = bottom_text_region(frame.size, self.start_ratio, self.end_ratio)
        text = self.recognizer.recognize_text(frame, region)
        if text:
            logger.debug(f"OCR text: {text[:60]!r}")
        return text
