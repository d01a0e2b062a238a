"""Preview facade for hosts that render ImageMagick-only formats.

Initialisation runs on a background thread so the host stays responsive. At
most one preview request is active at a time: opening a new item cancels the
previous request, whose result is then discarded when its conversion returns.
"""

import threading
from pathlib import Path
from typing import Callable, Optional, Union

from PIL import Image

from magick_bridge.core.constants import INIT_THREAD_NAME
from magick_bridge.core.exceptions import MagickBridgeError
from magick_bridge.core.items import SourceItem
from magick_bridge.services.bridge_service import MagickBridgeService
from magick_bridge.utils.logging import get_logger

logger = get_logger(__name__)

LocatePrompt = Callable[[], Optional[Union[str, Path]]]


class MagickPreviewProvider:
    """Routes preview requests for ImageMagick-readable items to the bridge.

    Args:
        service: The bridge service doing the actual work
        locate_prompt: Called when auto-detection fails; returns a path the
            user picked by hand, or None if they declined
    """

    def __init__(
        self,
        service: MagickBridgeService,
        locate_prompt: Optional[LocatePrompt] = None,
    ) -> None:
        self.service = service
        self.locate_prompt = locate_prompt
        self._last_error: Optional[str] = None
        self._request_lock = threading.Lock()
        self._current_request: Optional[threading.Event] = None
        self._init_thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        """Kick off initialisation in the background and return its thread."""
        if self._init_thread is not None:
            return self._init_thread
        thread = threading.Thread(
            target=self._initialise, name=INIT_THREAD_NAME, daemon=True
        )
        self._init_thread = thread
        thread.start()
        return thread

    def _initialise(self) -> None:
        self.service.init()
        if self.service.is_ready or self.locate_prompt is None:
            return

        chosen = self.locate_prompt()
        if chosen is None:
            logger.info("No ImageMagick path chosen; previews stay disabled")
            return
        try:
            self.service.init_with_user_selected_path(chosen)
        except MagickBridgeError as e:
            self._last_error = e.message
            logger.warning(
                "User-selected ImageMagick path rejected",
                path=str(chosen),
                error_code=e.error_code,
                reason=e.message,
            )

    @property
    def last_error(self) -> Optional[str]:
        """Most recent initialisation problem, if any."""
        return self._last_error or self.service.init_error

    def matches(self, item: SourceItem) -> bool:
        """True if ImageMagick can read ``item``; never touches the file."""
        return item.extension.lower() in self.service.get_supported_extensions()

    def open(
        self, item: SourceItem, cancelled: Optional[threading.Event] = None
    ) -> Optional[Image.Image]:
        """Convert ``item`` for display.

        Returns None when ``cancelled`` was set while the conversion ran. The
        conversion itself is not interrupted; it finishes or times out first.
        """
        if cancelled is None:
            cancelled = threading.Event()
        with self._request_lock:
            if self._current_request is not None:
                self._current_request.set()
            self._current_request = cancelled

        try:
            image = self.service.convert_to_standard_raster(item)
        finally:
            with self._request_lock:
                if self._current_request is cancelled:
                    self._current_request = None

        if cancelled.is_set():
            logger.debug("Discarding preview of cancelled request", item=item.name)
            image.close()
            return None
        return image

    def close(self) -> None:
        """Cancel the active preview request, if any."""
        with self._request_lock:
            if self._current_request is not None:
                self._current_request.set()
                self._current_request = None
