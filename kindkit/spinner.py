"""A small terminal loading spinner that doubles as a writer."""

from __future__ import annotations

import itertools
import sys
import threading
from typing import Any, Optional

SPINNER_FRAMES = (
    "⠈⠁",
    "⠈⠑",
    "⠈⠱",
    "⠈⡱",
    "⢀⡱",
    "⢄⡱",
    "⢄⡱",
    "⢆⡱",
    "⢎⡱",
    "⢎⡰",
    "⢎⡠",
    "⢎⡀",
    "⢎⠁",
    "⠎⠁",
    "⠊⠁",
)

FRAME_INTERVAL = 0.1


class Spinner:
    """A loading spinner drawn on one line of a terminal writer.

    Writing through the spinner interrupts the current frame so that the
    written text starts at the beginning of the line.
    """

    def __init__(self, writer: Any, platform: Optional[str] = None) -> None:
        if platform is None:
            platform = sys.platform
        # toggling line wrapping behaves poorly on Windows terminals
        if platform.startswith("win"):
            self._frame_format = "\r%s%s%s"
        else:
            self._frame_format = "\x1b[?7l\r%s%s%s\x1b[?7h"
        self._writer = writer
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._prefix = ""
        self._suffix = ""

    @property
    def writer(self) -> Any:
        """The writer frames and text are written to."""
        return self._writer

    @property
    def running(self) -> bool:
        """Whether the spinner is currently drawing frames."""
        with self._lock:
            return self._running

    def set_prefix(self, prefix: str) -> None:
        """Set the text drawn before the spinner."""
        with self._lock:
            self._prefix = prefix

    def set_suffix(self, suffix: str) -> None:
        """Set the text drawn after the spinner."""
        with self._lock:
            self._suffix = suffix

    def start(self) -> None:
        """Start drawing frames in the background; does nothing if running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()

    def _spin(self) -> None:
        for frame in itertools.cycle(SPINNER_FRAMES):
            if self._stop_event.wait(FRAME_INTERVAL):
                break
            with self._lock:
                self._emit(self._frame_format % (self._prefix, frame, self._suffix))
        with self._lock:
            self._running = False

    def _emit(self, text: str) -> None:
        self._writer.write(text)
        flush = getattr(self._writer, "flush", None)
        if callable(flush):
            flush()

    def stop(self) -> None:
        """Stop drawing frames and wait until the spinner has stopped."""
        with self._lock:
            if not self._running:
                return
            self._stop_event.set()
            thread = self._thread
        if thread is not None:
            thread.join()

    def write(self, data: str) -> int:
        """Write data, first returning to the start of the line if spinning."""
        with self._lock:
            if self._running:
                self._writer.write("\r")
            self._emit(data)
        return len(data)