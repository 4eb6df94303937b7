"""
Print buffer for TSPLPrinter.

A buffer is linked one-to-one with a printer and handles raw text output
that bypasses the command encoder. It remembers whether the last thing it
wrote ended a line, so the printer can make sure every command starts on
a fresh line.
"""

from typing import TYPE_CHECKING, Optional

from .errors import PrinterStateError
from .tspl import CRLF

if TYPE_CHECKING:
    from .printer import TSPLPrinter


class TSPLPrintBuffer:
    """Text output buffer attached to at most one printer at a time."""

    def __init__(self):
        self._printer: Optional["TSPLPrinter"] = None
        self._at_line_start = True

    @property
    def printer(self) -> Optional["TSPLPrinter"]:
        """The printer this buffer is attached to, if any."""
        return self._printer

    def attach(self, printer: "TSPLPrinter"):
        """
        Link this buffer to a printer.

        Raises:
            PrinterStateError: If already attached to a different printer
        """
        if self._printer is printer:
            return
        if self._printer is not None:
            raise PrinterStateError("This buffer is already attached to a printer.")
        self._printer = printer
        self._at_line_start = True

    def detach(self):
        """Unlink from the current printer (no-op when unattached).

        The printer drops its reference too, so it no longer flushes
        through this buffer.
        """
        printer = self._printer
        self._printer = None
        if printer is not None:
            printer._release_buffer(self)

    def flush(self):
        """
        Terminate any partial line written through this buffer.

        If output is already at the start of a line, this does nothing.
        """
        self._require_printer()
        if not self._at_line_start:
            self._write(CRLF)

    def write_text(self, text: str):
        """Send UTF-8 text to the printer as-is."""
        self._require_printer()
        if not text:
            return
        data = text.encode("utf-8")
        self._write(data)

    def _require_printer(self):
        if self._printer is None:
            raise PrinterStateError("Not attached to a printer.")

    def _write(self, data: bytes):
        self._printer.get_print_connector().write(data)
        self._at_line_start = data.endswith(b"\n")
