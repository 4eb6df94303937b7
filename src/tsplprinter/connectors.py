"""
Print connectors: the byte sinks a TSPLPrinter writes to.

Every connector exposes the same small capability set (write, read,
finalize, abort) so the printer never cares what the physical medium is.
Connectors are also context managers: leaving the block finalizes the job,
or aborts it when the block raised.
"""

import abc
import logging
from pathlib import Path
from typing import Optional, Union

from .errors import ConnectorError, PrinterStateError

logger = logging.getLogger(__name__)


class PrintConnector(metaclass=abc.ABCMeta):
    """Abstract base class for all connector implementations."""

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        """True once the connector has been finalized or aborted."""
        raise NotImplementedError

    @abc.abstractmethod
    def write(self, data: bytes) -> None:
        """Queue or send data to the printer.

        Raises:
            PrinterStateError: If the connector is already closed
        """
        raise NotImplementedError

    @abc.abstractmethod
    def read(self, length: int) -> Optional[bytes]:
        """Read up to length bytes, or None if reading is not supported."""
        raise NotImplementedError

    @abc.abstractmethod
    def finalize(self):
        """Finish the job and release the connector.

        Raises:
            PrinterStateError: If the connector is already closed
        """
        raise NotImplementedError

    @abc.abstractmethod
    def abort(self) -> None:
        """Release the connector without completing the job."""
        raise NotImplementedError

    def _check_open(self, operation: str):
        if self.closed:
            raise PrinterStateError(
                f"Cannot {operation}: {type(self).__name__} has already been finalized."
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self.closed:
            if exc_type is None:
                self.finalize()
            else:
                self.abort()
        return False


class DummyPrintConnector(PrintConnector):
    """Collects everything written in memory. Useful for tests and previews."""

    def __init__(self):
        self._chunks: list[bytes] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> None:
        self._check_open("write")
        self._chunks.append(bytes(data))

    def read(self, length: int) -> Optional[bytes]:
        return None

    def finalize(self) -> None:
        self._check_open("finalize")
        self._closed = True

    def abort(self) -> None:
        if self._chunks:
            logger.warning("Discarding %d unsent bytes", len(self.get_data()))
        self._chunks.clear()
        self._closed = True

    def get_data(self) -> bytes:
        """Everything written so far, in order."""
        return b"".join(self._chunks)


class FilePrintConnector(PrintConnector):
    """Writes straight to a file or device node (e.g. /dev/usb/lp0)."""

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)
        try:
            self._file = open(self.filename, "wb+")
        except OSError as e:
            raise ConnectorError(f"Cannot open {self.filename} for writing: {e}") from e

    @property
    def closed(self) -> bool:
        return self._file.closed

    def write(self, data: bytes) -> None:
        self._check_open("write")
        self._file.write(data)

    def read(self, length: int) -> Optional[bytes]:
        self._check_open("read")
        data = self._file.read(length)
        return data or None

    def finalize(self) -> None:
        self._check_open("finalize")
        self._file.close()
        logger.debug("Closed %s", self.filename)

    def abort(self) -> None:
        if not self._file.closed:
            logger.warning("Job for %s aborted; output may be incomplete", self.filename)
            self._file.close()
