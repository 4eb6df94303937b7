"""
Exception hierarchy for the TSPL printer driver.

Every failure raised by this package derives from PrinterError so callers
can catch the whole family in one place.
"""

from typing import Optional


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class ValidationError(PrinterError, ValueError):
    """Argument outside its allowed range or set of values."""

    pass


class PrinterStateError(PrinterError):
    """Operation attempted in the wrong lifecycle state."""

    pass


class ImageError(PrinterError):
    """Error processing image for printing."""

    pass


class ConnectorError(PrinterError):
    """Error talking to the device through a connector."""

    pass


class UnsupportedPlatformError(ConnectorError):
    """Connector cannot be used on this host platform."""

    pass


class AgentError(ConnectorError):
    """The Bluetooth agent could not be started or exited with an error."""

    def __init__(
        self,
        message: str,
        command: str = "",
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class AgentProtocolError(ConnectorError):
    """The Bluetooth agent answered with something that is not a status envelope."""

    pass


class AgentFailure(ConnectorError):
    """The Bluetooth agent reported a well-formed failure."""

    pass


class DeviceNotFoundError(ConnectorError):
    """Requested printer is not among the discovered devices."""

    pass


class UnfinalizedJobWarning(ResourceWarning):
    """A connector was discarded while it still held an unsent job."""

    pass
