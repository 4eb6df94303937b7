"""TSPL Label Printer Driver with Bluetooth agent support."""

__version__ = "0.1.0"

from .bluetooth import AgentResponse, BluetoothAgent, BluetoothDevice, BluetoothPrintConnector
from .buffer import TSPLPrintBuffer
from .connectors import DummyPrintConnector, FilePrintConnector, PrintConnector
from .errors import (
    AgentError,
    AgentFailure,
    AgentProtocolError,
    ConnectorError,
    DeviceNotFoundError,
    ImageError,
    PrinterError,
    PrinterStateError,
    UnfinalizedJobWarning,
    UnsupportedPlatformError,
    ValidationError,
)
from .image import LabelImage
from .printer import PrinterConfiguration, TSPLPrinter
from .tspl import (
    Alignment,
    BarcodeType,
    BitmapMode,
    Command,
    QRCodeCorrection,
    QRCodeMode,
    SizeUnit,
)

__all__ = [
    "TSPLPrinter",
    "PrinterConfiguration",
    "TSPLPrintBuffer",
    "PrintConnector",
    "DummyPrintConnector",
    "FilePrintConnector",
    "BluetoothPrintConnector",
    "BluetoothAgent",
    "BluetoothDevice",
    "AgentResponse",
    "LabelImage",
    "Command",
    "SizeUnit",
    "Alignment",
    "BarcodeType",
    "QRCodeCorrection",
    "QRCodeMode",
    "BitmapMode",
    "PrinterError",
    "ValidationError",
    "PrinterStateError",
    "ImageError",
    "ConnectorError",
    "UnsupportedPlatformError",
    "AgentError",
    "AgentProtocolError",
    "AgentFailure",
    "DeviceNotFoundError",
    "UnfinalizedJobWarning",
]
