"""
TSPL (TSC Printer Language) Protocol Grammar.

TSPL is a text-based command language used by TSC and compatible label printers.
Commands are ASCII strings terminated with CRLF (\\r\\n): a keyword, a single
space, then the arguments separated by commas.

Reference: TSPL/TSPL2 Programming Manual
"""

from enum import Enum, IntEnum
from typing import Union

CRLF = b"\r\n"
SEPARATOR = ","
SPACE = " "

# Dots per millimetre for the common print heads
DPI200 = 8
DPI300 = 12


class Command(Enum):
    """Command keywords understood by the printer."""

    # Configuration
    SIZE = "SIZE"
    GAP = "GAP"
    SPEED = "SPEED"
    REFERENCE = "REFERENCE"
    DIRECTION = "DIRECTION"
    OFFSET = "OFFSET"
    SET_TEAR = "SET TEAR"

    # Drawing and actions
    TEXT = "TEXT"
    BARCODE = "BARCODE"
    QRCODE = "QRCODE"
    BITMAP = "BITMAP"
    PRINT = "PRINT"
    SOUND = "SOUND"
    BEEP = "BEEP"
    CUT = "CUT"

    # Single word
    CLS = "CLS"
    EOP = "EOP"
    HOME = "HOME"


class SizeUnit(str, Enum):
    """Measurement system for SIZE, GAP and OFFSET."""

    MILLIMETER = "mm"
    # 200 DPI: 1 mm = 8 dots, 300 DPI: 1 mm = 12 dots
    DOT = "dot"
    # English system has no unit suffix
    INCH = ""


class Alignment(IntEnum):
    """Text and barcode alignment."""

    LEFT = 1
    CENTER = 2
    RIGHT = 3


class BarcodeType(str, Enum):
    """1D barcode symbologies."""

    TYPE_25 = "25"
    TYPE_39 = "39"
    TYPE_128 = "128"


class QRCodeCorrection(str, Enum):
    """QR error correction recovery level."""

    L = "L"  # 7%
    M = "M"  # 15%
    Q = "Q"  # 25%
    H = "H"  # 30%


class QRCodeMode(str, Enum):
    """QR encoding mode."""

    AUTO = "A"
    MANUAL = "M"


class BitmapMode(IntEnum):
    """Bitmap overlay modes."""

    OVERWRITE = 0  # Replace existing content
    OR = 1         # OR with existing content
    XOR = 2        # XOR with existing content


ROTATIONS = (0, 90, 180, 270)
SIZE_UNITS = tuple(SizeUnit)
ALIGNMENTS = tuple(Alignment)
QR_CORRECTIONS = tuple(QRCodeCorrection)
QR_MODES = tuple(QRCodeMode)
BITMAP_MODES = tuple(BitmapMode)


def token(value: Union[Enum, float, int, str]) -> str:
    """
    Render one argument as it appears on the wire.

    Enum members become their plain value and integral floats lose the
    trailing ".0", so 35.0 is sent as "35" and 38.1 as "38.1".
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def escape(text: str) -> str:
    """Backslash-escape backslashes and double quotes."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def quote(text) -> str:
    """Wrap text in double quotes, escaping embedded quotes."""
    return '"' + escape(token(text)) + '"'


def measure(value: float, unit: Union[SizeUnit, str]) -> str:
    """Render a measurement such as "35 mm" (inch values carry no suffix)."""
    unit = token(unit)
    if not unit:
        return token(value)
    return token(value) + SPACE + unit


def command_header(command: Command, *args) -> str:
    """Keyword followed by comma-separated arguments, without line break."""
    if not args:
        return command.value
    return command.value + SPACE + SEPARATOR.join(token(arg) for arg in args)


def command_line(command: Command, *args) -> bytes:
    """Build a complete, CRLF-terminated command line."""
    return command_header(command, *args).encode("utf-8") + CRLF
