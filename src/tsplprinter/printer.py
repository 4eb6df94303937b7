"""
High-Level TSPL Label Printer Interface.

TSPLPrinter turns drawing and printing calls into TSPL command lines and
hands them to a connector. Arguments are validated before anything is
written, so a rejected value never reaches the printer.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image

from .buffer import TSPLPrintBuffer
from .connectors import PrintConnector
from .errors import PrinterStateError
from .image import ImageSource, LabelImage
from .tspl import (
    ALIGNMENTS,
    BITMAP_MODES,
    CRLF,
    QR_CORRECTIONS,
    QR_MODES,
    ROTATIONS,
    SEPARATOR,
    SIZE_UNITS,
    Alignment,
    BarcodeType,
    BitmapMode,
    Command,
    QRCodeCorrection,
    QRCodeMode,
    SizeUnit,
    command_header,
    command_line,
    measure,
    quote,
)
from .validation import validate_enum, validate_range

logger = logging.getLogger(__name__)


@dataclass
class PrinterConfiguration:
    """Label setup last sent to the printer."""
    unit: Union[SizeUnit, str] = SizeUnit.MILLIMETER
    width: float = 35
    height: float = 25
    include_height: bool = False
    gap_distance: float = 5
    gap_offset: float = 0
    speed: float = 4
    direction: int = 1
    reference_x: int = 0
    reference_y: int = 0


class TSPLPrinter:
    """
    Command encoder for TSPL label printers.

    Example:
        connector = FilePrintConnector("/dev/usb/lp0")
        printer = TSPLPrinter(connector)
        printer.text("Hello", 10, 20)
        printer.qrcode("https://example.com", 10, 60)
        printer.print_label()
    """

    def __init__(self, connector: PrintConnector,
                 buffer: Optional[TSPLPrintBuffer] = None, **setup):
        """
        Attach a print buffer and send the initial label setup.

        Args:
            connector: Where command bytes are written
            buffer: Print buffer to attach (default: a new TSPLPrintBuffer)
            **setup: Keyword arguments for initialize()
        """
        self.connector = connector
        self.config = PrinterConfiguration()
        self.buffer: Optional[TSPLPrintBuffer] = None
        self._closed = False

        self.set_print_buffer(buffer if buffer is not None else TSPLPrintBuffer())
        try:
            self.initialize(**setup)
        except Exception:
            # Free the buffer so the caller can attach it elsewhere
            self.buffer.detach()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self._closed:
            if exc_type is None:
                self.close()
            else:
                self._closed = True
                self.connector.abort()
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_print_buffer(self) -> Optional[TSPLPrintBuffer]:
        return self.buffer

    def get_print_connector(self) -> PrintConnector:
        return self.connector

    def set_print_buffer(self, buffer: TSPLPrintBuffer):
        """
        Attach a different print buffer to the printer.

        Raises:
            PrinterStateError: If the buffer is already attached to a different printer
        """
        if buffer is self.buffer:
            return
        if buffer.printer is not None:
            raise PrinterStateError("This buffer is already attached to a printer.")
        if self.buffer is not None:
            self.buffer.detach()
        self.buffer = buffer
        buffer.attach(self)

    def _release_buffer(self, buffer: TSPLPrintBuffer):
        """Forget buffer after it detached itself from this printer."""
        if self.buffer is buffer:
            self.buffer = None

    def _send(self, data: bytes):
        if self._closed:
            raise PrinterStateError("Printer has been closed.")
        if self.buffer is not None and self.buffer.printer is self:
            self.buffer.flush()
        logger.debug("TX: %r", data if len(data) < 80 else data[:80] + b"...")
        self.connector.write(data)

    # ---- Setup Commands ----

    def initialize(self, unit: Union[SizeUnit, str] = SizeUnit.MILLIMETER,
                   width: float = 35, height: float = 25,
                   gap_distance: float = 5, gap_offset: float = 0,
                   speed: float = 4, reference_x: int = 0, reference_y: int = 0,
                   direction: int = 1, include_height: bool = False):
        """
        Reset the label setup. This is the only way back to defaults.

        Sends SIZE, GAP, SPEED, DIRECTION, REFERENCE and CLS, in that order.
        """
        self.config = PrinterConfiguration(include_height=include_height)
        self.set_size(width, height, unit)
        self.set_gap(gap_distance, gap_offset, unit)
        self.set_speed(speed)
        self.set_direction(direction)
        self.set_reference(reference_x, reference_y)
        self.cls()

    def set_size(self, width: float, height: float,
                 unit: Union[SizeUnit, str] = SizeUnit.MILLIMETER,
                 include_height: Optional[bool] = None):
        """
        Set label size.

        Args:
            width: Label width, 1-100
            height: Label height, 1-100
            unit: SizeUnit value
            include_height: Send the height clause too. Defaults to the
                include_height given to initialize()
        """
        validate_range(width, 1, 100, "set_size", "Width")
        validate_range(height, 1, 100, "set_size", "Height")
        validate_enum(unit, SIZE_UNITS, "set_size", "Unit")
        if include_height is None:
            include_height = self.config.include_height

        args = [measure(width, unit)]
        if include_height:
            args.append(measure(height, unit))
        self._send(command_line(Command.SIZE, *args))

        self.config.unit = unit
        self.config.width = width
        self.config.height = height
        self.config.include_height = include_height

    def set_gap(self, distance: float = 0, offset: float = 0,
                unit: Union[SizeUnit, str] = SizeUnit.MILLIMETER):
        """
        Set gap between labels. Distance 0 means continuous labels.

        Metric gaps may be 0-127 mm, other units 0-5. Offset is 0-255.
        When the sensor type is changed from black mark to gap, send GAP
        to the printer first.
        """
        validate_enum(unit, SIZE_UNITS, "set_gap", "Unit")
        if unit == SizeUnit.MILLIMETER:
            validate_range(distance, 0, 127, "set_gap", "Gap distance")
        else:
            validate_range(distance, 0, 5, "set_gap", "Gap distance")
        validate_range(offset, 0, 255, "set_gap", "Gap offset")

        self._send(command_line(Command.GAP, measure(distance, unit), measure(offset, unit)))
        self.config.gap_distance = distance
        self.config.gap_offset = offset

    def set_speed(self, speed: float):
        """Set print speed (inches per second)."""
        self._send(command_line(Command.SPEED, speed))
        self.config.speed = speed

    def set_direction(self, direction: int):
        """Set print direction (0 or 1)."""
        self._send(command_line(Command.DIRECTION, direction))
        self.config.direction = direction

    def set_reference(self, x: int, y: int):
        """Set the origin for all coordinates."""
        self._send(command_line(Command.REFERENCE, x, y))
        self.config.reference_x = x
        self.config.reference_y = y

    def set_offset(self, distance: float, unit: Union[SizeUnit, str] = SizeUnit.MILLIMETER):
        """Set extra feed after each label (e.g. to reach the tear bar)."""
        validate_enum(unit, SIZE_UNITS, "set_offset", "Unit")
        self._send(command_line(Command.OFFSET, measure(distance, unit)))

    def set_tear(self, enabled: bool = True):
        """Feed the label to the tear bar after printing."""
        self._send(command_line(Command.SET_TEAR, "ON" if enabled else "OFF"))

    # ---- Buffer Commands ----

    def cls(self):
        """Clear the image buffer."""
        self._send(command_line(Command.CLS))

    def home(self):
        """Feed label to home position."""
        self._send(command_line(Command.HOME))

    def cut(self):
        """Cut the label (printers with a cutter only)."""
        self._send(command_line(Command.CUT))

    # ---- Drawing Commands ----

    def text(self, content: str, x: int = 10, y: int = 10, font: Union[int, str] = 1,
             rotation: int = 0, x_multiplication: int = 1, y_multiplication: int = 1,
             alignment: int = Alignment.LEFT):
        """
        Draw text.

        Args:
            content: Text to print
            x, y: Position in dots
            font: Font name (e.g., 1, "2", "TSS24.BF2")
            rotation: 0, 90, 180, or 270 degrees
            x_multiplication, y_multiplication: Character scaling, 1-10
            alignment: Alignment value
        """
        validate_enum(rotation, ROTATIONS, "text", "Rotation")
        validate_range(x_multiplication, 1, 10, "text", "Horizontal multiplication")
        validate_range(y_multiplication, 1, 10, "text", "Vertical multiplication")
        validate_enum(alignment, ALIGNMENTS, "text", "Alignment")

        self._send(command_line(
            Command.TEXT, x, y, quote(font), rotation,
            x_multiplication, y_multiplication, alignment, quote(content),
        ))

    def barcode(self, content: str, x: int = 10, y: int = 10,
                code_type: Union[BarcodeType, str] = BarcodeType.TYPE_128,
                height: int = 50, human_readable: int = 0, rotation: int = 0,
                narrow: int = 1, wide: int = 1, alignment: int = Alignment.LEFT):
        """
        Draw a 1D barcode.

        Args:
            content: Barcode data
            x: X position in dots, 1-350
            y: Y position in dots, 1-10000
            code_type: Barcode type (e.g., "128", "39", "25")
            height: Bar height in dots, 1-100
            human_readable: 0=no text, 1=left, 2=center, 3=right
            rotation: 0, 90, 180, or 270 degrees
            narrow, wide: Narrow and wide bar widths, 1-10
            alignment: Alignment value
        """
        validate_range(x, 1, 350, "barcode", "X")
        validate_range(y, 1, 10000, "barcode", "Y")
        validate_range(height, 1, 100, "barcode", "Height")
        validate_enum(rotation, ROTATIONS, "barcode", "Rotation")
        validate_range(narrow, 1, 10, "barcode", "Narrow")
        validate_range(wide, 1, 10, "barcode", "Wide")
        validate_enum(alignment, ALIGNMENTS, "barcode", "Alignment")

        self._send(command_line(
            Command.BARCODE, x, y, quote(code_type), height, human_readable,
            rotation, narrow, wide, alignment, quote(content),
        ))

    def qrcode(self, content: str, x: int, y: int,
               correction: Union[QRCodeCorrection, str] = QRCodeCorrection.H,
               cell_width: int = 4, mode: Union[QRCodeMode, str] = QRCodeMode.AUTO,
               rotation: int = 0):
        """
        Draw a QR code.

        Args:
            content: QR code data
            x, y: Position in dots
            correction: Error correction level (L, M, Q, H)
            cell_width: Module width in dots, 1-10
            mode: A=auto, M=manual
            rotation: 0, 90, 180, or 270 degrees
        """
        validate_range(cell_width, 1, 10, "qrcode", "Cell width")
        validate_enum(correction, QR_CORRECTIONS, "qrcode", "Correction")
        validate_enum(mode, QR_MODES, "qrcode", "Mode")
        validate_enum(rotation, ROTATIONS, "qrcode", "Rotation")

        self._send(command_line(
            Command.QRCODE, x, y, correction, cell_width, mode, rotation, quote(content),
        ))

    def image(self, pixel_data: bytes, x: int, y: int, width_bytes: int,
              height_dots: int, mode: int = BitmapMode.OVERWRITE):
        """
        Draw raw bitmap data.

        Args:
            pixel_data: Raster bytes (1 bit per pixel, MSB first, 0 = black)
            x, y: Position in dots
            width_bytes: Width in bytes (8 pixels per byte)
            height_dots: Height in dots
            mode: Overlay mode (0=overwrite, 1=OR, 2=XOR)
        """
        validate_enum(mode, BITMAP_MODES, "image", "Mode")

        header = command_header(Command.BITMAP, x, y, width_bytes, height_dots, mode)
        self._send(header.encode("utf-8") + SEPARATOR.encode("ascii") + bytes(pixel_data) + CRLF)

    def bitmap_from_image(self, image: Union[LabelImage, ImageSource], x: int = 0,
                          y: int = 0, mode: int = BitmapMode.OVERWRITE):
        """
        Draw a picture as bitmap.

        Accepts a LabelImage, a PIL Image, a path or encoded image bytes.
        """
        if isinstance(image, Image.Image):
            image = LabelImage(image)
        elif not isinstance(image, LabelImage):
            image = LabelImage.load(image)
        self.image(image.to_raster_format(), x, y, image.width_bytes, image.height, mode)

    # ---- Action Commands ----

    def beep(self, level: int = 5, interval: int = 100):
        """
        Sound the beeper.

        Args:
            level: Sound level, 1-9
            interval: Sound interval, 1-4095
        """
        validate_range(level, 1, 9, "beep", "Level")
        validate_range(interval, 1, 4095, "beep", "Interval")
        self._send(command_line(Command.SOUND, level, interval))

    def _set_print(self, sets: int = 1, copies: int = 1):
        validate_range(sets, 1, 10, "print_label", "Number of sets")
        validate_range(copies, 1, 10, "print_label", "Number of copies")
        self._send(command_line(Command.PRINT, sets, copies))
        self._send(command_line(Command.EOP))

    def print_label(self, auto_close: bool = True, copies: int = 1):
        """
        Print the label currently in the image buffer.

        Args:
            auto_close: Also close the printer, sending the job
            copies: Number of copies, 1-10

        Returns:
            Whatever the connector's finalize() returned when auto_close
            is set (the agent's message for Bluetooth), otherwise None
        """
        self._set_print(1, copies)
        if auto_close:
            try:
                return self.close()
            finally:
                if self.buffer is not None:
                    self.buffer.detach()
        return None

    def close(self):
        """
        Close the connector. With some connectors, the job will not
        actually be sent to the printer until this is called.

        Raises:
            PrinterStateError: If the printer is already closed
        """
        if self._closed:
            raise PrinterStateError("Printer has already been closed.")
        self._closed = True
        return self.connector.finalize()
