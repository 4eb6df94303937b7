"""Tests for TSPLPrinter command encoding and lifecycle."""

import pytest
from PIL import Image

from tsplprinter import (
    Alignment,
    BitmapMode,
    DummyPrintConnector,
    LabelImage,
    PrinterStateError,
    SizeUnit,
    TSPLPrintBuffer,
    TSPLPrinter,
    ValidationError,
)


DEFAULT_SETUP = (
    b"SIZE 35 mm\r\n"
    b"GAP 5 mm,0 mm\r\n"
    b"SPEED 4\r\n"
    b"DIRECTION 1\r\n"
    b"REFERENCE 0,0\r\n"
    b"CLS\r\n"
)


class TestInitialize:
    """Test label setup."""

    def test_constructor_sends_default_setup(self, connector, printer):
        """Construction sends SIZE, GAP, SPEED, DIRECTION, REFERENCE, CLS."""
        assert connector.get_data() == DEFAULT_SETUP

    def test_custom_setup(self):
        """Setup arguments can be passed straight to the constructor."""
        connector = DummyPrintConnector()
        TSPLPrinter(connector, width=38.1, height=31.75, gap_distance=2, speed=3,
                    reference_x=8, reference_y=16, direction=0)
        assert connector.get_data() == (
            b"SIZE 38.1 mm\r\n"
            b"GAP 2 mm,0 mm\r\n"
            b"SPEED 3\r\n"
            b"DIRECTION 0\r\n"
            b"REFERENCE 8,16\r\n"
            b"CLS\r\n"
        )

    def test_initialize_resets_configuration(self, printer):
        """initialize() is the reset path for the stored configuration."""
        printer.set_gap(10, 2)
        printer.initialize()
        assert printer.config.gap_distance == 5
        assert printer.config.gap_offset == 0
        assert printer.config.width == 35

    def test_include_height(self, emitted, printer):
        """The height clause is only sent when asked for."""
        printer.initialize(width=40, height=30, include_height=True)
        assert emitted().startswith(b"SIZE 40 mm,30 mm\r\n")
        assert printer.config.include_height is True

    def test_invalid_setup_sends_nothing(self):
        """A rejected width never reaches the connector."""
        connector = DummyPrintConnector()
        with pytest.raises(ValidationError):
            TSPLPrinter(connector, width=0)
        assert connector.get_data() == b""


class TestSetSize:
    """Test SIZE command."""

    def test_width_only_by_default(self, emitted, printer):
        printer.set_size(50, 30)
        assert emitted() == b"SIZE 50 mm\r\n"

    def test_explicit_height(self, emitted, printer):
        printer.set_size(50, 30, SizeUnit.MILLIMETER, include_height=True)
        assert emitted() == b"SIZE 50 mm,30 mm\r\n"

    def test_dot_unit(self, emitted, printer):
        printer.set_size(100, 80, "dot", include_height=True)
        assert emitted() == b"SIZE 100 dot,80 dot\r\n"

    def test_inch_unit(self, emitted, printer):
        printer.set_size(2, 1, SizeUnit.INCH, include_height=True)
        assert emitted() == b"SIZE 2,1\r\n"

    @pytest.mark.parametrize("width,height", [(0, 10), (101, 10), (10, 0), (10, 101)])
    def test_out_of_range(self, emitted, printer, width, height):
        with pytest.raises(ValidationError):
            printer.set_size(width, height)
        assert emitted() == b""

    def test_unknown_unit(self, printer):
        with pytest.raises(ValidationError, match="Unit given to set_size"):
            printer.set_size(10, 10, "cm")

    def test_updates_configuration(self, printer):
        printer.set_size(50, 30, SizeUnit.DOT)
        assert printer.config.width == 50
        assert printer.config.height == 30
        assert printer.config.unit == "dot"


class TestSetGap:
    """Test GAP command."""

    def test_gap_command(self, emitted, printer):
        printer.set_gap(2, 1)
        assert emitted() == b"GAP 2 mm,1 mm\r\n"

    @pytest.mark.parametrize("distance", [0, 127])
    def test_metric_bounds_accepted(self, printer, distance):
        printer.set_gap(distance, 0, SizeUnit.MILLIMETER)

    def test_metric_over_bound_rejected(self, emitted, printer):
        with pytest.raises(ValidationError, match="range 0-127"):
            printer.set_gap(128, 0, SizeUnit.MILLIMETER)
        assert emitted() == b""

    @pytest.mark.parametrize("distance", [0, 5])
    def test_dot_bounds_accepted(self, printer, distance):
        printer.set_gap(distance, 0, SizeUnit.DOT)

    def test_dot_over_bound_rejected(self, printer):
        with pytest.raises(ValidationError, match="range 0-5"):
            printer.set_gap(6, 0, SizeUnit.DOT)

    def test_offset_bounds(self, printer):
        printer.set_gap(0, 255)
        with pytest.raises(ValidationError):
            printer.set_gap(0, 256)


class TestText:
    """Test TEXT command."""

    def test_text_with_defaults(self, emitted, printer):
        printer.text("Hello", 10, 20)
        assert emitted() == b'TEXT 10,20,"1",0,1,1,1,"Hello"\r\n'

    def test_text_all_arguments(self, emitted, printer):
        printer.text("Hi", 5, 6, "TSS24.BF2", 90, 2, 3, Alignment.RIGHT)
        assert emitted() == b'TEXT 5,6,"TSS24.BF2",90,2,3,3,"Hi"\r\n'

    def test_quotes_escaped(self, emitted, printer):
        printer.text('6" ruler', 10, 10)
        assert emitted() == b'TEXT 10,10,"1",0,1,1,1,"6\\" ruler"\r\n'

    @pytest.mark.parametrize("rotation", [45, 1, 360, -90])
    def test_bad_rotation_writes_nothing(self, emitted, printer, rotation):
        with pytest.raises(ValidationError, match="Rotation"):
            printer.text("Hello", rotation=rotation)
        assert emitted() == b""

    @pytest.mark.parametrize("scale", [0, 11])
    def test_bad_multiplication(self, printer, scale):
        with pytest.raises(ValidationError):
            printer.text("Hello", x_multiplication=scale)
        with pytest.raises(ValidationError):
            printer.text("Hello", y_multiplication=scale)

    def test_bad_alignment(self, printer):
        with pytest.raises(ValidationError, match="Alignment"):
            printer.text("Hello", alignment=4)


class TestBarcode:
    """Test BARCODE command."""

    def test_barcode_with_defaults(self, emitted, printer):
        printer.barcode("12345")
        assert emitted() == b'BARCODE 10,10,"128",50,0,0,1,1,1,"12345"\r\n'

    def test_barcode_all_arguments(self, emitted, printer):
        printer.barcode("ABC", 20, 30, "39", 80, 2, 180, 2, 4, Alignment.CENTER)
        assert emitted() == b'BARCODE 20,30,"39",80,2,180,2,4,2,"ABC"\r\n'

    def test_content_slash_escaped(self, emitted, printer):
        printer.barcode('A"B\\C')
        assert emitted().endswith(b',"A\\"B\\\\C"\r\n')

    @pytest.mark.parametrize("kwargs", [
        {"x": 0}, {"x": 351}, {"y": 0}, {"y": 10001}, {"height": 0},
        {"height": 101}, {"rotation": 30}, {"narrow": 0}, {"wide": 11},
    ])
    def test_out_of_range_writes_nothing(self, emitted, printer, kwargs):
        with pytest.raises(ValidationError):
            printer.barcode("123", **kwargs)
        assert emitted() == b""


class TestQRCode:
    """Test QRCODE command."""

    def test_qrcode_with_defaults(self, emitted, printer):
        printer.qrcode("123456", 2, 40)
        assert emitted() == b'QRCODE 2,40,H,4,A,0,"123456"\r\n'

    def test_qrcode_all_arguments(self, emitted, printer):
        printer.qrcode("https://example.com", 10, 20, "M", 6, "M", 270)
        assert emitted() == b'QRCODE 10,20,M,6,M,270,"https://example.com"\r\n'

    @pytest.mark.parametrize("kwargs", [
        {"cell_width": 0}, {"cell_width": 11}, {"correction": "X"},
        {"mode": "Auto"}, {"rotation": 45},
    ])
    def test_invalid_arguments(self, emitted, printer, kwargs):
        with pytest.raises(ValidationError):
            printer.qrcode("data", 0, 0, **kwargs)
        assert emitted() == b""


class TestImage:
    """Test BITMAP command."""

    def test_raw_bitmap(self, emitted, printer):
        printer.image(b"\xff\x00", 10, 20, 1, 2, BitmapMode.OR)
        assert emitted() == b"BITMAP 10,20,1,2,1,\xff\x00\r\n"

    def test_default_mode_is_overwrite(self, emitted, printer):
        printer.image(b"\x00", 0, 0, 1, 1)
        assert emitted().startswith(b"BITMAP 0,0,1,1,0,")

    def test_invalid_mode(self, printer):
        with pytest.raises(ValidationError, match="Mode given to image"):
            printer.image(b"\x00", 0, 0, 1, 1, 3)

    def test_bitmap_from_pil_image(self, emitted, printer):
        img = Image.new("1", (8, 1), color=0)
        printer.bitmap_from_image(img, 4, 8)
        assert emitted() == b"BITMAP 4,8,1,1,0,\x00\r\n"

    def test_bitmap_from_label_image(self, emitted, printer):
        img = LabelImage(Image.new("1", (12, 1), color=255))
        printer.bitmap_from_image(img, mode=BitmapMode.XOR)
        assert emitted() == b"BITMAP 0,0,2,1,2,\xff\xff\r\n"


class TestSimpleCommands:
    """Test single-purpose commands."""

    def test_beep(self, emitted, printer):
        printer.beep()
        assert emitted() == b"SOUND 5,100\r\n"

    def test_beep_bounds(self, printer):
        printer.beep(1, 1)
        printer.beep(9, 4095)
        with pytest.raises(ValidationError):
            printer.beep(10, 100)
        with pytest.raises(ValidationError):
            printer.beep(5, 4096)

    def test_home_cut_cls(self, emitted, printer):
        printer.home()
        printer.cut()
        printer.cls()
        assert emitted() == b"HOME\r\nCUT\r\nCLS\r\n"

    def test_offset_and_tear(self, emitted, printer):
        printer.set_offset(2)
        printer.set_tear(False)
        assert emitted() == b"OFFSET 2 mm\r\nSET TEAR OFF\r\n"


class TestPrint:
    """Test PRINT and lifecycle."""

    def test_print_without_close(self, emitted, connector, printer):
        printer.print_label(auto_close=False, copies=3)
        assert emitted() == b"PRINT 1,3\r\nEOP\r\n"
        assert not connector.closed
        assert printer.get_print_buffer() is not None

    def test_print_auto_close(self, connector, printer):
        printer.print_label()
        assert connector.closed
        assert printer.closed
        assert printer.get_print_buffer() is None

    def test_writes_after_auto_close_fail(self, printer):
        printer.print_label()
        with pytest.raises(PrinterStateError):
            printer.text("late")

    @pytest.mark.parametrize("copies", [0, 11])
    def test_copies_bounds(self, emitted, printer, copies):
        with pytest.raises(ValidationError):
            printer.print_label(copies=copies)
        assert emitted() == b""

    def test_close_twice_rejected(self, connector, printer):
        printer.close()
        with pytest.raises(PrinterStateError, match="already been closed"):
            printer.close()

    def test_close_returns_connector_result(self, mocker, connector):
        printer = TSPLPrinter(connector)
        mocker.patch.object(connector, "finalize", return_value="done")
        assert printer.close() == "done"


class TestContextManager:
    """Test scoped use of the printer."""

    def test_clean_exit_closes(self, connector):
        with TSPLPrinter(connector) as printer:
            printer.text("Hello")
            printer.print_label(auto_close=False)
        assert connector.closed
        assert b"PRINT 1,1" in connector.get_data()

    def test_exit_after_auto_close_is_quiet(self, connector):
        with TSPLPrinter(connector) as printer:
            printer.print_label()
        assert connector.closed

    def test_exception_aborts_job(self, mocker, connector):
        finalize = mocker.spy(connector, "finalize")
        with pytest.raises(ValidationError):
            with TSPLPrinter(connector) as printer:
                printer.text("Hello", rotation=45)
        finalize.assert_not_called()
        assert connector.closed
        assert connector.get_data() == b""


class TestPrintBufferAttachment:
    """Test printer-side buffer management."""

    def test_default_buffer_attached(self, printer):
        assert printer.get_print_buffer().printer is printer

    def test_setting_same_buffer_is_noop(self, printer):
        buffer = printer.get_print_buffer()
        printer.set_print_buffer(buffer)
        assert printer.get_print_buffer() is buffer

    def test_buffer_of_other_printer_rejected(self, printer):
        other = TSPLPrinter(DummyPrintConnector())
        with pytest.raises(PrinterStateError, match="already attached"):
            printer.set_print_buffer(other.get_print_buffer())

    def test_replacing_buffer_detaches_old_one(self, printer):
        old = printer.get_print_buffer()
        other = TSPLPrinter(DummyPrintConnector())
        new = other.get_print_buffer()
        new.detach()
        printer.set_print_buffer(new)
        assert old.printer is None
        assert new.printer is printer

    def test_failed_setup_releases_buffer(self, connector):
        """A buffer passed to a printer whose setup is rejected stays reusable."""
        buffer = TSPLPrintBuffer()
        with pytest.raises(ValidationError):
            TSPLPrinter(connector, buffer=buffer, width=0)
        assert buffer.printer is None

        other = TSPLPrinter(DummyPrintConnector(), buffer=buffer)
        assert buffer.printer is other

    def test_commands_start_on_fresh_line(self, emitted, printer):
        """Raw text without a line break is terminated before the next command."""
        printer.get_print_buffer().write_text("raw")
        printer.cls()
        assert emitted() == b"raw\r\nCLS\r\n"
