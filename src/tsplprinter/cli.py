"""
Command-Line Interface for TSPL Label Printers.

Usage:
    tspl devices                        - List Bluetooth devices known to the agent
    tspl text CONTENT -p NAME           - Print a text label
    tspl barcode DATA -p NAME           - Print a 1D barcode
    tspl qr DATA -p NAME                - Print a QR code
    tspl image IMAGE -p NAME            - Print an image
    tspl beep -p NAME                   - Sound the printer's beeper

Every printing command can write to a file or device node with
--output instead of a Bluetooth printer.
"""

import logging
import sys
from contextlib import ExitStack
from typing import Callable, Optional

import click

from .bluetooth import BluetoothAgent, BluetoothPrintConnector
from .connectors import FilePrintConnector, PrintConnector
from .errors import (
    AgentFailure,
    ConnectorError,
    ImageError,
    PrinterError,
    ValidationError,
)
from .printer import TSPLPrinter
from .tspl import BarcodeType, QRCodeCorrection


def validate_printer_name(ctx, param, value):
    """Validate Bluetooth printer name format.

    Accepts words made of letters, digits, underscores and hyphens,
    separated by single spaces (e.g. "Printer001", "XP-420B Label").

    Raises:
        click.BadParameter: If the name format is invalid
    """
    if value is None:
        return None
    if BluetoothPrintConnector.PRINTER_NAME_PATTERN.fullmatch(value):
        return value
    raise click.BadParameter(
        f"Invalid printer name: '{value}'. "
        "Expected words of letters, digits, '_' or '-' separated by single spaces"
    )


def destination_options(func):
    """Options shared by every command that sends a job."""
    options = [
        click.option(
            "--printer",
            "-p",
            "printer_name",
            callback=validate_printer_name,
            help="Bluetooth printer name as listed by 'tspl devices'",
        ),
        click.option(
            "--output",
            "-o",
            type=click.Path(dir_okay=False, writable=True),
            help="Write commands to a file or device node instead",
        ),
        click.option("--width", default=35.0, help="Label width in mm (default 35)"),
        click.option("--height", default=25.0, help="Label height in mm (default 25)"),
        click.option("--gap", default=5.0, help="Gap between labels in mm (default 5)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def open_connector(agent: BluetoothAgent, printer_name: Optional[str],
                   output: Optional[str]) -> PrintConnector:
    """Pick the connector for the destination given on the command line."""
    if output:
        return FilePrintConnector(output)
    if printer_name:
        return BluetoothPrintConnector(printer_name, agent=agent)
    raise click.UsageError("Specify a destination with --printer or --output.")


def run_job(ctx, printer_name: Optional[str], output: Optional[str],
            width: float, height: float, gap: float,
            draw: Callable[[TSPLPrinter], None], copies: Optional[int] = 1):
    """
    Open the destination, draw, and send the job.

    With copies=None nothing is printed; the connector is just closed
    after drawing (used for commands such as beep).
    """
    try:
        with ExitStack() as stack:
            connector = stack.enter_context(
                open_connector(ctx.obj["agent"], printer_name, output)
            )
            printer = stack.enter_context(
                TSPLPrinter(connector, width=width, height=height, gap_distance=gap)
            )
            draw(printer)
            if copies is None:
                message = printer.close()
            else:
                message = printer.print_label(copies=copies)

        if message:
            click.echo(message)
        click.echo("Print complete!")

    except ValidationError as e:
        click.echo(f"Invalid argument: {e}", err=True)
        sys.exit(1)
    except ImageError as e:
        click.echo(f"Image error: {e}", err=True)
        sys.exit(1)
    except ConnectorError as e:
        click.echo(f"Connection error: {e}", err=True)
        sys.exit(1)
    except PrinterError as e:
        click.echo(f"Printer error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--agent",
    "agent_path",
    envvar=BluetoothAgent.ENV_VAR,
    help="Path to the Bluetooth agent executable",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds to wait for each agent call (default: no limit)",
)
@click.pass_context
def main(ctx, debug, agent_path, timeout):
    """TSPL Label Printer CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["agent"] = BluetoothAgent(agent_path, timeout=timeout)


@main.command()
@click.pass_context
def devices(ctx):
    """List Bluetooth devices known to the agent.

    The agent lists every registered device (audio, phones, ...), not
    just printers.
    """
    try:
        found = ctx.obj["agent"].list_devices()
    except AgentFailure as e:
        click.echo(f"Agent error: {e}", err=True)
        sys.exit(1)
    except ConnectorError as e:
        click.echo(f"Connection error: {e}", err=True)
        sys.exit(1)

    if not found:
        click.echo("No devices found.")
        return

    click.echo(f"Found {len(found)} device(s):\n")
    for device in found:
        click.echo(f"  {device}")


@main.command()
@click.argument("content")
@destination_options
@click.option("--x", "x", default=10, help="X position in dots")
@click.option("--y", "y", default=10, help="Y position in dots")
@click.option("--font", default="1", help="Font name (default 1)")
@click.option(
    "--rotation",
    type=click.Choice(["0", "90", "180", "270"]),
    default="0",
    help="Rotation in degrees",
)
@click.option("--scale", default=1, help="Character multiplication (1-10)")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def text(ctx, content, printer_name, output, width, height, gap,
         x, y, font, rotation, scale, copies):
    """Print a line of text."""

    def draw(printer: TSPLPrinter):
        printer.text(content, x, y, font=font, rotation=int(rotation),
                     x_multiplication=scale, y_multiplication=scale)

    run_job(ctx, printer_name, output, width, height, gap, draw, copies)


@main.command()
@click.argument("data")
@destination_options
@click.option("--x", "x", default=10, help="X position in dots")
@click.option("--y", "y", default=10, help="Y position in dots")
@click.option(
    "--type",
    "code_type",
    type=click.Choice([t.value for t in BarcodeType]),
    default=BarcodeType.TYPE_128.value,
    help="Barcode type (default: 128)",
)
@click.option("--bar-height", default=50, help="Bar height in dots (1-100)")
@click.option("--no-text", is_flag=True, help="Omit human-readable text")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def barcode(ctx, data, printer_name, output, width, height, gap,
            x, y, code_type, bar_height, no_text, copies):
    """Print a 1D barcode.

    Examples:
        tspl barcode "12345" -p Printer001
        tspl barcode "HELLO" --type 39 -o label.prn
    """

    def draw(printer: TSPLPrinter):
        printer.barcode(data, x, y, code_type=code_type, height=bar_height,
                        human_readable=0 if no_text else 1)

    run_job(ctx, printer_name, output, width, height, gap, draw, copies)


@main.command()
@click.argument("data")
@destination_options
@click.option("--x", "x", default=10, help="X position in dots")
@click.option("--y", "y", default=10, help="Y position in dots")
@click.option(
    "--error-correction",
    type=click.Choice([level.value for level in QRCodeCorrection]),
    default="H",
    help="Error correction level (L=7%%, M=15%%, Q=25%%, H=30%%)",
)
@click.option("--cell-width", default=4, help="Module width in dots (1-10)")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def qr(ctx, data, printer_name, output, width, height, gap,
       x, y, error_correction, cell_width, copies):
    """Print a QR code."""

    def draw(printer: TSPLPrinter):
        printer.qrcode(data, x, y, correction=error_correction, cell_width=cell_width)

    run_job(ctx, printer_name, output, width, height, gap, draw, copies)


@main.command("image")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@destination_options
@click.option("--x", "x", default=0, help="X position in dots")
@click.option("--y", "y", default=0, help="Y position in dots")
@click.option("--copies", default=1, help="Number of copies")
@click.pass_context
def print_image(ctx, image, printer_name, output, width, height, gap, x, y, copies):
    """Print an image file (converted to black and white)."""

    def draw(printer: TSPLPrinter):
        printer.bitmap_from_image(image, x, y)

    run_job(ctx, printer_name, output, width, height, gap, draw, copies)


@main.command()
@destination_options
@click.option("--level", default=5, help="Sound level (1-9)")
@click.option("--interval", default=100, help="Sound interval (1-4095)")
@click.pass_context
def beep(ctx, printer_name, output, width, height, gap, level, interval):
    """Sound the printer's beeper without printing."""

    def draw(printer: TSPLPrinter):
        printer.beep(level, interval)

    run_job(ctx, printer_name, output, width, height, gap, draw, copies=None)


if __name__ == "__main__":
    main()
