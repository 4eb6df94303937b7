"""
Bluetooth Connector for TSPL Printers.

The host cannot talk to Bluetooth printers directly. Instead a helper
executable (the Bluetooth agent) does the OS-level work and is driven
through its command line:

    agent --list                          -> lists paired devices
    agent --print=<name> --path=<file>    -> sends <file> to printer <name>

Both calls answer on stdout with a JSON status envelope:

    {"status": "success", "message": "...", "devices": "<json array>"}
    {"status": "<error>", "message": "..."}

A nonzero exit code is a failure before the envelope is even looked at.
"""

import json
import logging
import os
import platform
import re
import shlex
import subprocess
import tempfile
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from .connectors import PrintConnector
from .errors import (
    AgentError,
    AgentFailure,
    AgentProtocolError,
    DeviceNotFoundError,
    UnfinalizedJobWarning,
    UnsupportedPlatformError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SUCCESS = "success"


@dataclass(frozen=True)
class BluetoothDevice:
    """A device reported by the agent.

    Attributes:
        name: Device name as registered with the OS (e.g. "Printer001")
        metadata: Any other fields the agent reported (address, class, ...)
    """
    name: str
    metadata: dict = field(default_factory=dict, compare=False, hash=False)

    def __str__(self) -> str:
        address = self.metadata.get("address")
        if address:
            return f"{self.name} [{address}]"
        return self.name


@dataclass
class AgentResponse:
    """
    Parsed status envelope printed by the agent.

    Attributes:
        status: "success" or an agent-defined error token
        message: Human readable result or error text
        devices: The raw "devices" field, a JSON-encoded array of records
        raw: The unparsed output
    """

    status: str
    message: str = ""
    devices: Any = None
    raw: str = ""

    @classmethod
    def parse(cls, output: str) -> Optional["AgentResponse"]:
        """
        Parse agent stdout.

        Returns:
            AgentResponse instance or None if the output is not an envelope
        """
        try:
            data = json.loads(output)
        except ValueError:
            return None

        if not isinstance(data, dict) or not isinstance(data.get("status"), str):
            return None

        message = data.get("message")
        return cls(
            status=data["status"],
            message="" if message is None else str(message),
            devices=data.get("devices"),
            raw=output,
        )

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def error_message(self) -> str:
        """The agent's own explanation of a failure."""
        return self.message or f"Bluetooth agent reported status '{self.status}'"

    def device_list(self) -> list[BluetoothDevice]:
        """
        Decode the devices field.

        Records without a string "name" cannot be matched and are skipped.

        Raises:
            AgentProtocolError: If the field is not a (JSON-encoded) list
        """
        records = self.devices
        if records is None:
            return []
        if isinstance(records, str):
            try:
                records = json.loads(records)
            except ValueError as e:
                raise AgentProtocolError(
                    f"Unexpected device list from Bluetooth agent: {self.devices!r}"
                ) from e
        if not isinstance(records, list):
            raise AgentProtocolError(
                f"Unexpected device list from Bluetooth agent: {self.devices!r}"
            )

        devices = []
        for record in records:
            if isinstance(record, dict) and isinstance(record.get("name"), str):
                metadata = {k: v for k, v in record.items() if k != "name"}
                devices.append(BluetoothDevice(name=record["name"], metadata=metadata))
        return devices


class BluetoothAgent:
    """
    Client for the out-of-process Bluetooth agent.

    Every call spawns the agent, closes its stdin, reads stdout and stderr
    to completion and waits for it to exit. There is no timeout unless one
    is given; the agent protocol has none of its own.
    """

    AGENT_FILENAME = "tarsier_bluetooth_agent.exe"
    DEFAULT_PATH = Path(__file__).parent / "agent" / AGENT_FILENAME
    ENV_VAR = "TSPL_BLUETOOTH_AGENT"
    TEMP_PREFIX = "bluetooth_"
    TEMP_SUFFIX = ".txt"

    def __init__(self, path: Optional[str] = None, timeout: Optional[float] = None):
        """
        Args:
            path: Agent executable. Falls back to $TSPL_BLUETOOTH_AGENT,
                then to the agent shipped in the package's agent/ directory
            timeout: Seconds to wait for each agent call (default: forever)
        """
        self.path = str(path or os.environ.get(self.ENV_VAR) or self.DEFAULT_PATH)
        self.timeout = timeout

    def list_devices(self) -> list[BluetoothDevice]:
        """
        Ask the agent for all Bluetooth devices known to the OS.

        The agent does not filter by device type, so audio devices, phones
        and so on are listed alongside printers.
        """
        response = self._call(["--list"], "list Bluetooth devices")
        if not response.ok:
            raise AgentFailure(response.error_message())
        devices = response.device_list()
        logger.debug("Agent reported %d device(s)", len(devices))
        return devices

    def dispatch_job(self, printer_name: str, payload: bytes) -> str:
        """
        Send a job to a printer through the agent.

        The payload goes through a temp file which is removed afterwards,
        whatever the outcome.

        Returns:
            The agent's success message
        """
        filename = self._create_temp_file(payload)
        try:
            response = self._call(
                [f"--print={printer_name}", f"--path={filename}"], "print"
            )
        finally:
            self._remove_temp_file(filename)

        if not response.ok:
            raise AgentFailure(response.error_message())
        return response.message

    def _call(self, args: Sequence[str], action: str) -> AgentResponse:
        argv = [self.path, *args]
        command = shlex.join(argv)
        logger.debug("Running %s", command)

        try:
            retval, output, error = self._run_command(argv)
        except subprocess.TimeoutExpired as e:
            raise AgentError(
                f"Failed to {action}. Command \"{command}\" timed out after {e.timeout}s",
                command=command,
            ) from e
        except OSError as e:
            raise AgentError(
                f"Failed to {action}. Command \"{command}\" could not be started: {e}",
                command=command,
            ) from e

        if retval != 0:
            error = error.strip()
            raise AgentError(
                f"Failed to {action}. Command \"{command}\" "
                f"failed with exit code {retval}: {error}",
                command=command,
                exit_code=retval,
                stderr=error,
            )

        response = AgentResponse.parse(output)
        if response is None:
            raise AgentProtocolError(f"Unexpected response from Bluetooth agent: {output!r}")
        return response

    def _run_command(self, argv: Sequence[str]) -> tuple[int, str, str]:
        """Run the agent and return (exit code, stdout, stderr)."""
        result = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=self.timeout,
        )
        return (
            result.returncode,
            result.stdout.decode("utf-8", errors="replace"),
            result.stderr.decode("utf-8", errors="replace"),
        )

    def _create_temp_file(self, payload: bytes) -> str:
        filename = None
        try:
            with tempfile.NamedTemporaryFile(
                "wb", prefix=self.TEMP_PREFIX, suffix=self.TEMP_SUFFIX, delete=False
            ) as f:
                filename = f.name
                f.write(payload)
            return filename
        except OSError as e:
            if filename is not None:
                self._remove_temp_file(filename)
            raise AgentError(f"Unable to create temp file: {e}") from e

    @staticmethod
    def _remove_temp_file(filename: str):
        try:
            os.unlink(filename)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", filename, e)


class BluetoothPrintConnector(PrintConnector):
    """
    Connector for sending print jobs to Bluetooth printers via the agent.

    Writes are buffered in memory; finalize() hands the whole job to the
    agent in one go. Only usable on Windows, where the agent runs.

    Example:
        with BluetoothPrintConnector("Printer001") as connector:
            printer = TSPLPrinter(connector)
            printer.text("Hello")
            printer.print_label(auto_close=False)
    """

    SUPPORTED_PLATFORM = "Windows"

    # ASCII word characters and hyphens, words separated by single spaces
    PRINTER_NAME_PATTERN = re.compile(r"[\w-]+(?: [\w-]+)*", re.ASCII)

    def __init__(self, dest: str, agent: Optional[BluetoothAgent] = None):
        """
        Args:
            dest: Printer name exactly as the agent lists it
            agent: Agent client (default: BluetoothAgent())

        Raises:
            UnsupportedPlatformError: If not running on Windows
            ValidationError: If dest is not a valid printer name
            DeviceNotFoundError: If the agent does not list dest
        """
        self._buffer: Optional[list[bytes]] = None
        self.devices: list[BluetoothDevice] = []

        self.platform = self._get_current_platform()
        if self.platform != self.SUPPORTED_PLATFORM:
            raise UnsupportedPlatformError(
                "Bluetooth PrintConnector can only be used to print on a Windows computer."
            )
        if not isinstance(dest, str) or not self.PRINTER_NAME_PATTERN.fullmatch(dest):
            raise ValidationError(f"Printer '{dest}' is not a valid printer name.")
        self.printer_name = dest

        self.agent = agent if agent is not None else BluetoothAgent()
        self.get_bluetooth_devices()
        self.device = self.find_device(dest)
        if self.device is None:
            raise DeviceNotFoundError(f"Printer '{dest}' is not found in the list.")

        self._buffer = []

    @staticmethod
    def _get_current_platform() -> str:
        """Host platform name. Separated out for testing purposes."""
        return platform.system()

    def get_bluetooth_devices(self) -> list[BluetoothDevice]:
        """Refresh and return the list of devices known to the agent."""
        self.devices = self.agent.list_devices()
        return self.devices

    def find_device(self, name: str) -> Optional[BluetoothDevice]:
        """Look up a discovered device by exact name."""
        for device in self.devices:
            if device.name == name:
                return device
        return None

    @property
    def closed(self) -> bool:
        return self._buffer is None

    def write(self, data: bytes) -> None:
        self._check_open("write")
        self._buffer.append(bytes(data))

    def read(self, length: int) -> Optional[bytes]:
        # Two-way communication is not supported
        return None

    def finalize(self) -> str:
        """
        Send the buffered job to the printer.

        The buffer is consumed before the agent runs, so a failed or
        repeated finalize never re-sends the job.

        Returns:
            The agent's success message
        """
        self._check_open("finalize")
        data = b"".join(self._buffer)
        self._buffer = None

        logger.debug("Sending %d bytes to %s", len(data), self.printer_name)
        message = self.agent.dispatch_job(self.printer_name, data)
        logger.info("%s: %s", self.printer_name, message)
        return message

    def abort(self) -> None:
        if self._buffer is not None:
            logger.warning(
                "Discarding unsent job for %s (%d bytes)",
                self.printer_name,
                sum(len(chunk) for chunk in self._buffer),
            )
            self._buffer = None

    def __del__(self):
        if getattr(self, "_buffer", None) is not None:
            warnings.warn(
                "Print connector was not finalized. Did you forget to close the printer?",
                UnfinalizedJobWarning,
                stacklevel=2,
            )
