"""
Pytest configuration for TSPL printer tests.

Provides an in-memory connector, a printer bound to it and a fake
Bluetooth agent so no test spawns the real agent executable.
"""

import pytest

from tsplprinter import BluetoothDevice, DummyPrintConnector, TSPLPrinter


class FakeAgent:
    """Stands in for BluetoothAgent, recording every job it is given."""

    def __init__(self, devices=("Printer001",), message="Printed successfully"):
        self.devices = [BluetoothDevice(name=name) for name in devices]
        self.message = message
        self.jobs = []
        self.list_calls = 0

    def list_devices(self):
        self.list_calls += 1
        return list(self.devices)

    def dispatch_job(self, printer_name, payload):
        self.jobs.append((printer_name, payload))
        return self.message


@pytest.fixture
def connector():
    """In-memory connector."""
    return DummyPrintConnector()


@pytest.fixture
def printer(connector):
    """Printer with the default label setup already sent."""
    return TSPLPrinter(connector)


@pytest.fixture
def emitted(connector, printer):
    """Return a callable giving everything written after the initial setup."""
    offset = len(connector.get_data())
    return lambda: connector.get_data()[offset:]


@pytest.fixture
def fake_agent():
    return FakeAgent()


@pytest.fixture
def on_windows(mocker):
    """Pretend the host is Windows so the Bluetooth connector can be built."""
    return mocker.patch("tsplprinter.bluetooth.platform.system", return_value="Windows")


@pytest.fixture
def make_agent():
    """Factory for fake agents reporting other device names."""
    return FakeAgent
