from __future__ import annotations

from typing import List, Tuple

import pytest

from emucoleco.core.devices import IPortDevice
from emucoleco.core.machine import Machine
from emucoleco.core.vdp import VideoProcessor
from emucoleco.core.z80 import Z80


class RecordingPorts(IPortDevice):
    """Port device that answers reads from a table and records writes."""

    def __init__(self) -> None:
        self.inputs: dict[int, int] = {}
        self.writes: List[Tuple[int, int]] = []
        self.reads: List[int] = []

    def reset(self) -> None:
        self.writes.clear()
        self.reads.clear()

    def read_port(self, port: int) -> int:
        self.reads.append(port)
        return self.inputs.get(port, 0xFF)

    def write_port(self, port: int, value: int) -> None:
        self.writes.append((port, value))


@pytest.fixture()
def ports() -> RecordingPorts:
    return RecordingPorts()


@pytest.fixture()
def cpu(ports: RecordingPorts) -> Z80:
    return Z80(bytearray(0x10000), ports)


@pytest.fixture()
def vdp() -> VideoProcessor:
    return VideoProcessor()


@pytest.fixture()
def machine() -> Machine:
    return Machine()
