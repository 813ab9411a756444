"""
Fatal emulation faults.

The CPU raises these from :meth:`Z80.step`.  The machine catches
:class:`EmulationFault`, logs the program counter together with the trail of
recently executed opcodes, and stops stepping.  Re-running the faulted
instruction reproduces the fault, so nothing here is retried.
"""

from __future__ import annotations

from typing import Sequence, Tuple

_PREFIX_NAMES = {
    0x00: "",
    0xCB: "CB ",
    0xED: "ED ",
    0xDD: "DD ",
    0xFD: "FD ",
    0xDDCB: "DD CB ",
    0xFDCB: "FD CB ",
}


class EmulationFault(RuntimeError):
    """Base class for conditions the emulated machine cannot continue past.

    The message is formatted when the fault is printed, so a ``pc`` filled
    in by the CPU after construction shows up in it.

    Attributes
    ----------
    pc:
        Address of the instruction (or interrupt dispatch) that faulted.
    recent:
        ``(pc, opcode)`` pairs of the most recently fetched instructions,
        oldest first.  Filled in by the CPU before the fault propagates.
    """

    def __init__(self, pc: int) -> None:
        super().__init__()
        self.pc: int = pc
        self.recent: Tuple[Tuple[int, int], ...] = ()

    def describe(self) -> str:
        return "Emulation fault"

    def __str__(self) -> str:
        return f"{self.describe()} at ${self.pc:04X}"

    def with_trail(self, recent: Sequence[Tuple[int, int]]) -> EmulationFault:
        self.recent = tuple(recent)
        return self

    def format_trail(self) -> str:
        return " ".join(f"{pc:04X}:{op:02X}" for pc, op in self.recent)


class UnimplementedOpcodeError(EmulationFault):
    """An opcode with no dispatch-table entry was fetched."""

    def __init__(self, opcode: int, pc: int, prefix: int = 0x00) -> None:
        super().__init__(pc)
        self.opcode: int = opcode
        self.prefix: int = prefix

    def describe(self) -> str:
        name = _PREFIX_NAMES.get(self.prefix, f"{self.prefix:02X} ")
        return f"Unimplemented opcode {name}{self.opcode:02X}"


class UnsupportedInterruptModeError(EmulationFault):
    """A maskable interrupt was accepted while in interrupt mode 0 or 2."""

    def __init__(self, mode: int, pc: int) -> None:
        super().__init__(pc)
        self.mode: int = mode

    def describe(self) -> str:
        return f"Unsupported interrupt mode {self.mode}"


class UnmappedPortError(EmulationFault):
    """An IN or OUT addressed a port nothing is decoded on.

    The bus raises it without knowing the program counter; the CPU sets
    :attr:`pc` before the fault leaves :meth:`Z80.step`.
    """

    def __init__(self, port: int, direction: str, pc: int = 0) -> None:
        super().__init__(pc)
        self.port: int = port
        self.direction: str = direction

    def describe(self) -> str:
        return f"Unmapped I/O {self.direction} on port ${self.port:02X}"
