# emucoleco emulation core
"""
Hardware models: the Z80 CPU, the TMS9918 VDP and sprite engine, the
memory map, the I/O port decoder, the controller latches and the SN76489
register sink.
"""

from emucoleco.core.errors import (
    EmulationFault,
    UnimplementedOpcodeError,
    UnmappedPortError,
    UnsupportedInterruptModeError,
)

__all__ = [
    "EmulationFault",
    "UnimplementedOpcodeError",
    "UnmappedPortError",
    "UnsupportedInterruptModeError",
]
