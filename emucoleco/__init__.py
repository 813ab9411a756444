# emucoleco
"""
ColecoVision-style console emulator: Z80 CPU, TMS9918 video display
processor and the port-mapped controllers and sound chip around them.

Use :class:`~emucoleco.core.machine.Machine` to build a wired console.
"""

from emucoleco.core.machine import Machine
from emucoleco.core.config import EmulatorConfig, NTSC

__all__ = ["Machine", "EmulatorConfig", "NTSC"]

__version__ = "1.0.0"
