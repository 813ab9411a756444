# emucoleco shell services
"""ROM loading and machine construction."""

from emucoleco.shell.services.machine_factory import MachineFactory
from emucoleco.shell.services.rom_bytes_service import CartridgeHeader, RomBytesService

__all__ = ["CartridgeHeader", "MachineFactory", "RomBytesService"]
