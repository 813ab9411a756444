"""
Machine creation factory for emucoleco.

Creates fully-wired machines from ROM file paths and describes ROM files
for display before a machine is built.

Typical usage::

    machine = MachineFactory.create("game.col", bios_path="coleco.rom")
    info = MachineFactory.describe("game.col")
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from emucoleco.core.config import NTSC, EmulatorConfig
from emucoleco.core.machine import Machine
from emucoleco.shell.services.rom_bytes_service import RomBytesService

logger = logging.getLogger(__name__)


class MachineFactory:
    """Create an emulated console from ROM files."""

    @staticmethod
    def create(
        cartridge_path: str,
        bios_path: Optional[str] = None,
        config: EmulatorConfig = NTSC,
    ) -> Machine:
        """Build a machine with the given images loaded and reset it.

        Parameters
        ----------
        cartridge_path:
            Filesystem path to the cartridge image.
        bios_path:
            Path to a BIOS image.  Without one, execution starts at $0000
            of an empty BIOS window, so the cartridge must provide its own
            entry code there or the caller must set PC.
        config:
            Timing parameters.

        Raises
        ------
        FileNotFoundError
            If a path does not exist.
        ValueError
            If an image does not fit its memory window.
        """
        logger.info("Loading cartridge: %s", cartridge_path)
        cartridge = RomBytesService.read_cartridge(cartridge_path)

        bios: Optional[bytes] = None
        if bios_path is not None:
            logger.info("Loading BIOS: %s", bios_path)
            bios = RomBytesService.read_bios(bios_path)
        else:
            logger.info("No BIOS path supplied")

        machine = Machine(config, bios=bios, cartridge=cartridge)
        machine.reset()
        logger.info("Machine created: %r", machine)
        return machine

    @staticmethod
    def describe(cartridge_path: str) -> dict[str, str]:
        """Return a human-readable description of a cartridge file.

        Returns a dict with keys: ``title``, ``rom_size``, ``header``,
        ``title_screen`` and ``start_address``.
        """
        data = RomBytesService.read(cartridge_path)
        header = RomBytesService.parse_header(data)
        info = {
            "title": os.path.basename(cartridge_path),
            "rom_size": str(len(data)),
            "header": "none",
            "title_screen": "n/a",
            "start_address": "n/a",
        }
        if header is not None:
            info["header"] = f"${header.magic:04X}"
            info["title_screen"] = "yes" if header.shows_title else "skipped"
            info["start_address"] = f"${header.start_address:04X}"
        return info
