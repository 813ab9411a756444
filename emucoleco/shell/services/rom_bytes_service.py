"""
ROM loading and header-parsing service for emucoleco.

Responsibilities:
  - Read BIOS and cartridge images from disk and check they fit their
    memory windows (8 KB at $0000, 32 KB at $8000).
  - Parse the cartridge header the BIOS looks at before handing over
    control.

Cartridge header (little-endian words at the start of the image):

======  ==============================================================
Offset  Contents
======  ==============================================================
0x00    Magic: bytes AA 55 show the BIOS title screen, 55 AA skip it
0x02    Sprite name table pointer
0x04    Sprite order table pointer
0x06    Work buffer pointer
0x08    Controller map pointer
0x0A    Start address of the game
======  ==============================================================
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass
from typing import Optional

from emucoleco.core.memory import Memory

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Header constants
# ---------------------------------------------------------------------------

_HEADER_SIZE: int = 0x0C
_MAGIC_TITLE: int = 0x55AA
_MAGIC_SKIP_TITLE: int = 0xAA55
_HEADER_FORMAT: str = "<6H"


# ---------------------------------------------------------------------------
# Parsed header data-class
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CartridgeHeader:
    """Parsed contents of a cartridge header."""

    magic: int
    sprite_table: int
    sprite_order: int
    work_buffer: int
    controller_map: int
    start_address: int

    @property
    def shows_title(self) -> bool:
        """True when the BIOS shows its title screen before starting."""
        return self.magic == _MAGIC_TITLE


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class RomBytesService:
    """Static utility for loading ROM files and parsing their headers."""

    # -- reading -----------------------------------------------------------

    @staticmethod
    def read(path: str) -> bytes:
        """Read a ROM file from *path*.

        Raises:
            FileNotFoundError: If *path* does not exist.
            OSError: On general I/O failure.
        """
        path = os.path.expanduser(path)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"ROM file not found: {path}")
        with open(path, "rb") as fh:
            data = fh.read()
        logger.info("Read %d bytes from %s", len(data), path)
        return data

    @staticmethod
    def read_bios(path: str) -> bytes:
        """Read a BIOS image and check it fits the 8 KB BIOS window.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the image is empty or larger than 8 KB.
        """
        data = RomBytesService.read(path)
        RomBytesService._check_size(data, Memory.BIOS_SIZE, "BIOS")
        return data

    @staticmethod
    def read_cartridge(path: str) -> bytes:
        """Read a cartridge image and check it fits the 32 KB window.

        A missing or unrecognised header is logged, not rejected: some
        test images start executing at $8000 without one.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the image is empty or larger than 32 KB.
        """
        data = RomBytesService.read(path)
        RomBytesService._check_size(data, Memory.CART_SIZE, "Cartridge")
        if RomBytesService.parse_header(data) is None:
            logger.warning("%s has no cartridge header", path)
        return data

    # -- header ------------------------------------------------------------

    @staticmethod
    def parse_header(data: bytes) -> Optional[CartridgeHeader]:
        """Return the header of a cartridge image, or None if it has none."""
        if len(data) < _HEADER_SIZE:
            return None
        fields = struct.unpack_from(_HEADER_FORMAT, data, 0)
        if fields[0] not in (_MAGIC_TITLE, _MAGIC_SKIP_TITLE):
            return None
        return CartridgeHeader(*fields)

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _check_size(data: bytes, limit: int, kind: str) -> None:
        if not data:
            raise ValueError(f"{kind} image is empty")
        if len(data) > limit:
            raise ValueError(
                f"{kind} image must be at most {limit} bytes, got {len(data)}"
            )
