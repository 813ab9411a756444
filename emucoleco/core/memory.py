"""
Flat 64 KB address space of the console.

Memory map
----------
=============  ===================================
$0000-$1FFF    BIOS ROM (8 KB)
$6000-$7FFF    RAM window, cleared on reset
$8000-$FFFF    Cartridge ROM (up to 32 KB)
=============  ===================================

There is no bank switching and no write protection: the CPU indexes
:attr:`Memory.data` directly.
"""

from __future__ import annotations


class Memory:
    """The 64 KB byte array plus the ROM overlay helpers."""

    SIZE: int = 0x10000
    BIOS_BASE: int = 0x0000
    BIOS_SIZE: int = 0x2000
    RAM_BASE: int = 0x6000
    RAM_END: int = 0x8000
    CART_BASE: int = 0x8000
    CART_SIZE: int = 0x8000

    def __init__(self) -> None:
        self.data: bytearray = bytearray(self.SIZE)

    # ------------------------------------------------------------------
    # ROM overlays
    # ------------------------------------------------------------------

    def load_bios(self, rom: bytes) -> None:
        """Copy *rom* to $0000.

        Raises:
            ValueError: If *rom* is larger than 8 KB.
        """
        if len(rom) > self.BIOS_SIZE:
            raise ValueError(
                f"BIOS image must be at most {self.BIOS_SIZE} bytes, got {len(rom)}"
            )
        self.data[self.BIOS_BASE:self.BIOS_BASE + len(rom)] = rom

    def load_cartridge(self, rom: bytes) -> None:
        """Copy *rom* to $8000, zero-filling the rest of the cartridge window.

        Raises:
            ValueError: If *rom* is larger than 32 KB.
        """
        if len(rom) > self.CART_SIZE:
            raise ValueError(
                f"Cartridge image must be at most {self.CART_SIZE} bytes, got {len(rom)}"
            )
        end = self.CART_BASE + self.CART_SIZE
        self.data[self.CART_BASE:end] = bytes(self.CART_SIZE)
        self.data[self.CART_BASE:self.CART_BASE + len(rom)] = rom

    def clear_ram(self) -> None:
        self.data[self.RAM_BASE:self.RAM_END] = bytes(self.RAM_END - self.RAM_BASE)

    # ------------------------------------------------------------------
    # Byte access
    # ------------------------------------------------------------------

    def __getitem__(self, addr: int) -> int:
        return self.data[addr & 0xFFFF]

    def __setitem__(self, addr: int, value: int) -> None:
        self.data[addr & 0xFFFF] = value & 0xFF

    def __len__(self) -> int:
        return self.SIZE

    # ------------------------------------------------------------------
    # Serialisation helpers (for save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> bytes:
        """Return an immutable copy of the address space."""
        return bytes(self.data)

    def restore_snapshot(self, data: bytes) -> None:
        """Restore the address space from a previous snapshot.

        Raises:
            ValueError: If *data* is not the expected length.
        """
        if len(data) != self.SIZE:
            raise ValueError(
                f"Snapshot size mismatch: expected {self.SIZE}, got {len(data)}"
            )
        self.data[:] = data

    def __repr__(self) -> str:
        return f"Memory(size={self.SIZE})"
