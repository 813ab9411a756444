"""
Background line renderers for the TMS9918 display modes.

Each renderer turns one display line into ``256 * 4`` RGBA bytes.  The VDP
picks the renderer from its current :class:`DisplayMode`; modes without a
renderer here (Text, Multicolor and the undefined bit combinations) are
reported by the VDP and their lines are left untouched.

Graphics I
    A 32x24 name table of 8x8 tiles.  The tile's pattern row comes from
    ``pattern_table + index * 8 + (y & 7)`` and its foreground/background
    colour nibbles from ``color_table + index / 8`` (one colour byte per
    group of eight tiles).

Graphics II
    Same layout, but the screen is split into three vertical thirds, each
    with its own 2 KB of pattern and colour data, and colours are given
    per pattern row.  The fetch offset ``third * 0x800 + index * 8 + (y & 7)``
    is ANDed with a mask built from the low bits of R4 (pattern) or R3
    (colour) and ORed onto the table base, so programs can make thirds
    share data by clearing mask bits.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

from emucoleco.core.vdp_tables import PALETTE_RGBA

if TYPE_CHECKING:
    from emucoleco.core.vdp import VideoProcessor

VRAM_MASK: int = 0x3FFF
COLUMNS: int = 32
_BITS = (0x80, 0x40, 0x20, 0x10, 0x08, 0x04, 0x02, 0x01)


def _emit_tile(out: List[bytes], pattern: int, color: int) -> None:
    fg = PALETTE_RGBA[color >> 4]
    bg = PALETTE_RGBA[color & 0x0F]
    for bit in _BITS:
        out.append(fg if pattern & bit else bg)


class LineRenderer(ABC):
    """Abstract base for a display mode's background renderer."""

    def __init__(self, vdp: VideoProcessor) -> None:
        self.vdp = vdp

    @abstractmethod
    def render_line(self, y: int) -> bytes:
        """Return the RGBA bytes of display line *y* (0..191)."""
        ...


class Graphics1(LineRenderer):
    """Graphics I: one colour byte per eight tiles."""

    def render_line(self, y: int) -> bytes:
        vdp = self.vdp
        mem = vdp.memory
        name_row = vdp.name_table + ((y & 0xF8) << 2)
        pattern_base = vdp.pattern_table
        color_base = vdp.color_table
        row = y & 7

        out: List[bytes] = []
        for col in range(COLUMNS):
            index = mem[(name_row + col) & VRAM_MASK]
            pattern = mem[(pattern_base + ((index << 3) | row)) & VRAM_MASK]
            color = mem[(color_base + (index >> 3)) & VRAM_MASK]
            _emit_tile(out, pattern, color)
        return b"".join(out)


class Graphics2(LineRenderer):
    """Graphics II: per-third pattern banks and per-row colours."""

    def render_line(self, y: int) -> bytes:
        vdp = self.vdp
        mem = vdp.memory
        name_row = vdp.name_table + ((y & 0xF8) << 2)
        third = (y & 0xC0) << 5
        pattern_base = vdp.pattern_table
        pattern_mask = vdp.pattern_mask
        color_base = vdp.color_table
        color_mask = vdp.color_mask
        row = y & 7

        out: List[bytes] = []
        for col in range(COLUMNS):
            offset = third | (mem[(name_row + col) & VRAM_MASK] << 3) | row
            pattern = mem[pattern_base | (offset & pattern_mask)]
            color = mem[color_base | (offset & color_mask)]
            _emit_tile(out, pattern, color)
        return b"".join(out)
