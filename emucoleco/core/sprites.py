"""
TMS9918 sprite engine.

Each of the 32 sprites has a four-byte entry in the sprite attribute table:

====  ==========================================================
+0    Y.  The sprite's first row is drawn on line Y + 1.  208 ends
      the table.  Values above ``256 - height`` are negative.
+1    X.
+2    Pattern name.  16x16 sprites ignore its low two bits.
+3    Colour in bits 0-3 (0 is transparent); bit 7 is the early
      clock, which moves the sprite 32 pixels to the left.
====  ==========================================================

Register 1 bit 1 selects 16x16 patterns and bit 0 magnifies every
sprite two times in both directions.

Per display line the engine evaluates which sprites cover the line.  Only
four fit on a line: the fifth sets status bit 6, its index goes into the
low status bits and evaluation stops.  Otherwise the low bits hold the last
index examined.  Visible sprites are drawn from the highest index down so
lower numbers end up on top.  Two sprites setting a pixel in the same place
latch a collision, reported in status bit 5 at the next vertical blank.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from emucoleco.core.vdp_tables import PALETTE_RGB

if TYPE_CHECKING:
    from emucoleco.core.vdp import VideoProcessor

SPRITE_COUNT: int = 32
SPRITES_PER_LINE: int = 4
TERMINATOR: int = 208
EARLY_CLOCK_SHIFT: int = 32

# Each byte value with every bit doubled (0b10 -> 0b1100), for magnified rows.
_DOUBLED: List[int] = [
    sum(((v >> b) & 1) * (3 << (2 * b)) for b in range(8)) for v in range(256)
]


class SpriteEngine:
    """Evaluates, collides and draws sprites one display line at a time."""

    def __init__(self, vdp: VideoProcessor) -> None:
        self.vdp = vdp
        self.collision_pending: bool = False

    def reset(self) -> None:
        self.collision_pending = False

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------

    @property
    def glyph_size(self) -> int:
        return 16 if self.vdp.sprite_size else 8

    @property
    def zoom(self) -> int:
        return 2 if self.vdp.sprite_magnify else 1

    # ------------------------------------------------------------------
    # Per-line processing
    # ------------------------------------------------------------------

    def evaluate(self, y: int) -> List[int]:
        """Return the indices of the sprites drawn on display line *y*.

        Updates the fifth-sprite flag and the sprite index bits of the VDP
        status register.
        """
        vdp = self.vdp
        mem = vdp.memory
        sat = vdp.sprite_attribute_table
        height = self.glyph_size * self.zoom

        visible: List[int] = []
        last = SPRITE_COUNT - 1
        for index in range(SPRITE_COUNT):
            sy = mem[sat + index * 4]
            if sy == TERMINATOR:
                last = index
                break
            if sy > 256 - height:
                sy -= 256
            if 0 <= y - (sy + 1) < height:
                if len(visible) == SPRITES_PER_LINE:
                    if not vdp.status & vdp.STATUS_FIFTH_SPRITE:
                        vdp.status = (vdp.status & 0xA0) | vdp.STATUS_FIFTH_SPRITE | index
                    return visible
                visible.append(index)

        if not vdp.status & vdp.STATUS_FIFTH_SPRITE:
            vdp.status = (vdp.status & 0xE0) | last
        return visible

    def process_line(self, y: int, draw: bool = True) -> None:
        """Evaluate line *y*, latch collisions and, if *draw*, plot it."""
        visible = self.evaluate(y)
        if not visible:
            return

        rows = []
        occupied = 0
        for index in visible:
            x, bits, color = self._sprite_row(index, y)
            if occupied & bits:
                self.collision_pending = True
            occupied |= bits
            rows.append((x, bits, color))

        if draw:
            fb = self.vdp.frame_buffer
            for x, bits, color in reversed(rows):
                if color == 0:
                    continue
                rgb = PALETTE_RGB[color]
                while bits:
                    low = bits & -bits
                    fb.set_pixel(low.bit_length() - 1, y, rgb)
                    bits ^= low

    def _sprite_row(self, index: int, y: int) -> Tuple[int, int, int]:
        """Return ``(x, screen_bits, colour)`` of sprite *index* on line *y*.

        ``screen_bits`` has bit *n* set when the sprite covers column *n*,
        already clipped to the 256-pixel line.
        """
        vdp = self.vdp
        mem = vdp.memory
        attr = vdp.sprite_attribute_table + index * 4
        size = self.glyph_size
        zoom = self.zoom
        height = size * zoom

        sy = mem[attr]
        if sy > 256 - height:
            sy -= 256
        x = mem[attr + 1]
        name = mem[attr + 2]
        tag = mem[attr + 3]
        if tag & 0x80:
            x -= EARLY_CLOCK_SHIFT
        if size == 16:
            name &= 0xFC

        # R6 holds three bits, so even the last 16x16 pattern ends at $3FFF.
        line = (y - sy - 1) // zoom
        addr = vdp.sprite_pattern_table + (name << 3) + line

        pattern = mem[addr] << 8
        if size == 16:
            pattern |= mem[addr + 16]
        width = 16
        if zoom == 2:
            pattern = (_DOUBLED[pattern >> 8] << 16) | _DOUBLED[pattern & 0xFF]
            width = 32

        # Reverse into screen order: pattern MSB is the leftmost column.
        bits = 0
        for px in range(width):
            if pattern & (1 << (width - 1 - px)):
                sx = x + px
                if 0 <= sx < vdp.WIDTH:
                    bits |= 1 << sx
        return x, bits, tag & 0x0F
