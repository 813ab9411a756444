"""
TMS9918 video display processor.

The VDP owns 16 KB of VRAM, eight write-only control registers and a status
register.  The CPU reaches it through two ports (0xA0-0xBF):

* **odd port** -- writes go to the control latch, reads return the status
  register and clear its vblank, fifth-sprite and collision flags.
* **even port** -- VRAM data.  Writes store at the pending address; reads
  return the read-ahead byte and fetch the next one.

Control protocol
----------------
Control bytes arrive in pairs.  The first sets the low byte of the pending
address and arms the latch.  The second supplies the high byte:

* bit 7 set   -- register write: the first byte goes into register
  ``second & 7``, masked by :attr:`REGISTER_MASKS`.
* bit 6 clear -- read setup: the read-ahead byte is fetched from the new
  address, which then increments.
* bit 6 set   -- write setup: nothing else happens.

Any data-port access also resets the latch.

Registers
---------
====  ==============================================================
R0    bit 1 M3 (Graphics II), bit 0 external video
R1    bit 6 display enable, bit 5 interrupt enable, bit 4 M1,
      bit 3 M2, bit 1 16x16 sprites, bit 0 sprite magnification
R2    name table base / 0x400
R3    colour table base / 0x40
R4    pattern table base / 0x800
R5    sprite attribute table base / 0x80
R6    sprite pattern table base / 0x800
R7    text colour (high nibble) / backdrop colour (low nibble)
====  ==============================================================

Timing
------
:meth:`VideoProcessor.tick` advances one scanline (262 per field).  Lines
in the active window draw the background through the mode's renderer,
then the sprites.  While R1 bit 6 is clear the display is blanked: lines
are filled with the backdrop colour and sprites are neither evaluated nor
drawn.  Background drawing only happens on frames the render
budget allows (see :class:`~emucoleco.core.config.EmulatorConfig`); sprite
evaluation and collision run on every unblanked field.  The first line
after the window sets the vblank flag and, when R1 bit 5 is set and vblank
was not already pending, raises an NMI on the CPU.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Set

from emucoleco.core.config import NTSC, EmulatorConfig
from emucoleco.core.devices import IPortDevice
from emucoleco.core.frame_buffer import FrameBuffer
from emucoleco.core.sprites import SpriteEngine
from emucoleco.core.types import DisplayMode
from emucoleco.core.vdp_modes import Graphics1, Graphics2, LineRenderer
from emucoleco.core.vdp_tables import PALETTE_RGBA

logger = logging.getLogger(__name__)


class VideoProcessor(IPortDevice):
    """TMS9918 register protocol, VRAM and scanline state machine.

    Parameters
    ----------
    config:
        Timing parameters: scanlines per field, the active window and the
        render cadence.
    frame_buffer:
        Where lines are drawn.  A 256x192 buffer is created if omitted.
    """

    VRAM_SIZE: int = 0x4000
    VRAM_MASK: int = 0x3FFF
    WIDTH: int = 256
    HEIGHT: int = 192

    REGISTER_MASKS: tuple[int, ...] = (0x03, 0xFB, 0x0F, 0xFF, 0x07, 0x7F, 0x07, 0xFF)

    STATUS_VBLANK: int = 0x80
    STATUS_FIFTH_SPRITE: int = 0x40
    STATUS_COLLISION: int = 0x20
    STATUS_SPRITE_INDEX: int = 0x1F

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        config: EmulatorConfig = NTSC,
        frame_buffer: Optional[FrameBuffer] = None,
    ) -> None:
        self.config: EmulatorConfig = config
        self.frame_buffer: FrameBuffer = (
            frame_buffer if frame_buffer is not None else FrameBuffer.for_tms9918()
        )
        self.memory: bytearray = bytearray(self.VRAM_SIZE)
        self.registers: bytearray = bytearray(8)
        self.sprites: SpriteEngine = SpriteEngine(self)
        self.modes: Dict[int, LineRenderer] = {
            DisplayMode.Graphics1: Graphics1(self),
            DisplayMode.Graphics2: Graphics2(self),
        }

        # Wired by the machine: NMI request on the CPU, frame presentation.
        self.on_nmi: Optional[Callable[[], None]] = None
        self.on_frame: Optional[Callable[[FrameBuffer], None]] = None

        self._missing_modes: Set[int] = set()
        self.reset()

    def reset(self) -> None:
        self.memory[:] = bytes(self.VRAM_SIZE)
        self.registers[:] = bytes(8)
        self.pending_address: int = 0
        self.read_ahead: int = 0
        self.latch: bool = False
        self.status: int = 0
        self.line: int = 0
        self.update_count: int = 0
        self.frame_count: int = 0
        self.sprites.reset()
        self._missing_modes.clear()
        self.frame_buffer.clear()

    # ------------------------------------------------------------------
    # IPortDevice
    # ------------------------------------------------------------------

    def read_port(self, port: int) -> int:
        if port & 0x01:
            return self.read_status()
        return self.read_memory()

    def write_port(self, port: int, value: int) -> None:
        if port & 0x01:
            self.write_control(value)
        else:
            self.write_memory(value)

    # ------------------------------------------------------------------
    # Control / data protocol
    # ------------------------------------------------------------------

    def write_control(self, value: int) -> None:
        if not self.latch:
            self.pending_address = ((self.pending_address & 0xFF00) | value) & self.VRAM_MASK
            self.latch = True
            return

        self.pending_address = ((value << 8) | (self.pending_address & 0xFF)) & self.VRAM_MASK
        if value & 0x80:
            self.set_register(value & 0x07, self.pending_address & 0xFF)
        elif not value & 0x40:
            self.read_memory()
        self.latch = False

    def set_register(self, index: int, value: int) -> None:
        self.registers[index] = value & self.REGISTER_MASKS[index]

    def write_memory(self, value: int) -> None:
        self.memory[self.pending_address] = value & 0xFF
        self.pending_address = (self.pending_address + 1) & self.VRAM_MASK
        self.read_ahead = value & 0xFF
        self.latch = False

    def read_memory(self) -> int:
        data = self.read_ahead
        self.read_ahead = self.memory[self.pending_address]
        self.pending_address = (self.pending_address + 1) & self.VRAM_MASK
        self.latch = False
        return data

    def read_status(self) -> int:
        """Return the status byte, then clear its three flag bits.

        Only the sprite index bits survive the read.
        """
        data = self.status
        self.status &= self.STATUS_SPRITE_INDEX
        return data

    # ------------------------------------------------------------------
    # Register-derived state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> int:
        """Current :class:`DisplayMode`, or the raw M-bit value if undefined."""
        bits = ((self.registers[0] & 0x02) >> 1) | ((self.registers[1] & 0x18) >> 2)
        return DisplayMode.from_bits(bits)

    @property
    def external_video(self) -> bool:
        return bool(self.registers[0] & 0x01)

    @property
    def display_enabled(self) -> bool:
        return bool(self.registers[1] & 0x40)

    @property
    def interrupt_enable(self) -> bool:
        return bool(self.registers[1] & 0x20)

    @property
    def sprite_size(self) -> bool:
        """True for 16x16 sprites."""
        return bool(self.registers[1] & 0x02)

    @property
    def sprite_magnify(self) -> bool:
        return bool(self.registers[1] & 0x01)

    @property
    def name_table(self) -> int:
        return ((self.registers[2] & 0x7F) << 10) & self.VRAM_MASK

    @property
    def color_table(self) -> int:
        """Colour table base.  Graphics II only uses R3 bit 7 (see :attr:`color_mask`)."""
        r3 = self.registers[3]
        if self.registers[0] & 0x02:
            return (r3 & 0x80) << 6
        return (r3 << 6) & self.VRAM_MASK

    @property
    def color_mask(self) -> int:
        """Graphics II: R3 bits 0-6 gate address lines A6-A12 of colour fetches."""
        return ((self.registers[3] & 0x7F) << 6) | 0x3F

    @property
    def pattern_table(self) -> int:
        """Pattern table base.  Graphics II only uses R4 bit 2 (see :attr:`pattern_mask`)."""
        r4 = self.registers[4]
        if self.registers[0] & 0x02:
            return (r4 & 0x04) << 11
        return (r4 & 0x07) * 0x800

    @property
    def pattern_mask(self) -> int:
        """Graphics II: R4 bits 0-1 gate address lines A11-A12 of pattern fetches."""
        return ((self.registers[4] & 0x03) << 11) | 0x7FF

    @property
    def sprite_attribute_table(self) -> int:
        return (self.registers[5] & 0x7F) << 7

    @property
    def sprite_pattern_table(self) -> int:
        return (self.registers[6] & 0x07) << 11

    @property
    def text_color(self) -> int:
        return self.registers[7] >> 4

    @property
    def backdrop_color(self) -> int:
        return self.registers[7] & 0x0F

    # ------------------------------------------------------------------
    # Scanline state machine
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance one scanline."""
        cfg = self.config
        self.line += 1
        if self.line >= cfg.scanlines:
            self.line = 0
        line = self.line

        if cfg.start_line <= line < cfg.end_line:
            y = line - cfg.start_line
            render = self.update_count >= cfg.render_threshold
            if not self.display_enabled:
                if render:
                    self.blank_line(y)
            else:
                if render:
                    self.render_line(y)
                self.sprites.process_line(y, draw=render)

        if line == cfg.end_line:
            self._vertical_blank()

    def render_line(self, y: int) -> None:
        """Draw the background of display line *y* in the current mode."""
        mode = self.mode
        renderer = self.modes.get(mode)
        if renderer is None:
            if mode not in self._missing_modes:
                self._missing_modes.add(mode)
                logger.warning("No renderer for display mode %s; lines skipped", mode)
            return
        self.frame_buffer.write_line(y, renderer.render_line(y))

    def blank_line(self, y: int) -> None:
        """Fill display line *y* with the backdrop colour, as a blanked screen shows."""
        self.frame_buffer.write_line(y, PALETTE_RGBA[self.backdrop_color] * self.WIDTH)

    def _vertical_blank(self) -> None:
        cfg = self.config
        if self.update_count >= cfg.render_threshold:
            self.update_count -= cfg.render_threshold
            self.frame_count += 1
            logger.debug("Frame %d complete", self.frame_count)
            if self.on_frame is not None:
                self.on_frame(self.frame_buffer)
        self.update_count += cfg.render_increment

        irq = self.interrupt_enable and not self.status & self.STATUS_VBLANK
        self.status |= self.STATUS_VBLANK
        if not self.status & self.STATUS_COLLISION:
            self.check_collisions()
        if irq and self.on_nmi is not None:
            self.on_nmi()

    def check_collisions(self) -> None:
        """Move a collision latched since the last vblank into the status."""
        if self.sprites.collision_pending:
            self.status |= self.STATUS_COLLISION
        self.sprites.collision_pending = False

    # ------------------------------------------------------------------
    # Debug helpers
    # ------------------------------------------------------------------

    def pattern_at(self, column: int, y: int) -> int:
        """Name-table entry shown at tile *column* on display line *y*."""
        return self.memory[(self.name_table + ((y & 0xF8) << 2) + column) & self.VRAM_MASK]

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        return {
            "memory": bytes(self.memory),
            "registers": bytes(self.registers),
            "pending_address": self.pending_address,
            "read_ahead": self.read_ahead,
            "latch": self.latch,
            "status": self.status,
            "line": self.line,
            "update_count": self.update_count,
            "collision_pending": self.sprites.collision_pending,
        }

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore VDP state from a previous snapshot.

        Raises:
            ValueError: If the VRAM image is not 16 KB.
        """
        memory = snapshot["memory"]
        if len(memory) != self.VRAM_SIZE:
            raise ValueError(
                f"VRAM snapshot size mismatch: expected {self.VRAM_SIZE}, got {len(memory)}"
            )
        self.memory[:] = memory
        self.registers[:] = snapshot["registers"]
        self.pending_address = snapshot["pending_address"]
        self.read_ahead = snapshot["read_ahead"]
        self.latch = snapshot["latch"]
        self.status = snapshot["status"]
        self.line = snapshot["line"]
        self.update_count = snapshot["update_count"]
        self.sprites.collision_pending = snapshot["collision_pending"]

    def __repr__(self) -> str:
        return (
            f"VideoProcessor(line={self.line}, status=${self.status:02X}, "
            f"mode={self.mode}, address=${self.pending_address:04X}, "
            f"latch={self.latch})"
        )
