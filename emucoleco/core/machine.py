"""
Machine -- the wired console: Z80, TMS9918 VDP, controllers and sound chip.

The machine owns exactly one instance of every component; nothing is shared
between machines.  Wiring:

* The CPU indexes the flat 64 KB :class:`Memory` directly and reaches the
  VDP, the controllers and the sound chip through :class:`IOBus`.
* Every exhausted instruction period the CPU calls ``on_scanline``, which
  ticks the VDP one line.
* The VDP raises the CPU's NMI line at vertical blank.
* Bytes written to the sound port go to every subscriber of
  :meth:`Machine.subscribe_sound`; the built-in :class:`SN76489` register
  model is subscribed by default.

Running
-------
:meth:`Machine.step` executes one instruction.  A halted CPU burns
:attr:`Machine.HALT_IDLE_CYCLES` T-states per step so the VDP keeps
ticking until its NMI wakes the CPU.  :meth:`Machine.run_instructions`
and :meth:`Machine.run_frame` batch steps.

Faults
------
An :class:`EmulationFault` raised by the CPU is caught by :meth:`step`,
logged with the register state and the recent opcode trail, stored in
:attr:`Machine.fault` and halts the machine.  Call :meth:`reset` to run
again.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from emucoleco.core.bus import IOBus, SoundHook
from emucoleco.core.config import NTSC, EmulatorConfig
from emucoleco.core.errors import EmulationFault
from emucoleco.core.frame_buffer import FrameBuffer
from emucoleco.core.input_state import InputState
from emucoleco.core.memory import Memory
from emucoleco.core.sound.sn76489 import SN76489
from emucoleco.core.types import JoystickMode, MachineInput
from emucoleco.core.vdp import VideoProcessor
from emucoleco.core.z80 import Z80

logger = logging.getLogger(__name__)


class Machine:
    """A complete console.

    Parameters
    ----------
    config:
        Timing parameters shared by the CPU and the VDP.
    bios:
        Optional BIOS image, copied to $0000.
    cartridge:
        Optional cartridge image, copied to $8000.
    """

    HALT_IDLE_CYCLES: int = 4
    INSTRUCTION_BATCH: int = 4096

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        config: EmulatorConfig = NTSC,
        bios: Optional[bytes] = None,
        cartridge: Optional[bytes] = None,
    ) -> None:
        self.config: EmulatorConfig = config

        self.memory: Memory = Memory()
        self.frame_buffer: FrameBuffer = FrameBuffer.for_tms9918()
        self.vdp: VideoProcessor = VideoProcessor(config, self.frame_buffer)
        self.input_state: InputState = InputState()
        self.sound: SN76489 = SN76489()
        self.bus: IOBus = IOBus(self.vdp, self.input_state)
        self.cpu: Z80 = Z80(
            self.memory.data,
            self.bus,
            instruction_period=config.instruction_period,
            trace_depth=config.trace_depth,
        )

        self.cpu.on_scanline = self._on_scanline
        self.vdp.on_nmi = self.cpu.request_nmi
        self.bus.subscribe_sound(self.sound.write)

        # Machine run-state.
        self.fault: Optional[EmulationFault] = None
        self.machine_halt: bool = False
        self.frame_number: int = 0
        self._vblank: bool = False

        if bios is not None:
            self.load_bios(bios)
        if cartridge is not None:
            self.load_cartridge(cartridge)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Return to the power-on state.

        ROM contents are kept; the RAM window, VRAM and the frame buffer are
        cleared.
        """
        self.cpu.reset()
        self.memory.clear_ram()
        self.vdp.reset()
        self.input_state.reset()
        self.sound.reset()
        self.fault = None
        self.machine_halt = False
        self.frame_number = 0
        self._vblank = False

    def load_bios(self, rom: bytes) -> None:
        self.memory.load_bios(rom)
        logger.info("Loaded %d-byte BIOS", len(rom))

    def load_cartridge(self, rom: bytes) -> None:
        """Swap in a new cartridge image.  The CPU is not reset."""
        self.memory.load_cartridge(rom)
        logger.info("Loaded %d-byte cartridge", len(rom))

    # ------------------------------------------------------------------
    # Sound port hook
    # ------------------------------------------------------------------

    def subscribe_sound(self, hook: SoundHook) -> None:
        """Receive every byte the program writes to the sound port."""
        self.bus.subscribe_sound(hook)

    def unsubscribe_sound(self, hook: SoundHook) -> None:
        self.bus.unsubscribe_sound(hook)

    # ------------------------------------------------------------------
    # Frame presentation hook
    # ------------------------------------------------------------------

    @property
    def on_frame(self) -> Optional[Callable[[FrameBuffer], None]]:
        return self.vdp.on_frame

    @on_frame.setter
    def on_frame(self, callback: Optional[Callable[[FrameBuffer], None]]) -> None:
        self.vdp.on_frame = callback

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def step(self) -> int:
        """Execute one instruction, interrupt dispatch or halted idle step.

        Returns:
            The T-states consumed; 0 once the machine has faulted.
        """
        if self.machine_halt:
            return 0
        cpu = self.cpu
        try:
            cycles = cpu.step()
            if cycles == 0 and cpu.regs.halted:
                cycles = cpu.idle(self.HALT_IDLE_CYCLES)
        except EmulationFault as fault:
            self._halt_on(fault)
            return 0
        return cycles

    def run_instructions(self, count: int = INSTRUCTION_BATCH) -> int:
        """Run up to *count* steps and return the total T-states."""
        total = 0
        for _ in range(count):
            if self.machine_halt:
                break
            total += self.step()
        return total

    def run_frame(self) -> FrameBuffer:
        """Run until the VDP enters vertical blank and return the frame.

        Controller input staged since the last frame is latched first.
        Returns early if the machine faults.
        """
        self.input_state.capture_input_state()
        self._vblank = False
        while not self._vblank and not self.machine_halt:
            self.step()
        self.frame_number += 1
        return self.frame_buffer

    def _on_scanline(self) -> None:
        self.vdp.tick()
        if self.vdp.line == self.config.end_line:
            self._vblank = True

    def _halt_on(self, fault: EmulationFault) -> None:
        self.fault = fault
        self.machine_halt = True
        logger.error("%s", fault)
        logger.error("Registers: %r", self.cpu.regs)
        if fault.recent:
            logger.error("Recent opcodes: %s", fault.format_trail())

    # ------------------------------------------------------------------
    # Controllers
    # ------------------------------------------------------------------

    def controller_keys(self, state: int, player_no: int = 0) -> None:
        """Latch the raw 16-bit word of a controller and raise INT."""
        self.input_state.set_controller_word(player_no, state)
        self.input_state.capture_input_state()
        self.cpu.request_interrupt()

    def raise_input(self, player_no: int, machine_input: MachineInput, down: bool) -> None:
        """Stage a button or key event; it is latched at the next frame."""
        self.input_state.raise_input(player_no, machine_input, down)

    # ------------------------------------------------------------------
    # Debug surface
    # ------------------------------------------------------------------

    def get_register(self, name: str) -> int:
        return self.cpu.regs.get(name)

    def set_register(self, name: str, value: int) -> None:
        self.cpu.regs.set(name, value)

    def pattern_at(self, x: int, y: int) -> int:
        """Name-table entry at tile column *x* on display line *y*."""
        return self.vdp.pattern_at(x, y)

    def pattern_data(self) -> bytes:
        """VRAM from the pattern table base to the end."""
        return bytes(self.vdp.memory[self.vdp.pattern_table:])

    def debug_log(self) -> List[int]:
        """Prefixed opcodes executed since reset, as ``prefix << 8 | op``."""
        return sorted(self.cpu.debug_items)

    # ------------------------------------------------------------------
    # Serialisation helpers (save-state support)
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        return {
            "machine_class": self.__class__.__name__,
            "machine_halt": self.machine_halt,
            "frame_number": self.frame_number,
            "cpu": self.cpu.get_snapshot(),
            "memory": self.memory.get_snapshot(),
            "vdp": self.vdp.get_snapshot(),
            "sound": self.sound.get_snapshot(),
            "joystick_mode": int(self.input_state.mode),
        }

    def restore_snapshot(self, snapshot: dict) -> None:
        """Restore a state produced by :meth:`get_snapshot`.

        Any stored fault is discarded.
        """
        self.machine_halt = snapshot.get("machine_halt", False)
        self.frame_number = snapshot.get("frame_number", 0)
        self.cpu.restore_snapshot(snapshot["cpu"])
        self.memory.restore_snapshot(snapshot["memory"])
        self.vdp.restore_snapshot(snapshot["vdp"])
        if "sound" in snapshot:
            self.sound.restore_snapshot(snapshot["sound"])
        if "joystick_mode" in snapshot:
            self.input_state.mode = JoystickMode(snapshot["joystick_mode"])
        self.fault = None

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"pc=${self.cpu.regs.pc:04X}, "
            f"line={self.vdp.line}, "
            f"frame={self.frame_number}, "
            f"halted={self.machine_halt})"
        )
