"""
IOBus -- decodes the Z80 port space onto the console's devices.

Ports are decoded on ``port & 0xE0``:

=========  ==========================  ====================================
Range      IN                          OUT
=========  ==========================  ====================================
0x80-0x9F  --                          select keypad read format
0xA0-0xBF  VDP (odd: status,           VDP (odd: control, even: data)
           even: VRAM data)
0xC0-0xDF  --                          select joystick read format
0xE0-0xFF  controller latches          sound chip register write
=========  ==========================  ====================================

Writes to 0x40-0x5F are accepted and ignored.  Every other access raises
:class:`~emucoleco.core.errors.UnmappedPortError`; the CPU fills in the
faulting program counter.
"""

from __future__ import annotations

import logging
from typing import Callable, List

from emucoleco.core.devices import IPortDevice
from emucoleco.core.errors import UnmappedPortError

logger = logging.getLogger(__name__)

SoundHook = Callable[[int], None]


class IOBus(IPortDevice):
    """Port decoder between the CPU and the VDP, controllers and sound chip.

    Parameters
    ----------
    vdp:
        Device answering 0xA0-0xBF.
    controllers:
        Device answering reads of 0xE0-0xFF and the 0x80 / 0xC0 mode
        writes.
    """

    def __init__(self, vdp: IPortDevice, controllers: IPortDevice) -> None:
        self.vdp = vdp
        self.controllers = controllers
        self._sound_hooks: List[SoundHook] = []

    # ------------------------------------------------------------------
    # Sound port hook
    # ------------------------------------------------------------------

    def subscribe_sound(self, hook: SoundHook) -> None:
        """Forward every byte written to 0xE0-0xFF to *hook*."""
        self._sound_hooks.append(hook)

    def unsubscribe_sound(self, hook: SoundHook) -> None:
        self._sound_hooks.remove(hook)

    # ------------------------------------------------------------------
    # IPortDevice
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.vdp.reset()
        self.controllers.reset()

    def read_port(self, port: int) -> int:
        group = port & 0xE0
        if group == 0xA0:
            return self.vdp.read_port(port)
        if group == 0xE0:
            return self.controllers.read_port(port)
        raise UnmappedPortError(port, "in")

    def write_port(self, port: int, value: int) -> None:
        group = port & 0xE0
        if group == 0xA0:
            self.vdp.write_port(port, value)
        elif group in (0x80, 0xC0):
            self.controllers.write_port(port, value)
        elif group == 0xE0:
            for hook in self._sound_hooks:
                hook(value)
        elif group == 0x40:
            logger.debug("Ignored write $%02X to port $%02X", value, port)
        else:
            raise UnmappedPortError(port, "out")

    def __repr__(self) -> str:
        return f"IOBus(sound_hooks={len(self._sound_hooks)})"
