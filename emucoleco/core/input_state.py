"""
InputState - the two controller latches behind ports 0x80, 0xC0 and 0xE0.

Each controller is a 16-bit word:

* low byte  -- keypad half: a 4-bit key code in bits 0-3 and the right
  fire button at 0x40.
* high byte -- joystick half: directions at 0x100 (up), 0x200 (right),
  0x400 (down), 0x800 (left) and the left fire button at 0x4000.

Any write to 0x80-0x9F selects the keypad half, any write to 0xC0-0xDF
the joystick half.  A read of 0xE0-0xFF returns the selected half of
controller 1 (port bit 1 clear) or controller 2 (bit 1 set), inverted and
limited to 7 bits, since the hardware lines are active low.

Host code writes into a staging word via :meth:`raise_input` or
:meth:`set_controller_word`; :meth:`capture_input_state` copies the staging
words into the latch the ports read.
"""

from __future__ import annotations

from typing import List

from emucoleco.core.devices import IPortDevice
from emucoleco.core.types import JoystickMode, MachineInput

PLAYERS: int = 2

# Keypad key codes (bits 0-3 of the keypad half).
_KEYPAD_CODES: dict[MachineInput, int] = {
    MachineInput.NumPad0:    0x5,
    MachineInput.NumPad1:    0x2,
    MachineInput.NumPad2:    0x8,
    MachineInput.NumPad3:    0x3,
    MachineInput.NumPad4:    0xD,
    MachineInput.NumPad5:    0xC,
    MachineInput.NumPad6:    0x1,
    MachineInput.NumPad7:    0xA,
    MachineInput.NumPad8:    0xE,
    MachineInput.NumPad9:    0x4,
    MachineInput.NumPadMult: 0x6,
    MachineInput.NumPadHash: 0x9,
}

# Single-bit inputs.
_INPUT_BITS: dict[MachineInput, int] = {
    MachineInput.Fire:  0x4000,
    MachineInput.Fire2: 0x0040,
    MachineInput.Up:    0x0100,
    MachineInput.Right: 0x0200,
    MachineInput.Down:  0x0400,
    MachineInput.Left:  0x0800,
}

_KEYPAD_CODE_MASK: int = 0x000F


class InputState(IPortDevice):
    """Controller latches and the keypad / joystick read-format selector."""

    def __init__(self) -> None:
        self._next_input_state: List[int] = [0] * PLAYERS
        self._input_state: List[int] = [0] * PLAYERS
        self.mode: JoystickMode = JoystickMode.Keypad

    # ------------------------------------------------------------------
    # IPortDevice
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.mode = JoystickMode.Keypad
        self.clear_all_input()

    def read_port(self, port: int) -> int:
        data = self._input_state[1 if port & 0x02 else 0]
        if self.mode == JoystickMode.Joystick:
            data >>= 8
        return ~data & 0x7F

    def write_port(self, port: int, value: int) -> None:
        if port & 0xE0 == 0xC0:
            self.mode = JoystickMode.Joystick
        elif port & 0xE0 == 0x80:
            self.mode = JoystickMode.Keypad

    # ------------------------------------------------------------------
    # Frame-boundary snapshot
    # ------------------------------------------------------------------

    def capture_input_state(self) -> None:
        """Copy the staging words into the latch the ports read."""
        self._input_state[:] = self._next_input_state

    # ------------------------------------------------------------------
    # Host-side input event injection
    # ------------------------------------------------------------------

    def raise_input(self, player_no: int, machine_input: MachineInput, down: bool) -> None:
        """Press or release *machine_input* on controller *player_no* (0 or 1).

        Keypad keys share one 4-bit code field, so pressing a key replaces
        whichever key was held; releasing clears the field only if it still
        holds that key.
        """
        self._check_player(player_no)
        word = self._next_input_state[player_no]
        code = _KEYPAD_CODES.get(machine_input)
        if code is not None:
            if down:
                word = (word & ~_KEYPAD_CODE_MASK) | code
            elif word & _KEYPAD_CODE_MASK == code:
                word &= ~_KEYPAD_CODE_MASK
        else:
            bit = _INPUT_BITS[machine_input]
            word = word | bit if down else word & ~bit
        self._next_input_state[player_no] = word & 0xFFFF

    def set_controller_word(self, player_no: int, word: int) -> None:
        """Replace the whole staging word of controller *player_no*."""
        self._check_player(player_no)
        self._next_input_state[player_no] = word & 0xFFFF

    def controller_word(self, player_no: int) -> int:
        """The latched word the ports currently read."""
        self._check_player(player_no)
        return self._input_state[player_no]

    def clear_all_input(self) -> None:
        for i in range(PLAYERS):
            self._next_input_state[i] = 0
            self._input_state[i] = 0

    @staticmethod
    def _check_player(player_no: int) -> None:
        if not 0 <= player_no < PLAYERS:
            raise IndexError(f"player_no {player_no} out of range [0, {PLAYERS})")

    def __repr__(self) -> str:
        return (
            f"InputState(mode={self.mode.name}, "
            f"p1=${self._input_state[0]:04X}, p2=${self._input_state[1]:04X})"
        )
