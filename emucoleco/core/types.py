"""
Core enumerations and type definitions for emucoleco.

Z80 interrupt modes, display modes of the TMS9918, the two controller read
formats selected through ports 0x80 / 0xC0, and the logical inputs a host
can raise on a controller.
"""

from enum import IntEnum


class InterruptMode(IntEnum):
    IM0 = 0
    IM1 = 1
    IM2 = 2


class DisplayMode(IntEnum):
    """Display modes after the M1/M2/M3 remap performed by the VDP."""
    Text = 0
    Graphics1 = 1
    Graphics2 = 2
    Multicolor = 3

    @staticmethod
    def from_bits(bits):
        """Remap the raw ``M3 | M2 << 1 | M1 << 2`` combination.

        Undefined combinations are returned unchanged so the caller can treat
        them as "no renderer available".
        """
        return _MODE_REMAP.get(bits, bits)


_MODE_REMAP = {
    0: DisplayMode.Graphics1,
    1: DisplayMode.Graphics2,
    2: DisplayMode.Multicolor,
    4: DisplayMode.Text,
}


class JoystickMode(IntEnum):
    """Which half of the controller word port 0xE0 returns."""
    Keypad = 0    # "mode A", selected by any write to 0x80-0x9F
    Joystick = 1  # "mode B", selected by any write to 0xC0-0xDF


class MachineInput(IntEnum):
    Fire = 0
    Fire2 = 1
    Up = 2
    Down = 3
    Left = 4
    Right = 5
    NumPad0 = 6
    NumPad1 = 7
    NumPad2 = 8
    NumPad3 = 9
    NumPad4 = 10
    NumPad5 = 11
    NumPad6 = 12
    NumPad7 = 13
    NumPad8 = 14
    NumPad9 = 15
    NumPadMult = 16
    NumPadHash = 17
