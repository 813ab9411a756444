"""
SN76489 register model -- the sound chip behind port 0xE0-0xFF.

The chip has three square-wave tone channels and one noise channel.  The
CPU programs it one byte at a time:

* **Latch byte** (bit 7 set): ``1 cc t dddd``.  ``cc`` selects the channel,
  ``t`` selects the attenuation register (1) or the tone / noise register
  (0), and ``dddd`` is written to the low four bits of that register.
* **Data byte** (bit 7 clear): ``0 x dddddd`` writes the upper six bits of
  the latched tone register (a 10-bit divider), or the four attenuation
  bits when an attenuation register is latched.

Only the register protocol is modelled here.  A host audio back-end reads
:meth:`SN76489.frequency` / :meth:`SN76489.volume` to drive its own
synthesis.
"""

from __future__ import annotations

import logging
from typing import List

logger = logging.getLogger(__name__)

# 3.579545 MHz master clock through the chip's fixed /32 divider.
BASE_FREQUENCY: float = 3579545 / 32

TONE_CHANNELS: int = 3
NOISE_CHANNEL: int = 3

# Attenuation 0 (loudest) .. 15 (off) as 16-bit amplitudes, 2 dB per step.
VOLUME_TABLE: List[int] = [
    32767, 26028, 20675, 16422, 13045, 10362, 8231, 6568,
    5193, 4125, 3277, 2603, 2067, 1642, 1304, 0,
]

# Noise shift rates for control values 0-2; value 3 follows tone channel 2.
NOISE_FREQUENCIES: List[int] = [6991, 3496, 1748]


class SN76489:
    """Register state of the sound chip, fed one port write at a time."""

    def __init__(self) -> None:
        self.tone: List[int] = [0] * 4          # 10-bit dividers; [3] = noise control
        self.attenuation: List[int] = [0x0F] * 4
        self.latched_channel: int = 0
        self.latched_volume: bool = False
        self.write_count: int = 0

    def reset(self) -> None:
        self.tone = [0] * 4
        self.attenuation = [0x0F] * 4
        self.latched_channel = 0
        self.latched_volume = False
        self.write_count = 0

    # ------------------------------------------------------------------
    # Port hook
    # ------------------------------------------------------------------

    def write(self, value: int) -> None:
        """Apply one byte written to the sound port."""
        self.write_count += 1
        if value & 0x80:
            channel = (value >> 5) & 0x03
            self.latched_channel = channel
            self.latched_volume = bool(value & 0x10)
            data = value & 0x0F
            if self.latched_volume:
                self.attenuation[channel] = data
            else:
                self.tone[channel] = (self.tone[channel] & 0x3F0) | data
        else:
            channel = self.latched_channel
            data = value & 0x3F
            if self.latched_volume:
                self.attenuation[channel] = data & 0x0F
            else:
                self.tone[channel] = (self.tone[channel] & 0x00F) | (data << 4)
        logger.debug(
            "SN76489 write $%02X: ch%d tone=$%03X att=%d",
            value, self.latched_channel,
            self.tone[self.latched_channel], self.attenuation[self.latched_channel],
        )

    # ------------------------------------------------------------------
    # Queries for an audio back-end
    # ------------------------------------------------------------------

    def frequency(self, channel: int) -> float:
        """Output frequency in Hz of tone *channel* (0 when the divider is 0)."""
        if not 0 <= channel < TONE_CHANNELS:
            raise IndexError(f"tone channel {channel} out of range [0, {TONE_CHANNELS})")
        period = self.tone[channel]
        return BASE_FREQUENCY / period if period else 0.0

    def volume(self, channel: int) -> int:
        """Amplitude (0..32767) of *channel*, noise included."""
        return VOLUME_TABLE[self.attenuation[channel]]

    @property
    def noise_control(self) -> int:
        return self.tone[NOISE_CHANNEL] & 0x07

    @property
    def white_noise(self) -> bool:
        return bool(self.noise_control & 0x04)

    def noise_frequency(self) -> float:
        rate = self.noise_control & 0x03
        if rate == 3:
            return self.frequency(2)
        return float(NOISE_FREQUENCIES[rate])

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        return {
            "tone": list(self.tone),
            "attenuation": list(self.attenuation),
            "latched_channel": self.latched_channel,
            "latched_volume": self.latched_volume,
        }

    def restore_snapshot(self, snapshot: dict) -> None:
        self.tone = list(snapshot["tone"])
        self.attenuation = list(snapshot["attenuation"])
        self.latched_channel = snapshot["latched_channel"]
        self.latched_volume = snapshot["latched_volume"]

    def __repr__(self) -> str:
        return f"SN76489(tone={self.tone}, attenuation={self.attenuation})"
