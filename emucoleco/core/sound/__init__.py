# emucoleco sound
"""SN76489 sound chip register model."""

from emucoleco.core.sound.sn76489 import SN76489

__all__ = ["SN76489"]
