"""
Static colour data for the TMS9918 video display processor.

The chip has a fixed 16-entry palette.  Index 0 is "transparent": it shows
the layer underneath, which on this console ends up black.
"""

from typing import List, Tuple

# fmt: off
TMS9918_PALETTE: List[int] = [
    0x000000,  # 0  transparent
    0x000000,  # 1  black
    0x24DA24,  # 2  medium green
    0x6DFF6D,  # 3  light green
    0x2424FF,  # 4  dark blue
    0x486DFF,  # 5  light blue
    0xB62424,  # 6  dark red
    0x48DAFF,  # 7  cyan
    0xFF2424,  # 8  medium red
    0xFF6D6D,  # 9  light red
    0xDADA24,  # 10 dark yellow
    0xDADA91,  # 11 light yellow
    0x249124,  # 12 dark green
    0xDA48B6,  # 13 magenta
    0xB6B6B6,  # 14 grey
    0xFFFFFF,  # 15 white
]
# fmt: on

assert len(TMS9918_PALETTE) == 16, f"TMS9918 palette must have 16 entries, got {len(TMS9918_PALETTE)}"

# (r, g, b) per palette index, for single-pixel writes.
PALETTE_RGB: List[Tuple[int, int, int]] = [
    ((c >> 16) & 0xFF, (c >> 8) & 0xFF, c & 0xFF) for c in TMS9918_PALETTE
]

# Four RGBA bytes per palette index, alpha fixed at 255, for whole-line writes.
PALETTE_RGBA: List[bytes] = [bytes((r, g, b, 0xFF)) for r, g, b in PALETTE_RGB]
