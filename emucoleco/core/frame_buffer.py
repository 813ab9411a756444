"""
FrameBuffer -- the RGBA picture produced by the VDP.

One frame is ``width * height`` pixels of four bytes each (R, G, B, A),
laid out row-major from the top-left corner:

    ``rgba[(y * width + x) * 4 + channel]``

The alpha byte of every pixel is fixed at 255.  The VDP only ever writes
the three colour bytes, so alpha stays armed until :meth:`FrameBuffer.clear`
zeroes the buffer and re-arms it.

The buffer is consistent only at frame boundaries.  Reading it while the
VDP is part-way through the active lines shows a partially drawn picture.
"""

from __future__ import annotations

from typing import Sequence, Tuple


class FrameBuffer:
    """Holds one frame of RGBA video output.

    Parameters
    ----------
    width:
        Horizontal pixel count per line (256 for the TMS9918).
    height:
        Number of visible lines (192 for the TMS9918).
    """

    TMS9918_WIDTH: int = 256
    TMS9918_HEIGHT: int = 192
    BYTES_PER_PIXEL: int = 4

    def __init__(self, width: int, height: int) -> None:
        if width <= 0:
            raise ValueError(f"width must be positive, got {width}")
        if height <= 0:
            raise ValueError(f"height must be positive, got {height}")

        self.width: int = width
        self.height: int = height
        self.pitch: int = width * self.BYTES_PER_PIXEL
        self.rgba: bytearray = bytearray(self.pitch * height)
        self.rearm_alpha()

    # ------------------------------------------------------------------
    # Convenience factories
    # ------------------------------------------------------------------

    @classmethod
    def for_tms9918(cls) -> FrameBuffer:
        """Create a FrameBuffer sized for the 256x192 TMS9918 picture."""
        return cls(cls.TMS9918_WIDTH, cls.TMS9918_HEIGHT)

    # ------------------------------------------------------------------
    # Video helpers
    # ------------------------------------------------------------------

    def write_line(self, y: int, pixels: bytes) -> None:
        """Replace line *y* with *pixels*, ``width * 4`` RGBA bytes."""
        offset = y * self.pitch
        self.rgba[offset:offset + self.pitch] = pixels

    def set_pixel(self, x: int, y: int, rgb: Sequence[int]) -> None:
        """Write the colour bytes of one pixel; alpha is left untouched."""
        offset = y * self.pitch + x * self.BYTES_PER_PIXEL
        self.rgba[offset:offset + 3] = bytes(rgb)

    def read_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the ``(r, g, b, a)`` bytes at (*x*, *y*).

        Raises:
            IndexError: If the position is outside the frame.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(
                f"pixel ({x}, {y}) out of range {self.width}x{self.height}"
            )
        offset = y * self.pitch + x * self.BYTES_PER_PIXEL
        r, g, b, a = self.rgba[offset:offset + 4]
        return r, g, b, a

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Zero the picture and re-arm the alpha channel."""
        self.rgba[:] = bytes(len(self.rgba))
        self.rearm_alpha()

    def rearm_alpha(self) -> None:
        self.rgba[3::4] = b"\xff" * (self.width * self.height)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.rgba)

    def __repr__(self) -> str:
        return (
            f"FrameBuffer("
            f"width={self.width}, "
            f"height={self.height}, "
            f"bytes={len(self.rgba)})"
        )
