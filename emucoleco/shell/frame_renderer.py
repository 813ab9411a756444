"""
Frame renderer for emucoleco.
Converts the VDP's RGBA FrameBuffer into numpy arrays and pygame Surfaces.

The emulation core already produces true-colour pixels (four bytes per pixel,
alpha fixed at 255), so no palette look-up is needed here: the buffer is
wrapped as a ``(height, width, 4)`` numpy array and blitted into a reusable
:class:`pygame.Surface`.  Nothing in this module opens a window; a Surface
can be created and saved with the display subsystem uninitialised.
"""

from __future__ import annotations

import logging
import os

import numpy as np
import pygame

from emucoleco.core.frame_buffer import FrameBuffer

logger = logging.getLogger(__name__)


class FrameRenderer:
    """Present a :class:`FrameBuffer` as numpy arrays or a pygame Surface.

    Parameters
    ----------
    frame_buffer:
        The buffer written by the VDP.  It is read, never modified.
    scale:
        Integer zoom applied by :meth:`scaled` and :meth:`save_png`.
    """

    def __init__(self, frame_buffer: FrameBuffer, scale: int = 1) -> None:
        if scale < 1:
            raise ValueError(f"scale must be >= 1, got {scale}")
        self._frame_buffer = frame_buffer
        self.scale: int = scale
        self._surface: pygame.Surface = pygame.Surface(
            (frame_buffer.width, frame_buffer.height)
        )
        logger.info(
            "FrameRenderer: %dx%d (scale=%d)",
            frame_buffer.width,
            frame_buffer.height,
            scale,
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._frame_buffer.width

    @property
    def height(self) -> int:
        return self._frame_buffer.height

    @property
    def surface(self) -> pygame.Surface:
        """The internal pygame Surface (updated on each :meth:`render` call)."""
        return self._surface

    def to_array(self) -> np.ndarray:
        """Return a ``(height, width, 4)`` uint8 copy of the RGBA frame."""
        fb = self._frame_buffer
        raw = np.frombuffer(fb.rgba, dtype=np.uint8)
        return raw.reshape((fb.height, fb.width, 4)).copy()

    def to_rgb(self) -> np.ndarray:
        """Return the frame as ``(height, width, 3)``, alpha dropped."""
        return self.to_array()[:, :, :3]

    def render(self) -> pygame.Surface:
        """Copy the current frame into the internal surface and return it.

        The same :class:`pygame.Surface` object is reused each frame to
        avoid allocation churn.
        """
        rgb = self.to_rgb()
        # pygame surfarray expects (W, H, 3) -- transpose width and height.
        pygame.surfarray.blit_array(self._surface, rgb.transpose(1, 0, 2))
        return self._surface

    def scaled(self) -> pygame.Surface:
        """Render and return a copy zoomed by :attr:`scale`."""
        surface = self.render()
        if self.scale == 1:
            return surface.copy()
        return pygame.transform.scale(
            surface, (self.width * self.scale, self.height * self.scale)
        )

    def save_png(self, path: str) -> str:
        """Write the current frame to *path* as a PNG and return the path.

        Raises:
            FileNotFoundError: If the target directory does not exist.
        """
        path = os.path.expanduser(path)
        directory = os.path.dirname(path)
        if directory and not os.path.isdir(directory):
            raise FileNotFoundError(f"Directory not found: {directory}")
        pygame.image.save(self.scaled(), path)
        logger.info("Saved screenshot to %s", path)
        return path
