"""
Timing configuration for an emulated machine.

NTSC defaults: a 3.579545 MHz Z80 spends 228 T-states per 262-line field.
The render cadence pair (threshold / increment) throttles background
drawing to a fixed fraction of frames; it does not correspond to any
hardware timing and may be tuned freely.
"""

from __future__ import annotations

from dataclasses import dataclass

# Display line y is drawn on scanline VDP_START_LINE + y; the scanline after
# the window starts vertical blank.
VDP_START_LINE: int = 1
VDP_END_LINE: int = VDP_START_LINE + 192


@dataclass(frozen=True)
class EmulatorConfig:
    """Immutable timing parameters shared by the CPU and the VDP."""

    instruction_period: int = 228
    scanlines: int = 262
    start_line: int = VDP_START_LINE
    end_line: int = VDP_END_LINE
    render_threshold: int = 100
    render_increment: int = 75
    trace_depth: int = 16

    def __post_init__(self) -> None:
        if self.instruction_period <= 0:
            raise ValueError(
                f"instruction_period must be positive, got {self.instruction_period}"
            )
        if not 0 <= self.start_line < self.end_line < self.scanlines:
            raise ValueError(
                f"Active window [{self.start_line}, {self.end_line}) does not fit "
                f"in {self.scanlines} scanlines"
            )
        if self.end_line - self.start_line > 192:
            raise ValueError("Active window is taller than the 192-line frame")


NTSC = EmulatorConfig()
