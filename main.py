#!/usr/bin/env python3
"""
emucoleco -- ColecoVision-style console emulator.

Main entry point.  Parses command-line arguments, builds the machine from
a cartridge (and optional BIOS) image and runs it headless for a number of
frames, optionally saving the last frame as a PNG.

Usage examples::

    # Run 120 frames of a cartridge with the BIOS
    python main.py roms/game.col --bios roms/coleco.rom --frames 120

    # Save a screenshot of frame 300 at 3x zoom
    python main.py roms/game.col --bios roms/coleco.rom --frames 300 \\
        --screenshot shot.png --scale 3

    # List cartridge header information without running
    python main.py roms/game.col --info

    # Print CPU / VDP state for the first few frames
    python main.py roms/game.col --bios roms/coleco.rom --debug
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from emucoleco.core.machine import Machine
from emucoleco.shell.services.machine_factory import MachineFactory

DEBUG_FRAMES: int = 5


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="emucoleco",
        description=(
            "emucoleco -- ColecoVision-style console emulator.  "
            "Load a cartridge image and run it headless."
        ),
    )

    parser.add_argument(
        "cartridge",
        help="Path to the cartridge image (.col, .rom, .bin)",
    )

    parser.add_argument(
        "--bios", "-b",
        default=None,
        metavar="PATH",
        help="Path to an 8 KB BIOS image (optional).",
    )

    parser.add_argument(
        "--frames", "-f",
        type=int,
        default=60,
        help="Number of frames to run.  Default: 60.",
    )

    parser.add_argument(
        "--screenshot",
        default=None,
        metavar="PATH",
        help="Save the last frame as a PNG at PATH.",
    )

    parser.add_argument(
        "--scale", "-s",
        type=int,
        default=1,
        help="Screenshot scale factor (1-8).  Default: 1.",
    )

    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print cartridge metadata and exit without running.",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help=f"Print CPU/VDP diagnostics for the first {DEBUG_FRAMES} frames and exit.",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Info mode
# ---------------------------------------------------------------------------

def _print_rom_info(path: str) -> int:
    """Print human-readable metadata for a cartridge."""
    try:
        info = MachineFactory.describe(path)
    except OSError as exc:
        print(f"Error reading cartridge: {exc}", file=sys.stderr)
        return 1

    print("emucoleco Cartridge Information")
    print("=" * 40)
    for key, value in info.items():
        label = key.replace("_", " ").title()
        print(f"  {label:20s}: {value}")
    print("=" * 40)
    return 0


# ---------------------------------------------------------------------------
# Debug mode
# ---------------------------------------------------------------------------

def _run_debug(machine: Machine) -> int:
    """Run a few frames and print CPU and VDP diagnostics."""
    print("=" * 60)
    print("emucoleco Debug Diagnostics")
    print("=" * 60)
    print(f"Machine: {machine}")

    vdp = machine.vdp
    for frame_no in range(DEBUG_FRAMES):
        fb = machine.run_frame()
        lit = sum(1 for i in range(0, len(fb.rgba), 4) if fb.rgba[i:i + 3] != b"\x00\x00\x00")

        print(f"\n--- Frame {frame_no + 1} ---")
        print(f"  CPU: {machine.cpu}")
        print(f"  VDP: {vdp}")
        print("  VDP registers: " + " ".join(f"R{i}=${r:02X}" for i, r in enumerate(vdp.registers)))
        print(f"  Tables: name=${vdp.name_table:04X} pattern=${vdp.pattern_table:04X} "
              f"color=${vdp.color_table:04X} sprites=${vdp.sprite_attribute_table:04X}/"
              f"${vdp.sprite_pattern_table:04X}")
        print(f"  Frame buffer: {lit}/{fb.width * fb.height} non-black pixels")
        if machine.fault is not None:
            print(f"  FAULT: {machine.fault}")
            print(f"  Recent: {machine.fault.format_trail()}")
            break

    prefixed = machine.debug_log()
    if prefixed:
        print("\nPrefixed opcodes executed: " + " ".join(f"{op:04X}" for op in prefixed))

    print("\n" + "=" * 60)
    print("Debug complete.")
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 on bad input, 2 if the emulation faulted.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger = logging.getLogger("emucoleco.main")

    cart_path: str = os.path.expanduser(args.cartridge)
    if not os.path.isfile(cart_path):
        print(f"Error: cartridge file not found: {cart_path}", file=sys.stderr)
        return 1

    if args.info:
        return _print_rom_info(cart_path)

    if not 1 <= args.scale <= 8:
        print(f"Error: --scale must be between 1 and 8, got {args.scale}", file=sys.stderr)
        return 1

    try:
        machine = MachineFactory.create(cart_path, bios_path=args.bios)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.debug:
        return _run_debug(machine)

    logger.info("Running %d frames ...", args.frames)
    try:
        for _ in range(args.frames):
            machine.run_frame()
            if machine.fault is not None:
                break
    except KeyboardInterrupt:
        pass

    if args.screenshot:
        from emucoleco.shell.frame_renderer import FrameRenderer

        try:
            FrameRenderer(machine.frame_buffer, scale=args.scale).save_png(args.screenshot)
        except (OSError, ValueError) as exc:
            print(f"Error saving screenshot: {exc}", file=sys.stderr)
            return 1

    if machine.fault is not None:
        print(f"Emulation fault: {machine.fault}", file=sys.stderr)
        return 2

    logger.info("Exited cleanly after %d frames", machine.frame_number)
    return 0


if __name__ == "__main__":
    sys.exit(main())
