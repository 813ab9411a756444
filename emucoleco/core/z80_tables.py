"""
Precomputed flag tables for the Z80 ALU.

``SZYX[v]``  -- Sign, Zero and the undocumented bits 5/3 for result *v*.
``SZYXP[v]`` -- the same plus even Parity, used by the logical, rotate and
               I/O instructions.
"""

from typing import List

FLAG_C: int = 0x01
FLAG_N: int = 0x02
FLAG_PV: int = 0x04
FLAG_X: int = 0x08
FLAG_H: int = 0x10
FLAG_Y: int = 0x20
FLAG_Z: int = 0x40
FLAG_S: int = 0x80

FLAGS_YX: int = FLAG_Y | FLAG_X
FLAGS_SYX: int = FLAG_S | FLAG_Y | FLAG_X


def _build_szyx() -> List[int]:
    table = []
    for v in range(256):
        f = v & FLAGS_SYX
        if v == 0:
            f |= FLAG_Z
        table.append(f)
    return table


def _build_szyxp() -> List[int]:
    table = []
    for v, f in enumerate(SZYX):
        if bin(v).count("1") % 2 == 0:
            f |= FLAG_PV
        table.append(f)
    return table


SZYX: List[int] = _build_szyx()
SZYXP: List[int] = _build_szyxp()

assert len(SZYX) == 256
assert len(SZYXP) == 256
