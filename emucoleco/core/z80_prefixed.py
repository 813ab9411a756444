"""
Dispatch tables for the Z80 prefixed instruction groups.

* ``CB`` -- rotates/shifts, BIT, RES and SET over the eight register fields.
  Every one of the 256 entries is defined.
* ``ED`` -- block transfers and searches, block and register port I/O,
  16-bit ADC/SBC and memory loads, NEG, RETN/RETI, IM, the I/R moves and
  RLD/RRD.  Entries left as ``None`` fault when executed.
* ``DD`` / ``FD`` -- the HL instructions redirected to IX or IY, including
  ``(IX+d)`` addressing, the undocumented IXH/IXL halves and the
  ``DD CB d op`` bit group.  Opcodes that do not touch HL are left as
  ``None``.

Each handler charges the full instruction cost, prefix fetches included.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Optional

from emucoleco.core.types import InterruptMode
from emucoleco.core.z80_tables import (
    FLAG_C,
    FLAG_H,
    FLAG_N,
    FLAG_PV,
    FLAG_S,
    FLAG_X,
    FLAG_Y,
    FLAG_Z,
    SZYX,
    SZYXP,
)

if TYPE_CHECKING:
    from emucoleco.core.z80 import Z80

Handler = Callable[[], None]

# ED 46/4E/56/5E (and mirrors): the 0/1 encoding at 4E selects mode 0.
_IM_ENCODING = (
    InterruptMode.IM0, InterruptMode.IM0, InterruptMode.IM1, InterruptMode.IM2,
)


# ======================================================================
# CB: rotates, BIT, RES, SET
# ======================================================================

def build_cb_table(cpu: Z80) -> List[Handler]:
    t: List[Handler] = []
    clk = cpu.clk
    for op in range(256):
        reg = op & 7
        bit = (op >> 3) & 7
        group = op >> 6
        slow = reg == 6

        if group == 0:
            def handler(reg: int = reg, kind: int = bit, slow: bool = slow) -> None:
                cpu.set_reg8(reg, cpu.rotate(kind, cpu.get_reg8(reg)))
                clk(15 if slow else 8)
        elif group == 1:
            def handler(reg: int = reg, bit: int = bit, slow: bool = slow) -> None:
                value = cpu.get_reg8(reg)
                cpu.bit_test(bit, value, value)
                clk(12 if slow else 8)
        elif group == 2:
            def handler(reg: int = reg, mask: int = ~(1 << bit) & 0xFF,
                        slow: bool = slow) -> None:
                cpu.set_reg8(reg, cpu.get_reg8(reg) & mask)
                clk(15 if slow else 8)
        else:
            def handler(reg: int = reg, mask: int = 1 << bit, slow: bool = slow) -> None:
                cpu.set_reg8(reg, cpu.get_reg8(reg) | mask)
                clk(15 if slow else 8)
        t.append(handler)
    return t


# ======================================================================
# ED: extended instructions
# ======================================================================

def build_ed_table(cpu: Z80) -> List[Optional[Handler]]:
    t: List[Optional[Handler]] = [None] * 256
    regs = cpu.regs
    mem = cpu.mem
    clk = cpu.clk

    # -- IN r,(C) / OUT (C),r; field 6 is the flags-only IN and OUT (C),0 --
    for r in range(8):
        def in_r_c(r: int = r) -> None:
            value = cpu.port_in(regs.c)
            regs.f = (regs.f & FLAG_C) | SZYXP[value]
            if r != 6:
                cpu.set_reg8(r, value)
            clk(12)

        def out_c_r(r: int = r) -> None:
            cpu.port_out(regs.c, 0 if r == 6 else cpu.get_reg8(r))
            clk(12)

        t[0x40 | r << 3] = in_r_c
        t[0x41 | r << 3] = out_c_r

    # -- 16-bit arithmetic and memory loads over BC, DE, HL, SP --------
    for p in range(4):
        def sbc_hl(p: int = p) -> None:
            regs.hl = cpu.sbc16(regs.hl, cpu.get_pair(p))
            clk(15)

        def adc_hl(p: int = p) -> None:
            regs.hl = cpu.adc16(regs.hl, cpu.get_pair(p))
            clk(15)

        def ld_nn_rr(p: int = p) -> None:
            cpu.write16(cpu.fetch16(), cpu.get_pair(p))
            clk(20)

        def ld_rr_nn(p: int = p) -> None:
            cpu.set_pair(p, cpu.read16(cpu.fetch16()))
            clk(20)

        t[0x42 | p << 4] = sbc_hl
        t[0x4A | p << 4] = adc_hl
        t[0x43 | p << 4] = ld_nn_rr
        t[0x4B | p << 4] = ld_rr_nn

    # -- NEG, RETN / RETI, IM (documented and mirrored encodings) ------
    def neg() -> None:
        regs.a = cpu.sub8(0, regs.a)
        clk(8)

    def retn() -> None:
        regs.iff1 = regs.iff2
        regs.pc = cpu.pop()
        clk(14)

    for y in range(8):
        t[0x44 | y << 3] = neg
        t[0x45 | y << 3] = retn

        def im(mode: int = _IM_ENCODING[y & 3]) -> None:
            regs.int_mode = mode
            clk(8)
        t[0x46 | y << 3] = im

    # -- I / R moves ---------------------------------------------------
    def ld_i_a() -> None:
        regs.i = regs.a
        clk(9)
    t[0x47] = ld_i_a

    def ld_r_a() -> None:
        regs.r = regs.a
        clk(9)
    t[0x4F] = ld_r_a

    def ld_a_i() -> None:
        regs.a = regs.i
        regs.f = (regs.f & FLAG_C) | SZYX[regs.a] | (FLAG_PV if regs.iff2 else 0)
        clk(9)
    t[0x57] = ld_a_i

    def ld_a_r() -> None:
        regs.a = regs.r
        regs.f = (regs.f & FLAG_C) | SZYX[regs.a] | (FLAG_PV if regs.iff2 else 0)
        clk(9)
    t[0x5F] = ld_a_r

    # -- Nibble rotates ------------------------------------------------
    def rrd() -> None:
        hl = regs.hl
        value = mem[hl]
        a = regs.a
        mem[hl] = ((a << 4) | (value >> 4)) & 0xFF
        regs.a = (a & 0xF0) | (value & 0x0F)
        regs.f = (regs.f & FLAG_C) | SZYXP[regs.a]
        clk(18)
    t[0x67] = rrd

    def rld() -> None:
        hl = regs.hl
        value = mem[hl]
        a = regs.a
        mem[hl] = ((value << 4) | (a & 0x0F)) & 0xFF
        regs.a = (a & 0xF0) | (value >> 4)
        regs.f = (regs.f & FLAG_C) | SZYXP[regs.a]
        clk(18)
    t[0x6F] = rld

    # -- Block instructions: step +1 (I) or -1 (D), optionally repeated --
    for step, base in ((1, 0xA0), (-1, 0xA8)):
        for repeat in (False, True):
            op = base | (0x10 if repeat else 0)
            t[op] = _block_ld(cpu, step, repeat)
            t[op | 1] = _block_cp(cpu, step, repeat)
            t[op | 2] = _block_in(cpu, step, repeat)
            t[op | 3] = _block_out(cpu, step, repeat)

    return t


def _block_ld(cpu: Z80, step: int, repeat: bool) -> Handler:
    regs = cpu.regs
    mem = cpu.mem

    def handler() -> None:
        value = mem[regs.hl]
        mem[regs.de] = value
        regs.hl = (regs.hl + step) & 0xFFFF
        regs.de = (regs.de + step) & 0xFFFF
        regs.bc = (regs.bc - 1) & 0xFFFF
        n = (value + regs.a) & 0xFF
        f = (regs.f & (FLAG_S | FLAG_Z | FLAG_C)) | (n & FLAG_X) | ((n << 4) & FLAG_Y)
        if regs.bc:
            f |= FLAG_PV
        regs.f = f
        if repeat and regs.bc:
            regs.pc = (regs.pc - 2) & 0xFFFF
            cpu.clk(21)
        else:
            cpu.clk(16)
    return handler


def _block_cp(cpu: Z80, step: int, repeat: bool) -> Handler:
    regs = cpu.regs
    mem = cpu.mem

    def handler() -> None:
        value = mem[regs.hl]
        a = regs.a
        res = (a - value) & 0xFF
        half = (a ^ value ^ res) & FLAG_H
        regs.hl = (regs.hl + step) & 0xFFFF
        regs.bc = (regs.bc - 1) & 0xFFFF
        n = (res - (1 if half else 0)) & 0xFF
        f = (regs.f & FLAG_C) | FLAG_N | (res & FLAG_S) | half
        f |= (n & FLAG_X) | ((n << 4) & FLAG_Y)
        if res == 0:
            f |= FLAG_Z
        if regs.bc:
            f |= FLAG_PV
        regs.f = f
        if repeat and regs.bc and res:
            regs.pc = (regs.pc - 2) & 0xFFFF
            cpu.clk(21)
        else:
            cpu.clk(16)
    return handler


def _block_in(cpu: Z80, step: int, repeat: bool) -> Handler:
    regs = cpu.regs
    mem = cpu.mem

    def handler() -> None:
        mem[regs.hl] = cpu.port_in(regs.c)
        regs.hl = (regs.hl + step) & 0xFFFF
        regs.b = regs.b - 1
        regs.f = SZYX[regs.b] | FLAG_N
        if repeat and regs.b:
            regs.pc = (regs.pc - 2) & 0xFFFF
            cpu.clk(21)
        else:
            cpu.clk(16)
    return handler


def _block_out(cpu: Z80, step: int, repeat: bool) -> Handler:
    regs = cpu.regs
    mem = cpu.mem

    def handler() -> None:
        value = mem[regs.hl]
        regs.b = regs.b - 1
        cpu.port_out(regs.c, value)
        regs.hl = (regs.hl + step) & 0xFFFF
        regs.f = SZYX[regs.b] | FLAG_N
        if repeat and regs.b:
            regs.pc = (regs.pc - 2) & 0xFFFF
            cpu.clk(21)
        else:
            cpu.clk(16)
    return handler


# ======================================================================
# DD / FD: IX and IY
# ======================================================================

def build_index_table(cpu: Z80, name: str) -> List[Optional[Handler]]:
    """Build the DD (``name="ix"``) or FD (``name="iy"``) table."""
    t: List[Optional[Handler]] = [None] * 256
    regs = cpu.regs
    mem = cpu.mem
    clk = cpu.clk
    prefix = 0xDD if name == "ix" else 0xFD

    def get_idx() -> int:
        return getattr(regs, name)

    def set_idx(value: int) -> None:
        setattr(regs, name, value & 0xFFFF)

    def addr_d() -> int:
        return (get_idx() + cpu.fetch_disp()) & 0xFFFF

    # H and L become the index halves; the others decode as usual.
    def get8(r: int) -> int:
        if r == 4:
            return get_idx() >> 8
        if r == 5:
            return get_idx() & 0xFF
        return cpu.get_reg8(r)

    def set8(r: int, value: int) -> None:
        if r == 4:
            set_idx(((value & 0xFF) << 8) | (get_idx() & 0xFF))
        elif r == 5:
            set_idx((get_idx() & 0xFF00) | (value & 0xFF))
        else:
            cpu.set_reg8(r, value)

    def get_pair(p: int) -> int:
        return get_idx() if p == 2 else cpu.get_pair(p)

    # -- ADD IX,rr over BC, DE, IX, SP -----------------------------------
    for p in range(4):
        def add_idx(p: int = p) -> None:
            set_idx(cpu.add16(get_idx(), get_pair(p)))
            clk(15)
        t[0x09 | p << 4] = add_idx

    # -- 16-bit loads and INC / DEC ----------------------------------------
    def op_21() -> None:
        set_idx(cpu.fetch16())
        clk(14)
    t[0x21] = op_21

    def op_22() -> None:
        cpu.write16(cpu.fetch16(), get_idx())
        clk(20)
    t[0x22] = op_22

    def op_2a() -> None:
        set_idx(cpu.read16(cpu.fetch16()))
        clk(20)
    t[0x2A] = op_2a

    def op_23() -> None:
        set_idx(get_idx() + 1)
        clk(10)
    t[0x23] = op_23

    def op_2b() -> None:
        set_idx(get_idx() - 1)
        clk(10)
    t[0x2B] = op_2b

    # -- IXH / IXL: INC, DEC, LD n ---------------------------------------
    for r in (4, 5):
        def inc_half(r: int = r) -> None:
            set8(r, cpu.inc8(get8(r)))
            clk(8)

        def dec_half(r: int = r) -> None:
            set8(r, cpu.dec8(get8(r)))
            clk(8)

        def ld_half_n(r: int = r) -> None:
            set8(r, cpu.fetch8())
            clk(11)

        t[0x04 | r << 3] = inc_half
        t[0x05 | r << 3] = dec_half
        t[0x06 | r << 3] = ld_half_n

    # -- (IX+d) read-modify-write and immediate store --------------------
    def op_34() -> None:
        addr = addr_d()
        mem[addr] = cpu.inc8(mem[addr])
        clk(23)
    t[0x34] = op_34

    def op_35() -> None:
        addr = addr_d()
        mem[addr] = cpu.dec8(mem[addr])
        clk(23)
    t[0x35] = op_35

    def op_36() -> None:
        addr = addr_d()
        mem[addr] = cpu.fetch8()
        clk(19)
    t[0x36] = op_36

    # -- LD group ------------------------------------------------------
    for dst in range(8):
        for src in range(8):
            op = 0x40 | dst << 3 | src
            if dst == 6 and src == 6:
                continue
            if src == 6:
                def ld_r_idx(dst: int = dst) -> None:
                    cpu.set_reg8(dst, mem[addr_d()])
                    clk(19)
                t[op] = ld_r_idx
            elif dst == 6:
                def ld_idx_r(src: int = src) -> None:
                    mem[addr_d()] = cpu.get_reg8(src)
                    clk(19)
                t[op] = ld_idx_r
            elif dst in (4, 5) or src in (4, 5):
                def ld_half(dst: int = dst, src: int = src) -> None:
                    set8(dst, get8(src))
                    clk(8)
                t[op] = ld_half

    # -- ALU group -----------------------------------------------------
    for op_index in range(8):
        def alu_idx(op_index: int = op_index) -> None:
            cpu.alu(op_index, mem[addr_d()])
            clk(19)

        def alu_h(op_index: int = op_index) -> None:
            cpu.alu(op_index, get8(4))
            clk(8)

        def alu_l(op_index: int = op_index) -> None:
            cpu.alu(op_index, get8(5))
            clk(8)

        t[0x86 | op_index << 3] = alu_idx
        t[0x84 | op_index << 3] = alu_h
        t[0x85 | op_index << 3] = alu_l

    # -- Stack and flow ------------------------------------------------
    def op_e1() -> None:
        set_idx(cpu.pop())
        clk(14)
    t[0xE1] = op_e1

    def op_e5() -> None:
        cpu.push(get_idx())
        clk(15)
    t[0xE5] = op_e5

    def op_e3() -> None:
        sp = regs.sp
        value = cpu.read16(sp)
        cpu.write16(sp, get_idx())
        set_idx(value)
        clk(23)
    t[0xE3] = op_e3

    def op_e9() -> None:
        regs.pc = get_idx()
        clk(8)
    t[0xE9] = op_e9

    def op_f9() -> None:
        regs.sp = get_idx()
        clk(10)
    t[0xF9] = op_f9

    # -- DD CB d op ----------------------------------------------------
    def op_cb() -> None:
        addr = addr_d()
        op = cpu.fetch8()
        cpu.debug_items.add((prefix << 8 | 0xCB) << 8 | op)
        value = mem[addr]
        reg = op & 7
        bit = (op >> 3) & 7
        group = op >> 6
        if group == 1:
            cpu.bit_test(bit, value, addr >> 8)
            clk(20)
            return
        if group == 0:
            res = cpu.rotate(bit, value)
        elif group == 2:
            res = value & ~(1 << bit) & 0xFF
        else:
            res = value | (1 << bit)
        mem[addr] = res
        # Undocumented: the result is also copied to the register field.
        if reg != 6:
            cpu.set_reg8(reg, res)
        clk(23)
    t[0xCB] = op_cb

    return t
