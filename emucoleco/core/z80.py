"""
Zilog Z80 CPU emulator for emucoleco.

Implements the documented Z80 instruction set, the undocumented flag bits 3
and 5, the IXH/IXL/IYH/IYL register forms and the DD CB / FD CB indexed bit
group.  Opcodes are dispatched through 256-entry tables of closures: the
base table lives here, the CB / ED / DD / FD tables are built in
:mod:`emucoleco.core.z80_prefixed`.  Register sub-fields are decoded by
shared helpers (:meth:`Z80.get_reg8`, :meth:`Z80.get_pair` and friends)
rather than one body per opcode.

Timing
------
Each instruction returns its cost in T-states.  The CPU counts the cost
down from ``regs.instruction_count``; whenever the count is exhausted it
adds ``regs.instruction_period`` back and calls :attr:`Z80.on_scanline`
(the VDP tick) once.  The VDP may in turn raise an NMI, which the next
:meth:`Z80.step` services.

Interrupts
----------
* NMI is never masked: clears halted and IFF1, pushes PC, jumps to $0066.
* INT is accepted when IFF1 is set.  Only mode 1 (RST $38) is wired on the
  console; modes 0 and 2 raise :class:`UnsupportedInterruptModeError`.
* HALT leaves PC on the following instruction and sets ``halted``; a halted
  CPU returns 0 cycles from :meth:`Z80.step` until an interrupt arrives.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List, Optional, Set, Tuple

from emucoleco.core.devices import IPortDevice, NullPortDevice
from emucoleco.core.errors import (
    EmulationFault,
    UnimplementedOpcodeError,
    UnsupportedInterruptModeError,
)
from emucoleco.core.registers import RegisterFile
from emucoleco.core.types import InterruptMode
from emucoleco.core.z80_prefixed import (
    build_cb_table,
    build_ed_table,
    build_index_table,
)
from emucoleco.core.z80_tables import (
    FLAG_C,
    FLAG_H,
    FLAG_N,
    FLAG_PV,
    FLAG_S,
    FLAG_Z,
    FLAGS_SYX,
    FLAGS_YX,
    SZYX,
    SZYXP,
)

Handler = Callable[[], None]


class Z80:
    """Z80 CPU core.

    Parameters
    ----------
    memory:
        The flat 64 KB address space, indexed directly.
    io:
        Port device receiving IN / OUT.  Defaults to a device that reads
        zero and ignores writes, which is enough to run the CPU alone.
    instruction_period:
        T-states between two calls of :attr:`on_scanline`.
    trace_depth:
        Number of ``(pc, opcode)`` pairs kept in :attr:`recent`.
    """

    # ------------------------------------------------------------------
    # Interrupt vectors and fixed costs
    # ------------------------------------------------------------------
    NMI_VECTOR: int = 0x0066
    IM1_VECTOR: int = 0x0038
    NMI_CYCLES: int = 11
    IM1_CYCLES: int = 13

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        memory: bytearray,
        io: Optional[IPortDevice] = None,
        instruction_period: int = RegisterFile.DEFAULT_PERIOD,
        trace_depth: int = 16,
    ) -> None:
        self.mem: bytearray = memory
        self.io: IPortDevice = io if io is not None else NullPortDevice()
        self.regs: RegisterFile = RegisterFile(instruction_period)

        # Called once per exhausted instruction period (the VDP line clock).
        self.on_scanline: Optional[Callable[[], None]] = None

        # Debug surface
        self.recent: Deque[Tuple[int, int]] = deque(maxlen=trace_depth)
        self.debug_items: Set[int] = set()

        self._cycles: int = 0
        self._op_pc: int = 0

        self._cb: List[Handler] = build_cb_table(self)
        self._ed: List[Optional[Handler]] = build_ed_table(self)
        self._dd: List[Optional[Handler]] = build_index_table(self, "ix")
        self._fd: List[Optional[Handler]] = build_index_table(self, "iy")
        self._base: List[Handler] = self._build_opcode_table()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.regs.reset()
        self.recent.clear()
        self.debug_items.clear()
        self._cycles = 0

    # ------------------------------------------------------------------
    # Interrupt request lines
    # ------------------------------------------------------------------

    def request_nmi(self) -> None:
        self.regs.nmi = True

    def request_interrupt(self) -> None:
        self.regs.int = True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def step(self) -> int:
        """Execute one instruction or interrupt dispatch.

        Returns:
            The T-states consumed, or 0 while halted.

        Raises:
            EmulationFault: On an unimplemented opcode, an unsupported
                interrupt mode, or an unmapped port.
        """
        regs = self.regs

        if regs.nmi:
            regs.nmi = False
            regs.halted = False
            regs.iff1 = False
            regs.increment_r()
            self.push(regs.pc)
            regs.pc = self.NMI_VECTOR
            return self._account(self.NMI_CYCLES)

        if regs.int and regs.iff1:
            regs.halted = False
            if regs.int_mode != InterruptMode.IM1:
                raise UnsupportedInterruptModeError(
                    regs.int_mode, regs.pc
                ).with_trail(self.recent)
            regs.int = False
            regs.iff1 = regs.iff2 = False
            regs.increment_r()
            self.push(regs.pc)
            regs.pc = self.IM1_VECTOR
            return self._account(self.IM1_CYCLES)

        if regs.halted:
            return 0

        pc = regs.pc
        op = self.mem[pc]
        regs.pc = (pc + 1) & 0xFFFF
        regs.increment_r()
        self._op_pc = pc
        self.recent.append((pc, op))
        self._cycles = 0
        try:
            self._base[op]()
        except EmulationFault as fault:
            fault.pc = pc
            raise fault.with_trail(self.recent)
        return self._account(self._cycles)

    def idle(self, cycles: int) -> int:
        """Burn *cycles* T-states without executing, as HALT does on the bus.

        The scanline clock keeps running, so the VDP can still raise the
        NMI that ends the halt.
        """
        self.regs.increment_r()
        return self._account(cycles)

    def _account(self, cycles: int) -> int:
        regs = self.regs
        regs.instruction_count -= cycles
        while regs.instruction_count <= 0:
            regs.instruction_count += regs.instruction_period
            if self.on_scanline is not None:
                self.on_scanline()
        return cycles

    def clk(self, cycles: int) -> None:
        self._cycles += cycles

    # ------------------------------------------------------------------
    # Bus helpers
    # ------------------------------------------------------------------

    def read8(self, addr: int) -> int:
        return self.mem[addr & 0xFFFF]

    def write8(self, addr: int, value: int) -> None:
        self.mem[addr & 0xFFFF] = value & 0xFF

    def read16(self, addr: int) -> int:
        mem = self.mem
        return mem[addr & 0xFFFF] | (mem[(addr + 1) & 0xFFFF] << 8)

    def write16(self, addr: int, value: int) -> None:
        mem = self.mem
        mem[addr & 0xFFFF] = value & 0xFF
        mem[(addr + 1) & 0xFFFF] = (value >> 8) & 0xFF

    def fetch8(self) -> int:
        regs = self.regs
        pc = regs.pc
        regs.pc = (pc + 1) & 0xFFFF
        return self.mem[pc]

    def fetch16(self) -> int:
        lo = self.fetch8()
        return lo | (self.fetch8() << 8)

    def fetch_disp(self) -> int:
        """Fetch a signed displacement byte."""
        d = self.fetch8()
        return d - 256 if d & 0x80 else d

    def push(self, value: int) -> None:
        regs = self.regs
        sp = (regs.sp - 1) & 0xFFFF
        self.mem[sp] = (value >> 8) & 0xFF
        sp = (sp - 1) & 0xFFFF
        self.mem[sp] = value & 0xFF
        regs.sp = sp

    def pop(self) -> int:
        regs = self.regs
        sp = regs.sp
        value = self.mem[sp] | (self.mem[(sp + 1) & 0xFFFF] << 8)
        regs.sp = (sp + 2) & 0xFFFF
        return value

    def port_in(self, port: int) -> int:
        return self.io.read_port(port & 0xFF) & 0xFF

    def port_out(self, port: int, value: int) -> None:
        self.io.write_port(port & 0xFF, value & 0xFF)

    # ------------------------------------------------------------------
    # Register-field decode: r = bits 0-2 / 3-5, rr = bits 4-5, cc = 3-5
    # ------------------------------------------------------------------

    def get_reg8(self, index: int) -> int:
        regs = self.regs
        if index == 0:
            return regs.b
        if index == 1:
            return regs.c
        if index == 2:
            return regs.d
        if index == 3:
            return regs.e
        if index == 4:
            return regs.h
        if index == 5:
            return regs.l
        if index == 6:
            return self.mem[regs.hl]
        return regs.a

    def set_reg8(self, index: int, value: int) -> None:
        regs = self.regs
        if index == 0:
            regs.b = value
        elif index == 1:
            regs.c = value
        elif index == 2:
            regs.d = value
        elif index == 3:
            regs.e = value
        elif index == 4:
            regs.h = value
        elif index == 5:
            regs.l = value
        elif index == 6:
            self.mem[regs.hl] = value & 0xFF
        else:
            regs.a = value

    def get_pair(self, index: int) -> int:
        """BC / DE / HL / SP."""
        regs = self.regs
        if index == 0:
            return regs.bc
        if index == 1:
            return regs.de
        if index == 2:
            return regs.hl
        return regs.sp

    def set_pair(self, index: int, value: int) -> None:
        regs = self.regs
        value &= 0xFFFF
        if index == 0:
            regs.bc = value
        elif index == 1:
            regs.de = value
        elif index == 2:
            regs.hl = value
        else:
            regs.sp = value

    def get_pair_af(self, index: int) -> int:
        """BC / DE / HL / AF, the PUSH / POP decode."""
        return self.regs.af if index == 3 else self.get_pair(index)

    def set_pair_af(self, index: int, value: int) -> None:
        if index == 3:
            self.regs.af = value & 0xFFFF
        else:
            self.set_pair(index, value)

    def condition(self, index: int) -> bool:
        """NZ, Z, NC, C, PO, PE, P, M."""
        f = self.regs.f
        if index == 0:
            return not f & FLAG_Z
        if index == 1:
            return bool(f & FLAG_Z)
        if index == 2:
            return not f & FLAG_C
        if index == 3:
            return bool(f & FLAG_C)
        if index == 4:
            return not f & FLAG_PV
        if index == 5:
            return bool(f & FLAG_PV)
        if index == 6:
            return not f & FLAG_S
        return bool(f & FLAG_S)

    # ------------------------------------------------------------------
    # 8-bit ALU
    # ------------------------------------------------------------------

    def add8(self, a: int, b: int, carry: int = 0) -> int:
        """Return ``a + b + carry`` and set every flag from the addition."""
        r = a + b + carry
        res = r & 0xFF
        f = SZYX[res]
        if (a ^ b ^ r) & 0x10:
            f |= FLAG_H
        if (a ^ r) & (b ^ r) & 0x80:
            f |= FLAG_PV
        if r > 0xFF:
            f |= FLAG_C
        self.regs.f = f
        return res

    def sub8(self, a: int, b: int, carry: int = 0) -> int:
        """Return ``a - b - carry`` and set every flag from the subtraction."""
        r = a - b - carry
        res = r & 0xFF
        f = SZYX[res] | FLAG_N
        if (a ^ b ^ r) & 0x10:
            f |= FLAG_H
        if (a ^ b) & (a ^ r) & 0x80:
            f |= FLAG_PV
        if r < 0:
            f |= FLAG_C
        self.regs.f = f
        return res

    def cp8(self, a: int, b: int) -> None:
        # Bits 5 and 3 come from the operand, not the discarded difference.
        self.sub8(a, b)
        regs = self.regs
        regs.f = (regs.f & ~FLAGS_YX) | (b & FLAGS_YX)

    def and8(self, a: int, b: int) -> int:
        res = a & b
        self.regs.f = SZYXP[res] | FLAG_H
        return res

    def xor8(self, a: int, b: int) -> int:
        res = (a ^ b) & 0xFF
        self.regs.f = SZYXP[res]
        return res

    def or8(self, a: int, b: int) -> int:
        res = (a | b) & 0xFF
        self.regs.f = SZYXP[res]
        return res

    def inc8(self, v: int) -> int:
        res = (v + 1) & 0xFF
        f = (self.regs.f & FLAG_C) | SZYX[res]
        if (v & 0x0F) == 0x0F:
            f |= FLAG_H
        if v == 0x7F:
            f |= FLAG_PV
        self.regs.f = f
        return res

    def dec8(self, v: int) -> int:
        res = (v - 1) & 0xFF
        f = (self.regs.f & FLAG_C) | SZYX[res] | FLAG_N
        if (v & 0x0F) == 0:
            f |= FLAG_H
        if v == 0x80:
            f |= FLAG_PV
        self.regs.f = f
        return res

    def alu(self, index: int, value: int) -> None:
        """ADD, ADC, SUB, SBC, AND, XOR, OR, CP of *value* into A."""
        regs = self.regs
        a = regs.a
        if index == 0:
            regs.a = self.add8(a, value)
        elif index == 1:
            regs.a = self.add8(a, value, regs.f & FLAG_C)
        elif index == 2:
            regs.a = self.sub8(a, value)
        elif index == 3:
            regs.a = self.sub8(a, value, regs.f & FLAG_C)
        elif index == 4:
            regs.a = self.and8(a, value)
        elif index == 5:
            regs.a = self.xor8(a, value)
        elif index == 6:
            regs.a = self.or8(a, value)
        else:
            self.cp8(a, value)

    # ------------------------------------------------------------------
    # Rotates and shifts (CB group 0)
    # ------------------------------------------------------------------

    def rotate(self, index: int, v: int) -> int:
        """RLC, RRC, RL, RR, SLA, SRA, SLL, SRL of *v*; sets flags."""
        if index == 0:
            c = v >> 7
            res = ((v << 1) | c) & 0xFF
        elif index == 1:
            c = v & 1
            res = (v >> 1) | (c << 7)
        elif index == 2:
            c = v >> 7
            res = ((v << 1) | (self.regs.f & FLAG_C)) & 0xFF
        elif index == 3:
            c = v & 1
            res = (v >> 1) | ((self.regs.f & FLAG_C) << 7)
        elif index == 4:
            c = v >> 7
            res = (v << 1) & 0xFF
        elif index == 5:
            c = v & 1
            res = (v >> 1) | (v & 0x80)
        elif index == 6:
            c = v >> 7
            res = ((v << 1) | 1) & 0xFF
        else:
            c = v & 1
            res = v >> 1
        self.regs.f = SZYXP[res] | c
        return res

    def rotate_a(self, index: int) -> None:
        """RLCA, RRCA, RLA, RRA: S, Z and P/V are preserved."""
        regs = self.regs
        keep = regs.f & (FLAG_S | FLAG_Z | FLAG_PV)
        res = self.rotate(index, regs.a)
        regs.a = res
        regs.f = keep | (res & FLAGS_YX) | (regs.f & FLAG_C)

    def bit_test(self, bit: int, value: int, yx_source: int) -> None:
        f = (self.regs.f & FLAG_C) | FLAG_H | (yx_source & FLAGS_YX)
        if not value & (1 << bit):
            f |= FLAG_Z | FLAG_PV
        elif bit == 7:
            f |= FLAG_S
        self.regs.f = f

    # ------------------------------------------------------------------
    # 16-bit ALU (the result high byte supplies bits 5 and 3)
    # ------------------------------------------------------------------

    def add16(self, a: int, b: int) -> int:
        """ADD HL/IX/IY,rr: only H, N, C and bits 5/3 change."""
        r = a + b
        regs = self.regs
        f = (regs.f & (FLAG_S | FLAG_Z | FLAG_PV)) | ((r >> 8) & FLAGS_YX)
        if (a ^ b ^ r) & 0x1000:
            f |= FLAG_H
        if r > 0xFFFF:
            f |= FLAG_C
        regs.f = f
        return r & 0xFFFF

    def adc16(self, a: int, b: int) -> int:
        r = a + b + (self.regs.f & FLAG_C)
        res = r & 0xFFFF
        f = (res >> 8) & FLAGS_SYX
        if res == 0:
            f |= FLAG_Z
        if (a ^ b ^ r) & 0x1000:
            f |= FLAG_H
        if (a ^ r) & (b ^ r) & 0x8000:
            f |= FLAG_PV
        if r > 0xFFFF:
            f |= FLAG_C
        self.regs.f = f
        return res

    def sbc16(self, a: int, b: int) -> int:
        r = a - b - (self.regs.f & FLAG_C)
        res = r & 0xFFFF
        f = ((res >> 8) & FLAGS_SYX) | FLAG_N
        if res == 0:
            f |= FLAG_Z
        if (a ^ b ^ r) & 0x1000:
            f |= FLAG_H
        if (a ^ b) & (a ^ r) & 0x8000:
            f |= FLAG_PV
        if r < 0:
            f |= FLAG_C
        self.regs.f = f
        return res

    # ------------------------------------------------------------------
    # Accumulator specials
    # ------------------------------------------------------------------

    def daa(self) -> None:
        regs = self.regs
        a = regs.a
        f = regs.f
        diff = 0
        carry = f & FLAG_C
        if f & FLAG_H or (a & 0x0F) > 9:
            diff |= 0x06
        if carry or a > 0x99:
            diff |= 0x60
            carry = FLAG_C
        if f & FLAG_N:
            res = (a - diff) & 0xFF
            half = bool(f & FLAG_H) and (a & 0x0F) < 6
        else:
            res = (a + diff) & 0xFF
            half = (a & 0x0F) > 9
        regs.a = res
        regs.f = SZYXP[res] | (f & FLAG_N) | carry | (FLAG_H if half else 0)

    def cpl(self) -> None:
        regs = self.regs
        regs.a = ~regs.a & 0xFF
        regs.f = (
            (regs.f & (FLAG_S | FLAG_Z | FLAG_PV | FLAG_C))
            | FLAG_H | FLAG_N | (regs.a & FLAGS_YX)
        )

    def scf(self) -> None:
        regs = self.regs
        regs.f = (regs.f & (FLAG_S | FLAG_Z | FLAG_PV)) | FLAG_C | (regs.a & FLAGS_YX)

    def ccf(self) -> None:
        regs = self.regs
        old_c = regs.f & FLAG_C
        f = (regs.f & (FLAG_S | FLAG_Z | FLAG_PV)) | (regs.a & FLAGS_YX)
        regs.f = f | (FLAG_H if old_c else FLAG_C)

    # ------------------------------------------------------------------
    # Opcode dispatch table
    # ------------------------------------------------------------------

    def _build_opcode_table(self) -> List[Handler]:
        """Build the unprefixed 256-entry dispatch table."""
        t: List[Optional[Handler]] = [None] * 256
        cpu = self
        regs = self.regs
        mem = self.mem
        clk = self.clk
        fetch8 = self.fetch8
        fetch16 = self.fetch16

        # -- 0x00 NOP ----------------------------------------------------
        def op_nop() -> None:
            clk(4)
        t[0x00] = op_nop

        # -- 16-bit loads, INC / DEC / ADD HL over BC, DE, HL, SP ----------
        for p in range(4):
            def ld_rr_nn(p: int = p) -> None:
                cpu.set_pair(p, fetch16())
                clk(10)

            def inc_rr(p: int = p) -> None:
                cpu.set_pair(p, cpu.get_pair(p) + 1)
                clk(6)

            def dec_rr(p: int = p) -> None:
                cpu.set_pair(p, cpu.get_pair(p) - 1)
                clk(6)

            def add_hl_rr(p: int = p) -> None:
                regs.hl = cpu.add16(regs.hl, cpu.get_pair(p))
                clk(11)

            t[0x01 | p << 4] = ld_rr_nn
            t[0x03 | p << 4] = inc_rr
            t[0x0B | p << 4] = dec_rr
            t[0x09 | p << 4] = add_hl_rr

        # -- Accumulator indirect loads ----------------------------------
        def op_02() -> None:
            mem[regs.bc] = regs.a
            clk(7)
        t[0x02] = op_02

        def op_12() -> None:
            mem[regs.de] = regs.a
            clk(7)
        t[0x12] = op_12

        def op_0a() -> None:
            regs.a = mem[regs.bc]
            clk(7)
        t[0x0A] = op_0a

        def op_1a() -> None:
            regs.a = mem[regs.de]
            clk(7)
        t[0x1A] = op_1a

        def op_22() -> None:
            cpu.write16(fetch16(), regs.hl)
            clk(16)
        t[0x22] = op_22

        def op_2a() -> None:
            regs.hl = cpu.read16(fetch16())
            clk(16)
        t[0x2A] = op_2a

        def op_32() -> None:
            mem[fetch16()] = regs.a
            clk(13)
        t[0x32] = op_32

        def op_3a() -> None:
            regs.a = mem[fetch16()]
            clk(13)
        t[0x3A] = op_3a

        # -- INC r / DEC r / LD r,n ----------------------------------------
        for r in range(8):
            slow = r == 6

            def inc_r(r: int = r, slow: bool = slow) -> None:
                cpu.set_reg8(r, cpu.inc8(cpu.get_reg8(r)))
                clk(11 if slow else 4)

            def dec_r(r: int = r, slow: bool = slow) -> None:
                cpu.set_reg8(r, cpu.dec8(cpu.get_reg8(r)))
                clk(11 if slow else 4)

            def ld_r_n(r: int = r, slow: bool = slow) -> None:
                cpu.set_reg8(r, fetch8())
                clk(10 if slow else 7)

            t[0x04 | r << 3] = inc_r
            t[0x05 | r << 3] = dec_r
            t[0x06 | r << 3] = ld_r_n

        # -- Accumulator rotates: RLCA, RRCA, RLA, RRA ---------------------
        for i, op in enumerate((0x07, 0x0F, 0x17, 0x1F)):
            def rot_a(i: int = i) -> None:
                cpu.rotate_a(i)
                clk(4)
            t[op] = rot_a

        def op_08() -> None:
            regs.ex_af()
            clk(4)
        t[0x08] = op_08

        # -- Relative jumps ----------------------------------------------
        def op_10() -> None:
            d = cpu.fetch_disp()
            regs.b = regs.b - 1
            if regs.b:
                regs.pc = (regs.pc + d) & 0xFFFF
                clk(13)
            else:
                clk(8)
        t[0x10] = op_10

        def op_18() -> None:
            d = cpu.fetch_disp()
            regs.pc = (regs.pc + d) & 0xFFFF
            clk(12)
        t[0x18] = op_18

        for cc in range(4):
            def jr_cc(cc: int = cc) -> None:
                d = cpu.fetch_disp()
                if cpu.condition(cc):
                    regs.pc = (regs.pc + d) & 0xFFFF
                    clk(12)
                else:
                    clk(7)
            t[0x20 | cc << 3] = jr_cc

        # -- DAA / CPL / SCF / CCF -----------------------------------------
        def op_27() -> None:
            cpu.daa()
            clk(4)
        t[0x27] = op_27

        def op_2f() -> None:
            cpu.cpl()
            clk(4)
        t[0x2F] = op_2f

        def op_37() -> None:
            cpu.scf()
            clk(4)
        t[0x37] = op_37

        def op_3f() -> None:
            cpu.ccf()
            clk(4)
        t[0x3F] = op_3f

        # -- LD r,r' (0x40-0x7F) and HALT ----------------------------------
        for dst in range(8):
            for src in range(8):
                if dst == 6 and src == 6:
                    continue

                def ld_r_r(dst: int = dst, src: int = src,
                           cost: int = 7 if 6 in (dst, src) else 4) -> None:
                    cpu.set_reg8(dst, cpu.get_reg8(src))
                    clk(cost)
                t[0x40 | dst << 3 | src] = ld_r_r

        def op_76() -> None:
            regs.halted = True
            clk(4)
        t[0x76] = op_76

        # -- 8-bit arithmetic / logic: register (0x80-0xBF) and immediate --
        for op_index in range(8):
            for src in range(8):
                def alu_r(op_index: int = op_index, src: int = src,
                          cost: int = 7 if src == 6 else 4) -> None:
                    cpu.alu(op_index, cpu.get_reg8(src))
                    clk(cost)
                t[0x80 | op_index << 3 | src] = alu_r

            def alu_n(op_index: int = op_index) -> None:
                cpu.alu(op_index, fetch8())
                clk(7)
            t[0xC6 | op_index << 3] = alu_n

        # -- Conditional RET / JP / CALL, RST ------------------------------
        for cc in range(8):
            def ret_cc(cc: int = cc) -> None:
                if cpu.condition(cc):
                    regs.pc = cpu.pop()
                    clk(11)
                else:
                    clk(5)

            def jp_cc(cc: int = cc) -> None:
                nn = fetch16()
                if cpu.condition(cc):
                    regs.pc = nn
                clk(10)

            def call_cc(cc: int = cc) -> None:
                nn = fetch16()
                if cpu.condition(cc):
                    cpu.push(regs.pc)
                    regs.pc = nn
                    clk(17)
                else:
                    clk(10)

            def rst(vector: int = cc << 3) -> None:
                cpu.push(regs.pc)
                regs.pc = vector
                clk(11)

            t[0xC0 | cc << 3] = ret_cc
            t[0xC2 | cc << 3] = jp_cc
            t[0xC4 | cc << 3] = call_cc
            t[0xC7 | cc << 3] = rst

        # -- PUSH / POP over BC, DE, HL, AF ------------------------------
        for p in range(4):
            def pop_qq(p: int = p) -> None:
                cpu.set_pair_af(p, cpu.pop())
                clk(10)

            def push_qq(p: int = p) -> None:
                cpu.push(cpu.get_pair_af(p))
                clk(11)

            t[0xC1 | p << 4] = pop_qq
            t[0xC5 | p << 4] = push_qq

        # -- Unconditional flow ------------------------------------------
        def op_c3() -> None:
            regs.pc = fetch16()
            clk(10)
        t[0xC3] = op_c3

        def op_c9() -> None:
            regs.pc = cpu.pop()
            clk(10)
        t[0xC9] = op_c9

        def op_cd() -> None:
            nn = fetch16()
            cpu.push(regs.pc)
            regs.pc = nn
            clk(17)
        t[0xCD] = op_cd

        def op_e9() -> None:
            regs.pc = regs.hl
            clk(4)
        t[0xE9] = op_e9

        # -- Port I/O ----------------------------------------------------
        def op_d3() -> None:
            cpu.port_out(fetch8(), regs.a)
            clk(11)
        t[0xD3] = op_d3

        def op_db() -> None:
            regs.a = cpu.port_in(fetch8())
            clk(11)
        t[0xDB] = op_db

        # -- Exchanges ---------------------------------------------------
        def op_d9() -> None:
            regs.exx()
            clk(4)
        t[0xD9] = op_d9

        def op_e3() -> None:
            sp = regs.sp
            value = cpu.read16(sp)
            cpu.write16(sp, regs.hl)
            regs.hl = value
            clk(19)
        t[0xE3] = op_e3

        def op_eb() -> None:
            de = regs.de
            regs.de = regs.hl
            regs.hl = de
            clk(4)
        t[0xEB] = op_eb

        # -- Interrupt enable / stack pointer ------------------------------
        def op_f3() -> None:
            regs.iff1 = regs.iff2 = False
            clk(4)
        t[0xF3] = op_f3

        def op_fb() -> None:
            regs.iff1 = regs.iff2 = True
            clk(4)
        t[0xFB] = op_fb

        def op_f9() -> None:
            regs.sp = regs.hl
            clk(6)
        t[0xF9] = op_f9

        # -- Prefixes ----------------------------------------------------
        t[0xCB] = self._prefixed(0xCB, self._cb)
        t[0xED] = self._prefixed(0xED, self._ed)
        t[0xDD] = self._prefixed(0xDD, self._dd)
        t[0xFD] = self._prefixed(0xFD, self._fd)

        assert all(h is not None for h in t)
        return t  # type: ignore[return-value]

    def _prefixed(self, prefix: int, table: List[Optional[Handler]]) -> Handler:
        """Return the base-table handler that dispatches a prefix byte."""
        def dispatch() -> None:
            op = self.fetch8()
            self.regs.increment_r()
            self.debug_items.add(prefix << 8 | op)
            handler = table[op]
            if handler is None:
                raise UnimplementedOpcodeError(op, self._op_pc, prefix)
            handler()
        return dispatch

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def get_snapshot(self) -> dict:
        return self.regs.get_snapshot()

    def restore_snapshot(self, snapshot: dict) -> None:
        self.regs.restore_snapshot(snapshot)

    def __repr__(self) -> str:
        r = self.regs
        return (
            f"Z80(PC=${r.pc:04X}, SP=${r.sp:04X}, AF=${r.af:04X}, "
            f"BC=${r.bc:04X}, DE=${r.de:04X}, HL=${r.hl:04X}, "
            f"IX=${r.ix:04X}, IY=${r.iy:04X}, halted={r.halted})"
        )
