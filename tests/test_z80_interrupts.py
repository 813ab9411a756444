from __future__ import annotations

import pytest

from emucoleco.core.errors import UnsupportedInterruptModeError
from emucoleco.core.z80 import Z80


def test_nmi_pushes_pc_and_jumps_to_0066(cpu: Z80) -> None:
    cpu.regs.sp = 0x8000
    cpu.regs.pc = 0x1234
    cpu.regs.iff1 = cpu.regs.iff2 = True
    cpu.request_nmi()

    assert cpu.step() == 11

    assert cpu.regs.pc == 0x0066
    assert not cpu.regs.iff1
    assert cpu.regs.iff2
    assert not cpu.regs.nmi
    assert cpu.pop() == 0x1234


def test_nmi_ignores_interrupt_enable(cpu: Z80) -> None:
    cpu.regs.sp = 0x8000
    cpu.regs.iff1 = False
    cpu.request_nmi()

    cpu.step()

    assert cpu.regs.pc == 0x0066


def test_nmi_wakes_halted_cpu(cpu: Z80) -> None:
    cpu.regs.sp = 0x8000
    cpu.mem[0] = 0x76

    cpu.step()
    assert cpu.regs.halted
    assert cpu.step() == 0

    cpu.request_nmi()
    assert cpu.step() == 11
    assert not cpu.regs.halted
    assert cpu.pop() == 0x0001


def test_mode_1_interrupt(cpu: Z80) -> None:
    cpu.regs.sp = 0x8000
    cpu.regs.pc = 0x0200
    cpu.regs.int_mode = 1
    cpu.regs.iff1 = cpu.regs.iff2 = True
    cpu.request_interrupt()

    assert cpu.step() == 13

    assert cpu.regs.pc == 0x0038
    assert not cpu.regs.int
    assert not cpu.regs.iff1 and not cpu.regs.iff2
    assert cpu.pop() == 0x0200


def test_masked_interrupt_stays_pending(cpu: Z80) -> None:
    cpu.regs.int_mode = 1
    cpu.request_interrupt()

    assert cpu.step() == 4  # NOP runs instead
    assert cpu.regs.int
    assert cpu.regs.pc == 0x0001

    cpu.regs.sp = 0x8000
    cpu.mem[1] = 0xFB  # EI
    cpu.step()
    assert cpu.step() == 13
    assert cpu.regs.pc == 0x0038


def test_nmi_takes_priority_over_interrupt(cpu: Z80) -> None:
    cpu.regs.sp = 0x8000
    cpu.regs.int_mode = 1
    cpu.regs.iff1 = True
    cpu.request_interrupt()
    cpu.request_nmi()

    cpu.step()

    assert cpu.regs.pc == 0x0066
    assert cpu.regs.int


@pytest.mark.parametrize("mode", [0, 2])
def test_unsupported_interrupt_modes_fault(cpu: Z80, mode: int) -> None:
    cpu.regs.int_mode = mode
    cpu.regs.iff1 = True
    cpu.request_interrupt()

    with pytest.raises(UnsupportedInterruptModeError) as info:
        cpu.step()

    assert info.value.mode == mode
    assert str(info.value) == f"Unsupported interrupt mode {mode} at $0000"


def test_interrupt_dispatch_counts_toward_scanline(cpu: Z80) -> None:
    lines = []
    cpu.on_scanline = lambda: lines.append(1)
    cpu.regs.sp = 0x8000
    cpu.regs.instruction_count = 11
    cpu.request_nmi()

    cpu.step()

    assert lines == [1]
    assert cpu.regs.instruction_count == cpu.regs.instruction_period


def test_idle_runs_scanline_clock_while_halted(cpu: Z80) -> None:
    lines = []
    cpu.on_scanline = lambda: lines.append(1)
    cpu.regs.halted = True

    for _ in range(57):
        cpu.idle(4)

    assert lines == [1]
    assert cpu.regs.halted


def test_reset_clears_pending_requests(cpu: Z80) -> None:
    cpu.request_nmi()
    cpu.request_interrupt()
    cpu.regs.pc = 0x1000
    cpu.step()

    cpu.reset()

    assert not cpu.regs.nmi
    assert not cpu.regs.int
    assert cpu.regs.pc == 0
    assert len(cpu.recent) == 0
