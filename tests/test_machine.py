from __future__ import annotations

import logging

import pytest

from emucoleco.core.errors import UnimplementedOpcodeError, UnmappedPortError
from emucoleco.core.machine import Machine
from emucoleco.core.types import JoystickMode, MachineInput


def _out(port: int, value: int) -> bytes:
    """LD A,value ; OUT (port),A"""
    return bytes([0x3E, value, 0xD3, port])


BOOT_IMAGE = (
    _out(0xBF, 0x00) + _out(0xBF, 0x58)     # VRAM write address $1800
    + _out(0xBE, 0x42)                      # one name-table byte
    + _out(0xBF, 0xE2) + _out(0xBF, 0x81)   # R1 = $E2
    + bytes([0x76])                         # HALT
)


def _machine_with(code: bytes, **kwargs) -> Machine:
    machine = Machine(bios=code, **kwargs)
    machine.reset()
    return machine


def test_boot_image_programs_vdp() -> None:
    machine = _machine_with(BOOT_IMAGE)

    machine.run_instructions(11)

    assert machine.vdp.memory[0x1800] == 0x42
    assert machine.vdp.registers[1] == 0xE2
    assert machine.vdp.display_enabled
    assert machine.cpu.regs.halted
    assert machine.cpu.regs.pc == len(BOOT_IMAGE)


def test_halted_cpu_woken_by_vblank_nmi() -> None:
    code = bytearray(0x100)
    program = bytes([0x31, 0x00, 0x70]) + _out(0xBF, 0x20) + _out(0xBF, 0x81) + bytes([0x76])
    code[:len(program)] = program
    code[0x66:0x69] = bytes([0x3E, 0x77, 0x76])  # LD A,$77 ; HALT
    machine = _machine_with(bytes(code))

    machine.run_frame()

    assert machine.vdp.line == 193
    assert machine.vdp.status & 0x80
    assert machine.cpu.regs.nmi
    assert machine.frame_number == 1

    machine.run_instructions(3)

    assert machine.cpu.regs.a == 0x77
    assert machine.cpu.regs.halted
    assert machine.cpu.regs.pc == 0x0069


def test_halted_step_burns_idle_cycles() -> None:
    machine = _machine_with(bytes([0x76]))
    machine.step()

    assert machine.step() == Machine.HALT_IDLE_CYCLES
    assert machine.cpu.regs.pc == 0x0001


def test_fault_halts_machine(caplog: pytest.LogCaptureFixture) -> None:
    machine = _machine_with(bytes([0x00, 0xED, 0x77]))

    with caplog.at_level(logging.ERROR, logger="emucoleco.core.machine"):
        machine.run_instructions(10)

    assert isinstance(machine.fault, UnimplementedOpcodeError)
    assert machine.fault.pc == 0x0001
    assert machine.machine_halt
    assert machine.step() == 0
    assert any("ED 77" in r.getMessage() for r in caplog.records)
    assert any("0001:ED" in r.getMessage() for r in caplog.records)


def test_run_frame_returns_after_fault() -> None:
    machine = _machine_with(bytes([0xED, 0x77]))

    fb = machine.run_frame()

    assert fb is machine.frame_buffer
    assert machine.fault is not None


def test_reset_clears_fault() -> None:
    machine = _machine_with(bytes([0xED, 0x77]))
    machine.step()

    machine.reset()

    assert machine.fault is None
    assert not machine.machine_halt


def test_unmapped_out_port_faults() -> None:
    machine = _machine_with(bytes([0x00, 0xD3, 0x00]))

    machine.run_instructions(2)

    assert isinstance(machine.fault, UnmappedPortError)
    assert machine.fault.direction == "out"
    assert machine.fault.port == 0x00
    assert machine.fault.pc == 0x0001


def test_unmapped_in_port_faults() -> None:
    machine = _machine_with(bytes([0xDB, 0x80]))

    machine.step()

    assert isinstance(machine.fault, UnmappedPortError)
    assert machine.fault.direction == "in"


def test_unmapped_port_fault_reports_instruction_address(
    caplog: pytest.LogCaptureFixture,
) -> None:
    machine = _machine_with(bytes([0x00] * 0x10) + _out(0x20, 0x01))

    with caplog.at_level(logging.ERROR, logger="emucoleco.core.machine"):
        machine.run_instructions(0x12)

    assert machine.fault.pc == 0x0012
    assert str(machine.fault) == "Unmapped I/O out on port $20 at $0012"
    assert any("at $0012" in r.getMessage() for r in caplog.records)


def test_writes_to_port_40_are_ignored() -> None:
    machine = _machine_with(_out(0x40, 0x12) + bytes([0x76]))

    machine.run_instructions(3)

    assert machine.fault is None
    assert machine.cpu.regs.halted


def test_controller_ports() -> None:
    code = bytes([
        0xD3, 0x80,        # OUT ($80),A  keypad format
        0xDB, 0xE0,        # IN A,($E0)
        0x47,              # LD B,A
        0xD3, 0xC0,        # OUT ($C0),A  joystick format
        0xDB, 0xE0,        # IN A,($E0)
        0x4F,              # LD C,A
        0xDB, 0xE2,        # IN A,($E2)   controller 2
    ])
    machine = _machine_with(code)
    machine.controller_keys(0x4105)

    machine.run_instructions(7)

    regs = machine.cpu.regs
    assert regs.b == 0x7A
    assert regs.c == 0x3E
    assert regs.a == 0x7F
    assert regs.int
    assert machine.input_state.mode == JoystickMode.Joystick


def test_raised_input_latched_at_frame_start() -> None:
    machine = _machine_with(bytes([0x76]))

    machine.raise_input(0, MachineInput.Fire, True)
    assert machine.input_state.controller_word(0) == 0

    machine.run_frame()
    assert machine.input_state.controller_word(0) == 0x4000


def test_sound_port_hooks() -> None:
    machine = _machine_with(_out(0xFF, 0x90) + _out(0xFF, 0x9F))
    received = []
    machine.subscribe_sound(received.append)

    machine.run_instructions(2)
    assert received == [0x90]
    assert machine.sound.attenuation[0] == 0

    machine.unsubscribe_sound(received.append)
    machine.run_instructions(2)
    assert received == [0x90]
    assert machine.sound.attenuation[0] == 0x0F


def test_reset_clears_ram_vram_and_frame_keeps_roms() -> None:
    machine = _machine_with(bytes([0x3E, 0x01]), cartridge=bytes([0x55, 0xAA]))
    machine.memory[0x6000] = 0x12
    machine.vdp.memory[0x0100] = 0x34
    machine.frame_buffer.set_pixel(5, 5, (9, 9, 9))

    machine.reset()

    assert machine.memory[0x6000] == 0
    assert machine.vdp.memory[0x0100] == 0
    assert machine.frame_buffer.read_pixel(5, 5) == (0, 0, 0, 0xFF)
    assert machine.memory[0x0000] == 0x3E
    assert machine.memory[0x8000] == 0x55


def test_load_cartridge_zero_fills_window() -> None:
    machine = Machine()
    machine.load_cartridge(bytes([1, 2, 3]))

    machine.load_cartridge(bytes([9]))

    assert machine.memory[0x8000] == 9
    assert machine.memory[0x8001] == 0
    assert machine.memory[0x8002] == 0


def test_oversized_images_rejected() -> None:
    machine = Machine()

    with pytest.raises(ValueError):
        machine.load_cartridge(bytes(0x8001))
    with pytest.raises(ValueError):
        machine.load_bios(bytes(0x2001))


def test_register_access_by_name(machine: Machine) -> None:
    machine.set_register("hl", 0x1234)

    assert machine.get_register("h") == 0x12
    with pytest.raises(KeyError):
        machine.get_register("nope")


def test_pattern_helpers(machine: Machine) -> None:
    machine.vdp.set_register(2, 0x06)
    machine.vdp.set_register(4, 0x01)
    machine.vdp.memory[0x1800 + 32 + 3] = 0x21
    machine.vdp.memory[0x0800] = 0xAA

    assert machine.pattern_at(3, 8) == 0x21
    data = machine.pattern_data()
    assert len(data) == 0x3800
    assert data[0] == 0xAA


def test_debug_log_lists_prefixed_opcodes() -> None:
    machine = _machine_with(bytes([0xED, 0x44, 0xCB, 0x00]))

    machine.run_instructions(2)

    assert machine.debug_log() == [0xCB00, 0xED44]


def test_run_frame_presents_on_render_cadence(machine: Machine) -> None:
    presented = []
    machine.on_frame = presented.append
    machine.reset()

    machine.run_frame()
    assert machine.vdp.line == 193
    assert presented == []

    machine.run_frame()
    machine.run_frame()

    assert presented == [machine.frame_buffer]
    assert machine.frame_number == 3


def test_snapshot_round_trip() -> None:
    machine = _machine_with(BOOT_IMAGE)
    machine.run_instructions(8)
    machine.input_state.write_port(0xC0, 0)
    snapshot = machine.get_snapshot()

    machine.run_instructions(5)
    machine.reset()
    machine.restore_snapshot(snapshot)

    assert machine.get_snapshot() == snapshot
    assert machine.cpu.regs.pc == 16
    assert machine.input_state.mode == JoystickMode.Joystick
    assert machine.vdp.memory[0x1800] == 0x42


def test_repr(machine: Machine) -> None:
    assert repr(machine).startswith("Machine(pc=$0000")
