from __future__ import annotations

import logging

import pytest

from emucoleco.core.config import EmulatorConfig
from emucoleco.core.types import DisplayMode
from emucoleco.core.vdp import VideoProcessor

CONTROL = 0xBF
DATA = 0xBE

WHITE = (0xFF, 0xFF, 0xFF, 0xFF)
DARK_BLUE = (0x24, 0x24, 0xFF, 0xFF)
MEDIUM_RED = (0xFF, 0x24, 0x24, 0xFF)


def _write_register(vdp: VideoProcessor, index: int, value: int) -> None:
    vdp.write_port(CONTROL, value)
    vdp.write_port(CONTROL, 0x80 | index)


def _set_write_address(vdp: VideoProcessor, address: int) -> None:
    vdp.write_port(CONTROL, address & 0xFF)
    vdp.write_port(CONTROL, 0x40 | (address >> 8))


def _set_read_address(vdp: VideoProcessor, address: int) -> None:
    vdp.write_port(CONTROL, address & 0xFF)
    vdp.write_port(CONTROL, address >> 8)


# ---------------------------------------------------------------------------
# Port protocol
# ---------------------------------------------------------------------------

def test_vram_write_then_read_through_latch(vdp: VideoProcessor) -> None:
    _set_write_address(vdp, 0x1000)
    vdp.write_port(DATA, 0xAB)
    vdp.write_port(DATA, 0xCD)

    _set_read_address(vdp, 0x1000)

    assert vdp.read_port(DATA) == 0xAB
    assert vdp.read_port(DATA) == 0xCD
    assert vdp.memory[0x1000:0x1002] == b"\xab\xcd"


def test_read_setup_prefetches_and_advances(vdp: VideoProcessor) -> None:
    vdp.memory[0x2000] = 0x5A

    _set_read_address(vdp, 0x2000)

    assert vdp.read_ahead == 0x5A
    assert vdp.pending_address == 0x2001


def test_data_write_updates_read_ahead(vdp: VideoProcessor) -> None:
    _set_write_address(vdp, 0x0000)
    vdp.write_port(DATA, 0x42)

    assert vdp.read_port(DATA) == 0x42


def test_register_writes_are_masked(vdp: VideoProcessor) -> None:
    for index in range(8):
        _write_register(vdp, index, 0xFF)

    assert list(vdp.registers) == list(VideoProcessor.REGISTER_MASKS)


def test_register_write_does_not_touch_vram(vdp: VideoProcessor) -> None:
    _write_register(vdp, 7, 0xF4)

    assert vdp.registers[7] == 0xF4
    assert vdp.text_color == 0x0F
    assert vdp.backdrop_color == 0x04
    assert not any(vdp.memory)


def test_data_access_resets_latch(vdp: VideoProcessor) -> None:
    vdp.write_port(CONTROL, 0x34)
    assert vdp.latch

    vdp.read_port(DATA)
    assert not vdp.latch

    vdp.write_port(CONTROL, 0x12)
    assert vdp.latch
    assert vdp.pending_address == 0x0012


def test_address_wraps_at_16k(vdp: VideoProcessor) -> None:
    _set_write_address(vdp, 0x3FFF)
    vdp.write_port(DATA, 0x11)
    vdp.write_port(DATA, 0x22)

    assert vdp.memory[0x3FFF] == 0x11
    assert vdp.memory[0x0000] == 0x22


def test_status_read_clears_flag_bits(vdp: VideoProcessor) -> None:
    vdp.status = 0xE4

    assert vdp.read_port(CONTROL) == 0xE4
    assert vdp.status == 0x04
    assert vdp.read_port(CONTROL) == 0x04


# ---------------------------------------------------------------------------
# Register-derived state
# ---------------------------------------------------------------------------

def test_table_bases(vdp: VideoProcessor) -> None:
    vdp.set_register(2, 0x06)
    vdp.set_register(3, 0x80)
    vdp.set_register(4, 0x01)
    vdp.set_register(5, 0x36)
    vdp.set_register(6, 0x07)

    assert vdp.name_table == 0x1800
    assert vdp.color_table == 0x2000
    assert vdp.pattern_table == 0x0800
    assert vdp.sprite_attribute_table == 0x1B00
    assert vdp.sprite_pattern_table == 0x3800


def test_graphics2_whole_table_bases(vdp: VideoProcessor) -> None:
    vdp.set_register(0, 0x02)
    vdp.set_register(3, 0xFF)
    vdp.set_register(4, 0x03)
    assert vdp.color_table == 0x2000
    assert vdp.pattern_table == 0x0000

    vdp.set_register(3, 0x7F)
    vdp.set_register(4, 0x07)
    assert vdp.color_table == 0x0000
    assert vdp.pattern_table == 0x2000


def test_graphics2_base_and_mask_bits(vdp: VideoProcessor) -> None:
    vdp.set_register(0, 0x02)
    vdp.set_register(3, 0x9F)
    vdp.set_register(4, 0x05)

    assert vdp.color_table == 0x2000
    assert vdp.color_mask == 0x07FF
    assert vdp.pattern_table == 0x2000
    assert vdp.pattern_mask == 0x0FFF


def test_graphics1_color_table_uses_whole_register(vdp: VideoProcessor) -> None:
    vdp.set_register(3, 0xFF)

    assert vdp.color_table == 0x3FC0


@pytest.mark.parametrize(
    "r0, r1, expected",
    [
        (0x00, 0x00, DisplayMode.Graphics1),
        (0x02, 0x00, DisplayMode.Graphics2),
        (0x00, 0x08, DisplayMode.Multicolor),
        (0x00, 0x10, DisplayMode.Text),
        (0x02, 0x10, 5),
    ],
)
def test_mode_decode(vdp: VideoProcessor, r0: int, r1: int, expected: int) -> None:
    vdp.set_register(0, r0)
    vdp.set_register(1, r1)

    assert vdp.mode == expected


def test_r1_flags(vdp: VideoProcessor) -> None:
    vdp.set_register(1, 0x63)

    assert vdp.display_enabled
    assert vdp.interrupt_enable
    assert vdp.sprite_size
    assert vdp.sprite_magnify


# ---------------------------------------------------------------------------
# Scanline timing
# ---------------------------------------------------------------------------

def test_vblank_nmi_after_window(vdp: VideoProcessor) -> None:
    nmis = []
    vdp.on_nmi = lambda: nmis.append(vdp.line)
    vdp.set_register(1, 0x20)

    for _ in range(192):
        vdp.tick()
    assert nmis == []
    assert not vdp.status & 0x80

    vdp.tick()
    assert nmis == [193]
    assert vdp.status & 0x80


def test_no_nmi_with_interrupts_disabled(vdp: VideoProcessor) -> None:
    nmis = []
    vdp.on_nmi = lambda: nmis.append(1)

    for _ in range(262):
        vdp.tick()

    assert nmis == []
    assert vdp.status & 0x80


def test_pending_vblank_suppresses_second_nmi(vdp: VideoProcessor) -> None:
    nmis = []
    vdp.on_nmi = lambda: nmis.append(1)
    vdp.set_register(1, 0x20)

    for _ in range(262 * 2):
        vdp.tick()
    assert nmis == [1]

    vdp.read_port(CONTROL)
    for _ in range(262):
        vdp.tick()
    assert nmis == [1, 1]


def test_line_wraps_after_field(vdp: VideoProcessor) -> None:
    for _ in range(262):
        vdp.tick()

    assert vdp.line == 0


def test_render_cadence(vdp: VideoProcessor) -> None:
    frames = []
    vdp.on_frame = frames.append

    for _ in range(262 * 3):
        vdp.tick()
    assert len(frames) == 1
    assert frames[0] is vdp.frame_buffer

    for _ in range(262 * 3):
        vdp.tick()
    assert vdp.frame_count == 3


def test_every_frame_renders_with_equal_cadence() -> None:
    vdp = VideoProcessor(EmulatorConfig(render_threshold=1, render_increment=1))
    frames = []
    vdp.on_frame = frames.append

    for _ in range(262 * 4):
        vdp.tick()

    assert len(frames) == 3


# ---------------------------------------------------------------------------
# Background rendering
# ---------------------------------------------------------------------------

def test_graphics1_line(vdp: VideoProcessor) -> None:
    vdp.set_register(1, 0x40)
    vdp.set_register(2, 0x06)
    vdp.set_register(3, 0x80)
    vdp.set_register(4, 0x00)
    vdp.memory[0x1800] = 1
    vdp.memory[0x0008] = 0xA0
    vdp.memory[0x2000] = 0xF4

    vdp.render_line(0)

    fb = vdp.frame_buffer
    assert fb.read_pixel(0, 0) == WHITE
    assert fb.read_pixel(1, 0) == DARK_BLUE
    assert fb.read_pixel(2, 0) == WHITE
    assert fb.read_pixel(3, 0) == DARK_BLUE


def test_graphics2_uses_screen_thirds(vdp: VideoProcessor) -> None:
    vdp.set_register(0, 0x02)
    vdp.set_register(2, 0x06)
    vdp.set_register(3, 0xFF)
    vdp.set_register(4, 0x03)
    vdp.memory[0x1900] = 2
    vdp.memory[0x0810] = 0xFF
    vdp.memory[0x2810] = 0x80

    vdp.render_line(64)

    assert vdp.frame_buffer.read_pixel(0, 64) == MEDIUM_RED
    assert vdp.frame_buffer.read_pixel(7, 64) == MEDIUM_RED
    assert vdp.pattern_at(0, 64) == 2


def test_graphics2_cleared_mask_bits_share_first_third(vdp: VideoProcessor) -> None:
    vdp.set_register(0, 0x02)
    vdp.set_register(2, 0x06)
    vdp.set_register(3, 0x80)   # colour base $2000, mask $003F
    vdp.set_register(4, 0x00)   # pattern base $0000, mask $07FF
    vdp.memory[0x1A00] = 2
    vdp.memory[0x0010] = 0xFF
    vdp.memory[0x1010] = 0x00
    vdp.memory[0x2010] = 0xF4
    vdp.memory[0x3010] = 0x84

    vdp.render_line(128)

    assert vdp.frame_buffer.read_pixel(0, 128) == WHITE
    assert vdp.frame_buffer.read_pixel(7, 128) == WHITE


def test_blanked_display_fills_backdrop(vdp: VideoProcessor) -> None:
    vdp.set_register(7, 0x14)
    vdp.update_count = vdp.config.render_threshold
    vdp.frame_buffer.set_pixel(0, 0, (9, 9, 9))

    vdp.tick()

    assert vdp.frame_buffer.read_pixel(0, 0) == DARK_BLUE
    assert vdp.frame_buffer.read_pixel(255, 0) == DARK_BLUE


def test_enabled_display_renders_through_tick(vdp: VideoProcessor) -> None:
    vdp.set_register(1, 0x40)
    vdp.set_register(7, 0x14)
    vdp.update_count = vdp.config.render_threshold
    vdp.frame_buffer.set_pixel(0, 0, (9, 9, 9))

    vdp.tick()

    assert vdp.frame_buffer.read_pixel(0, 0) == (0x00, 0x00, 0x00, 0xFF)


def test_missing_renderer_logged_once(vdp: VideoProcessor, caplog: pytest.LogCaptureFixture) -> None:
    vdp.set_register(1, 0x10)

    with caplog.at_level(logging.WARNING, logger="emucoleco.core.vdp"):
        vdp.render_line(0)
        vdp.render_line(1)
        vdp.reset()
        vdp.set_register(1, 0x10)
        vdp.render_line(0)

    warnings = [r for r in caplog.records if r.name == "emucoleco.core.vdp"]
    assert len(warnings) == 2
    assert all(r.levelno == logging.WARNING for r in warnings)


def test_missing_renderer_leaves_line_untouched(vdp: VideoProcessor) -> None:
    vdp.set_register(1, 0x08)
    before = bytes(vdp.frame_buffer.rgba)

    vdp.render_line(10)

    assert bytes(vdp.frame_buffer.rgba) == before


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def test_reset_clears_state(vdp: VideoProcessor) -> None:
    _set_write_address(vdp, 0x0100)
    vdp.write_port(DATA, 0x99)
    vdp.set_register(1, 0xE0)
    vdp.status = 0x80
    vdp.frame_buffer.set_pixel(0, 0, (1, 2, 3))

    vdp.reset()

    assert not any(vdp.memory)
    assert not any(vdp.registers)
    assert vdp.status == 0
    assert vdp.line == 0
    assert vdp.frame_buffer.read_pixel(0, 0) == (0, 0, 0, 0xFF)


def test_snapshot_round_trip(vdp: VideoProcessor) -> None:
    _set_write_address(vdp, 0x0123)
    vdp.write_port(DATA, 0x77)
    _write_register(vdp, 1, 0xE2)
    for _ in range(50):
        vdp.tick()
    snapshot = vdp.get_snapshot()

    other = VideoProcessor()
    other.restore_snapshot(snapshot)

    assert other.get_snapshot() == snapshot
    assert other.memory[0x0123] == 0x77
    assert other.line == 50


def test_snapshot_rejects_wrong_vram_size(vdp: VideoProcessor) -> None:
    snapshot = vdp.get_snapshot()
    snapshot["memory"] = bytes(100)

    with pytest.raises(ValueError):
        vdp.restore_snapshot(snapshot)


def test_repr_shows_status(vdp: VideoProcessor) -> None:
    vdp.status = 0x80

    assert "status=$80" in repr(vdp)
