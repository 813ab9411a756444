from __future__ import annotations

from typing import Iterable, Tuple

import pytest

from emucoleco.core.vdp import VideoProcessor

SAT = 0x1B00
SPT = 0x3800

WHITE = (0xFF, 0xFF, 0xFF, 0xFF)
MEDIUM_RED = (0xFF, 0x24, 0x24, 0xFF)
BLACK = (0x00, 0x00, 0x00, 0xFF)


@pytest.fixture()
def sprite_vdp(vdp: VideoProcessor) -> VideoProcessor:
    vdp.set_register(5, 0x36)
    vdp.set_register(6, 0x07)
    vdp.memory[SAT] = 208
    return vdp


def _place(vdp: VideoProcessor, sprites: Iterable[Tuple[int, int, int, int]]) -> None:
    """Write ``(y, x, name, tag)`` entries followed by a terminator."""
    count = 0
    for index, (y, x, name, tag) in enumerate(sprites):
        vdp.memory[SAT + index * 4:SAT + index * 4 + 4] = bytes((y, x, name, tag))
        count = index + 1
    vdp.memory[SAT + count * 4] = 208


def _solid_pattern(vdp: VideoProcessor, name: int = 0, row: int = 0xFF) -> None:
    base = SPT + name * 8
    vdp.memory[base:base + 8] = bytes([row] * 8)


def test_fifth_sprite_sets_overflow(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, i * 10, 0, 15) for i in range(5)])

    visible = sprite_vdp.sprites.evaluate(20)

    assert visible == [0, 1, 2, 3]
    assert sprite_vdp.status == 0x40 | 4


def test_overflow_flag_holds_index_until_status_read(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 0, 0, 15)] * 5 + [(100, 0, 0, 15)] * 5)
    sprite_vdp.sprites.evaluate(20)

    sprite_vdp.sprites.evaluate(110)

    assert sprite_vdp.status == 0x40 | 4


def test_status_read_releases_overflow_and_index(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, i * 10, 0, 15) for i in range(5)])
    sprite_vdp.sprites.evaluate(20)

    assert sprite_vdp.read_status() == 0x40 | 4
    assert sprite_vdp.read_status() == 4

    _place(sprite_vdp, [(100, 0, 0, 15)])
    sprite_vdp.sprites.evaluate(100)

    assert sprite_vdp.status == 1


def test_terminator_index_recorded(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 0, 0, 15)])

    assert sprite_vdp.sprites.evaluate(100) == []
    assert sprite_vdp.status == 1


def test_visibility_window(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 0, 0, 15)])
    engine = sprite_vdp.sprites

    assert engine.evaluate(16) == []
    assert engine.evaluate(17) == [0]
    assert engine.evaluate(24) == [0]
    assert engine.evaluate(25) == []


def test_negative_y_wraps(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(0xFF, 30, 0, 15)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(0)

    assert sprite_vdp.frame_buffer.read_pixel(30, 0) == WHITE
    assert sprite_vdp.sprites.evaluate(7) == [0]
    assert sprite_vdp.sprites.evaluate(8) == []


def test_collision_and_draw_order(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 100, 0, 15), (16, 104, 0, 8)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20)

    fb = sprite_vdp.frame_buffer
    assert fb.read_pixel(104, 20) == WHITE
    assert fb.read_pixel(110, 20) == MEDIUM_RED
    assert fb.read_pixel(112, 20) == BLACK
    assert sprite_vdp.sprites.collision_pending

    sprite_vdp.check_collisions()
    assert sprite_vdp.status & 0x20
    assert not sprite_vdp.sprites.collision_pending


def test_no_collision_when_apart(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 0, 0, 15), (16, 8, 0, 8)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20)

    assert not sprite_vdp.sprites.collision_pending


def test_transparent_sprite_still_collides(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 100, 0, 0), (16, 100, 0, 8)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20)

    assert sprite_vdp.frame_buffer.read_pixel(100, 20) == MEDIUM_RED
    assert sprite_vdp.sprites.collision_pending


def test_process_line_without_draw(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 100, 0, 15)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20, draw=False)

    assert sprite_vdp.frame_buffer.read_pixel(100, 20) == BLACK


def test_early_clock_shifts_left(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 40, 0, 0x80 | 15)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20)

    fb = sprite_vdp.frame_buffer
    assert fb.read_pixel(8, 20) == WHITE
    assert fb.read_pixel(15, 20) == WHITE
    assert fb.read_pixel(40, 20) == BLACK


def test_sprite_clipped_at_right_edge(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 252, 0, 15)])
    _solid_pattern(sprite_vdp)

    sprite_vdp.sprites.process_line(20)

    assert sprite_vdp.frame_buffer.read_pixel(255, 20) == WHITE
    assert sprite_vdp.frame_buffer.read_pixel(0, 20) == BLACK


def test_magnified_sprite(sprite_vdp: VideoProcessor) -> None:
    sprite_vdp.set_register(1, 0x01)
    _place(sprite_vdp, [(16, 50, 0, 15)])
    _solid_pattern(sprite_vdp, row=0x80)
    engine = sprite_vdp.sprites

    assert engine.evaluate(32) == [0]
    assert engine.evaluate(33) == []

    engine.process_line(30)
    fb = sprite_vdp.frame_buffer
    assert fb.read_pixel(50, 30) == WHITE
    assert fb.read_pixel(51, 30) == WHITE
    assert fb.read_pixel(52, 30) == BLACK


def test_16x16_sprite_uses_right_half(sprite_vdp: VideoProcessor) -> None:
    sprite_vdp.set_register(1, 0x02)
    _place(sprite_vdp, [(16, 60, 1, 15)])  # low name bits ignored
    sprite_vdp.memory[SPT + 16] = 0x01

    engine = sprite_vdp.sprites
    assert engine.evaluate(32) == [0]

    engine.process_line(17)
    fb = sprite_vdp.frame_buffer
    assert fb.read_pixel(75, 17) == WHITE
    assert fb.read_pixel(60, 17) == BLACK


def test_tick_latches_collision_into_status_at_vblank(sprite_vdp: VideoProcessor) -> None:
    sprite_vdp.set_register(1, 0x40)
    _place(sprite_vdp, [(16, 100, 0, 15), (16, 100, 0, 8)])
    _solid_pattern(sprite_vdp)

    for _ in range(193):
        sprite_vdp.tick()

    assert sprite_vdp.status & 0xA0 == 0xA0


def test_blanked_display_skips_sprites(sprite_vdp: VideoProcessor) -> None:
    _place(sprite_vdp, [(16, 100, 0, 15)] * 5)
    _solid_pattern(sprite_vdp)

    for _ in range(193):
        sprite_vdp.tick()

    assert sprite_vdp.status == 0x80
