from __future__ import annotations

import pytest

from stowage.core.models import Vec2
from stowage.core.shape import Shape
from stowage.runtime.errors import ShapeError, StowageError


def _reference_rotate90(shape: Shape) -> Shape:
    out = Shape(Vec2(shape.height, shape.width))
    for y in range(shape.height):
        for x in range(shape.width):
            if shape.is_filled(Vec2(x, y)):
                out.fill[x, shape.height - 1 - y] = True
    return out


def _reference_rotate270(shape: Shape) -> Shape:
    out = Shape(Vec2(shape.height, shape.width))
    for y in range(shape.height):
        for x in range(shape.width):
            if shape.is_filled(Vec2(x, y)):
                out.fill[shape.width - 1 - x, y] = True
    return out


def test_fits_rejects_out_of_bounds_and_occupied_cells() -> None:
    board = Shape(Vec2(4, 2))
    block = Shape.filled(Vec2(2, 2))
    assert not board.fits(block, Vec2(3, 0))
    assert board.fits(block, Vec2(2, 0))
    board.fill[1, 3] = True
    assert not board.fits(block, Vec2(2, 0))
    assert board.fits(block, Vec2(0, 0))


def test_irregular_shape_fit_example() -> None:
    a = Shape.from_bits(4, [1, 1, 0, 0, 1, 1, 0, 0])
    b = Shape.from_bits(2, [1, 1, 1, 1])
    assert not a.fits(b, (0, 0))
    assert not a.fits(b, (1, 0))
    assert a.fits(b, (2, 0))
    assert not a.fits(b, (3, 0))


def test_irregular_shapes_interlock() -> None:
    hook = Shape.from_bits(2, [1, 0, 1, 1])
    board = Shape(Vec2(3, 2))
    board.paint(hook, (0, 0))
    assert board.fits(Shape.from_bits(2, [1, 1, 0, 1]), (1, 0))
    assert not board.fits(Shape.filled((2, 2)), (1, 0))


def test_paint_then_unpaint_restores_original() -> None:
    board = Shape.from_bits(4, [1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 0, 0])
    original = board.copy()
    tee = Shape.from_bits(3, [1, 1, 1, 0, 1, 0])
    assert board.fits(tee, (1, 1))

    board.paint(tee, (1, 1))
    assert board != original
    assert board.is_filled((2, 2))

    board.unpaint(tee, (1, 1))
    assert board == original


def test_paint_out_of_range_is_noop() -> None:
    board = Shape(Vec2(2, 2))
    board.paint(Shape.filled((2, 2)), (1, 1))
    board.unpaint(Shape.filled((3, 1)), (0, 0))
    assert board == Shape(Vec2(2, 2))


def test_overlay_range_is_inclusive_and_rejects_overflow() -> None:
    board = Shape(Vec2(4, 2))
    assert board.overlay_range(Shape.filled((2, 2)), (2, 0)) == (2, 7)
    assert board.overlay_range(Shape.filled((4, 2)), (0, 0)) == (0, 7)
    assert board.overlay_range(Shape.filled((2, 2)), (3, 0)) is None
    assert board.overlay_range(Shape.filled((1, 1)), (0, 2)) is None


def test_slot_and_pos_are_row_major() -> None:
    board = Shape(Vec2(4, 2))
    assert board.pos(5) == Vec2(1, 1)
    assert board.slot(Vec2(1, 1)) == 5
    assert board.slot((3, 0)) == 3
    assert board.area == 8 and board.width == 4 and board.height == 2
    assert not board.is_square()


def test_contains_has_inclusive_upper_bound() -> None:
    board = Shape(Vec2(4, 2))
    assert board.contains((4, 2))
    assert board.contains((0, 0))
    assert not board.contains((5, 0))
    assert not board.contains((-1, 0))


def test_slots_yields_filled_indices_in_order() -> None:
    diagonal = Shape.from_bits(2, [1, 0, 0, 1])
    assert list(diagonal.slots()) == [0, 3]
    assert str(diagonal) == "■□\n□■\n"
    assert list(diagonal.rows()) == [(True, False), (False, True)]


def test_rotations_match_reference_cell_mapping() -> None:
    zigzag = Shape.from_bits(3, [1, 1, 0, 0, 1, 1])
    assert zigzag.rotate90() == _reference_rotate90(zigzag)
    assert zigzag.rotate270() == _reference_rotate270(zigzag)
    assert zigzag.rotate90().size == Vec2(2, 3)
    assert zigzag.rotate180().bits() == (True, True, False, False, True, True)

    hook = Shape.from_bits(2, [1, 0, 1, 1])
    assert hook.rotate90().bits() == (True, True, True, False)


def test_rotation_is_group_of_order_four() -> None:
    shape = Shape.from_bits(3, [1, 0, 0, 1, 1, 1])
    r90 = shape.rotate90()
    assert r90.rotate90().rotate90().rotate90() == shape
    assert shape.rotate180() == r90.rotate90()
    assert shape.rotate270() == r90.rotate90().rotate90()


def test_rotation_does_not_touch_source() -> None:
    shape = Shape.from_bits(2, [1, 1])
    shape.rotate90()
    assert shape.size == Vec2(2, 1)
    copy = shape.copy()
    copy.fill[0, 0] = False
    assert shape.is_filled((0, 0))


@pytest.mark.parametrize(
    "build",
    [
        lambda: Shape(Vec2(0, 2)),
        lambda: Shape((3, -1)),
        lambda: Shape.from_bits(3, [1, 1]),
        lambda: Shape.from_bits(0, [1]),
        lambda: Shape.from_bits(2, []),
    ],
)
def test_malformed_construction_is_rejected(build) -> None:
    with pytest.raises(ShapeError):
        build()


def test_shape_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        Shape.from_bits(3, [1])
    assert issubclass(ShapeError, StowageError)
