from __future__ import annotations

import enum
import math

from stowage.core.item import Item
from stowage.core.models import Pointer, Rotation, ShadowColor, Vec2, flags_accept, shadow_color
from stowage.core.shape import Shape


class Kind(enum.Flag):
    AMMO = enum.auto()
    WEAPON = enum.auto()
    ARMOR = enum.auto()


def test_rotation_increment_cycles_clockwise() -> None:
    assert Rotation.NONE.increment() is Rotation.R90
    assert Rotation.R270.increment() is Rotation.NONE
    assert Rotation.R180.degrees == 180
    assert math.isclose(Rotation.R90.angle, math.pi / 2)


def test_item_shape_follows_rotation() -> None:
    bar = Item(1, Shape.filled((3, 1)))
    assert bar.size == Vec2(3, 1)
    turned = bar.rotated()
    assert turned.rotation is Rotation.R90
    assert turned.size == Vec2(1, 3)
    assert turned.base_shape == bar.base_shape
    assert bar.size == Vec2(3, 1)
    assert bar.with_rotation(Rotation.R180).size == Vec2(3, 1)
    assert turned.rotated().rotated().rotated() == bar


def test_item_with_shape_resets_rotation() -> None:
    item = Item(2).with_rotation(Rotation.R90).with_shape((2, 2))
    assert item.rotation is Rotation.NONE
    assert item.shape == Shape.filled((2, 2))


def test_item_covers_only_filled_cells() -> None:
    hook = Item(3, Shape.from_bits(2, [1, 0, 1, 1]))
    assert hook.covers(Vec2(0, 0))
    assert not hook.covers(Vec2(1, 0))
    assert hook.covers(Vec2(1, 1))
    assert not hook.covers(Vec2(2, 1))


def test_item_equality_ignores_icon() -> None:
    assert Item(4, name="knife", icon="a.png") == Item(4, name="knife", icon="b.png")
    assert Item(4) != Item(5)


def test_shadow_color_tri_state() -> None:
    assert shadow_color(False, True) is ShadowColor.GRAY
    assert shadow_color(False, False) is ShadowColor.GRAY
    assert shadow_color(True, True) is ShadowColor.GREEN
    assert shadow_color(True, False) is ShadowColor.RED


def test_flags_accept_requires_item_flags_subset() -> None:
    assert flags_accept(None, Kind.WEAPON | Kind.ARMOR)
    assert flags_accept(Kind.AMMO | Kind.WEAPON, Kind.AMMO)
    assert not flags_accept(Kind.AMMO, Kind.AMMO | Kind.WEAPON)
    assert flags_accept(Kind.AMMO, Kind(0))
    assert flags_accept(0b11, 0b01)
    assert not flags_accept(0b01, 0b10)


def test_vec2_arithmetic() -> None:
    assert Vec2(3, 1) - Vec2(1, 1) == Vec2(2, 0)
    assert Vec2(3, 1).yx() == Vec2(1, 3)
    assert Vec2(1, 2).le(Vec2(2, 2))
    assert not Vec2(3, 2).le(Vec2(2, 2))
    assert Vec2(3, 2).product == 6


def test_unflagged_item_is_accepted_by_enum_flagged_container() -> None:
    assert flags_accept(Kind.AMMO, Item(1).flags)
    assert flags_accept(Kind.AMMO | Kind.ARMOR, 0b001)
    assert not flags_accept(0b001, Kind.WEAPON)


def test_pointer_offset_accepts_tuples() -> None:
    pointer = Pointer(3, (2, 1))
    assert pointer.offset == Vec2(2, 1)
    assert pointer.offset - Vec2(1, 1) == Vec2(1, 0)
