"""Core value types shared by the shape, contents and move modules."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from stowage.core.shape import Shape

Flags: TypeAlias = enum.Flag | int


@dataclass(frozen=True, slots=True)
class Vec2:
    """Integer pair used both as a size (width, height) and as a cell coordinate."""

    x: int
    y: int

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def yx(self) -> Vec2:
        """Return the pair with its axes swapped."""
        return Vec2(self.y, self.x)

    def le(self, other: Vec2) -> bool:
        """Return whether both components are <= the other's."""
        return self.x <= other.x and self.y <= other.y

    @property
    def product(self) -> int:
        return self.x * self.y


ZERO = Vec2(0, 0)
ONE = Vec2(1, 1)


def as_vec2(value: Vec2 | tuple[int, int]) -> Vec2:
    """Coerce a (x, y) tuple into a Vec2."""
    if isinstance(value, Vec2):
        return value
    x, y = value
    return Vec2(int(x), int(y))


class Rotation(StrEnum):
    """Discrete item orientation, clockwise."""

    NONE = "NONE"
    R90 = "R90"
    R180 = "R180"
    R270 = "R270"

    def increment(self) -> Rotation:
        """Return the next orientation (cyclic)."""
        order = _ROTATION_ORDER
        return order[(order.index(self) + 1) % len(order)]

    @property
    def degrees(self) -> int:
        return _ROTATION_ORDER.index(self) * 90

    @property
    def angle(self) -> float:
        """Rotation angle in radians."""
        return math.radians(self.degrees)

    def apply(self, shape: Shape) -> Shape:
        """Return a copy of ``shape`` in this orientation."""
        if self is Rotation.R90:
            return shape.rotate90()
        if self is Rotation.R180:
            return shape.rotate180()
        if self is Rotation.R270:
            return shape.rotate270()
        return shape.copy()


_ROTATION_ORDER: tuple[Rotation, ...] = (
    Rotation.NONE,
    Rotation.R90,
    Rotation.R180,
    Rotation.R270,
)


class ShadowColor(StrEnum):
    """Highlight tri-state for a hovered slot."""

    GRAY = "GRAY"
    GREEN = "GREEN"
    RED = "RED"


class PointerAction(StrEnum):
    """What the pointer did this frame over a contents."""

    HOVER = "HOVER"
    PRESS = "PRESS"
    SEND = "SEND"
    OPEN = "OPEN"


@dataclass(frozen=True, slots=True)
class Pointer:
    """Pointer position local to one contents, in cell units."""

    contents_id: int
    offset: Vec2
    action: PointerAction = PointerAction.HOVER

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", as_vec2(self.offset))


def shadow_color(accepts: bool, fits: bool) -> ShadowColor:
    """Return the highlight for a hovered slot."""
    if not accepts:
        return ShadowColor.GRAY
    if fits:
        return ShadowColor.GREEN
    return ShadowColor.RED


def flags_accept(container_flags: Flags | None, item_flags: Flags) -> bool:
    """Return whether every item flag is allowed by the container flags.

    Enum flags and plain ints mix freely; an item with no flags fits anywhere.
    """
    if container_flags is None:
        return True
    bits = _flag_bits(item_flags)
    return (bits & _flag_bits(container_flags)) == bits


def _flag_bits(flags: Flags) -> int:
    if isinstance(flags, enum.Flag):
        return int(flags.value)
    return int(flags)
