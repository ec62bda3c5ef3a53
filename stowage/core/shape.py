"""Bitmask shapes: occupied cells of an item or running occupancy of a container."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import numpy as np

from stowage.core.models import ONE, Vec2, as_vec2
from stowage.runtime.errors import ShapeError

logger = logging.getLogger(__name__)


class Shape:
    """Numpy-backed boolean mask, row-major, indexed ``x + y * width``.

    The size is fixed at construction; the fill is mutable. Shapes are value
    types: ``copy()`` duplicates the mask and nothing shares it.
    """

    __slots__ = ("size", "fill")

    def __init__(self, size: Vec2 | tuple[int, int], filled: bool = False) -> None:
        size = as_vec2(size)
        if size.x <= 0 or size.y <= 0:
            raise ShapeError(f"Shape dimensions must be positive, got {size.x}x{size.y}.")
        self.size = size
        self.fill = np.full((size.y, size.x), bool(filled), dtype=np.bool_)

    @classmethod
    def filled(cls, size: Vec2 | tuple[int, int]) -> Shape:
        """Return an all-filled shape of the given size."""
        return cls(size, True)

    @classmethod
    def from_bits(cls, width: int, bits: Iterable[int | bool]) -> Shape:
        """Build a shape from a row-major bit sequence."""
        values = [bool(bit) for bit in bits]
        if width <= 0:
            raise ShapeError(f"Shape width must be positive, got {width}.")
        if not values or len(values) % width != 0:
            raise ShapeError(f"{len(values)} bits do not form a rectangle of width {width}.")
        return cls.from_array(np.array(values, dtype=np.bool_).reshape(-1, width))

    @classmethod
    def from_array(cls, array: np.ndarray) -> Shape:
        """Build a shape from a (height, width) array, copying it."""
        fill = np.array(array, dtype=np.bool_, copy=True)
        if fill.ndim != 2 or 0 in fill.shape:
            raise ShapeError(f"Shape array must be 2-D and non-empty, got shape {fill.shape}.")
        shape = cls.__new__(cls)
        shape.size = Vec2(int(fill.shape[1]), int(fill.shape[0]))
        shape.fill = np.ascontiguousarray(fill)
        return shape

    @property
    def width(self) -> int:
        return self.size.x

    @property
    def height(self) -> int:
        return self.size.y

    @property
    def area(self) -> int:
        return self.size.product

    def is_square(self) -> bool:
        return self.size.x == self.size.y

    def copy(self) -> Shape:
        return Shape.from_array(self.fill)

    def bits(self) -> tuple[bool, ...]:
        """Return the fill as a flat row-major tuple."""
        return tuple(bool(bit) for bit in self.fill.ravel())

    def slot(self, point: Vec2 | tuple[int, int]) -> int:
        """Return the row-major index for a cell coordinate."""
        point = as_vec2(point)
        return point.x + point.y * self.width

    def pos(self, slot: int) -> Vec2:
        """Return the cell coordinate for a row-major index."""
        return Vec2(slot % self.width, slot // self.width)

    def is_filled(self, point: Vec2 | tuple[int, int]) -> bool:
        """Return whether the cell at ``point`` is inside the shape and occupied."""
        point = as_vec2(point)
        if not (0 <= point.x < self.width and 0 <= point.y < self.height):
            return False
        return bool(self.fill[point.y, point.x])

    def contains(self, point: Vec2 | tuple[int, int]) -> bool:
        """Return whether ``point`` lies within ``[0, size]`` (upper bound inclusive)."""
        point = as_vec2(point)
        return 0 <= point.x <= self.size.x and 0 <= point.y <= self.size.y

    def overlay_range(self, other: Shape, origin: Vec2 | tuple[int, int]) -> tuple[int, int] | None:
        """Return the inclusive row-major span covered by ``other`` placed at ``origin``.

        Returns None when ``other`` would extend outside this shape. Every
        placement and fit test goes through this bounds check.
        """
        p1 = as_vec2(origin)
        p2 = p1 + other.size
        if not (self.contains(p1) and self.contains(p2)):
            return None
        return self.slot(p1), self.slot(p2 - ONE)

    def paint(self, other: Shape, origin: Vec2 | tuple[int, int]) -> None:
        """OR the occupied cells of ``other`` into this shape; no-op when out of range."""
        region = self._region(other, origin)
        if region is None:
            logger.debug("shape_paint_out_of_range size=%s other=%s origin=%s", self.size, other.size, origin)
            return
        self.fill[region] |= other.fill

    def unpaint(self, other: Shape, origin: Vec2 | tuple[int, int]) -> None:
        """Clear the occupied cells of ``other`` from this shape; no-op when out of range."""
        region = self._region(other, origin)
        if region is None:
            logger.debug("shape_unpaint_out_of_range size=%s other=%s origin=%s", self.size, other.size, origin)
            return
        self.fill[region] &= ~other.fill

    def fits(self, other: Shape, origin: Vec2 | tuple[int, int]) -> bool:
        """Return whether ``other`` at ``origin`` is in bounds and overlaps no occupied cell."""
        region = self._region(other, origin)
        if region is None:
            return False
        return not bool(np.any(self.fill[region] & other.fill))

    def slots(self) -> Iterator[int]:
        """Yield the indices of filled cells, in ascending order."""
        for index in np.flatnonzero(self.fill):
            yield int(index)

    def rows(self) -> Iterator[tuple[bool, ...]]:
        for row in self.fill:
            yield tuple(bool(bit) for bit in row)

    def rotate90(self) -> Shape:
        """Rotate clockwise: cell (x, y) moves to (h - 1 - y, x)."""
        return Shape.from_array(np.rot90(self.fill, k=-1))

    def rotate180(self) -> Shape:
        """Rotate half a turn: cell (x, y) moves to (w - 1 - x, h - 1 - y)."""
        return Shape.from_array(np.rot90(self.fill, k=2))

    def rotate270(self) -> Shape:
        """Rotate counter-clockwise: cell (x, y) moves to (y, w - 1 - x)."""
        return Shape.from_array(np.rot90(self.fill, k=1))

    def _region(self, other: Shape, origin: Vec2 | tuple[int, int]) -> tuple[slice, slice] | None:
        if self.overlay_range(other, origin) is None:
            return None
        p1 = as_vec2(origin)
        return slice(p1.y, p1.y + other.height), slice(p1.x, p1.x + other.width)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shape):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.fill, other.fill))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        bits = "".join("1" if bit else "0" for bit in self.bits())
        return f"Shape(size={self.size.x}x{self.size.y}, bits={bits})"

    def __str__(self) -> str:
        return "".join("".join("■" if bit else "□" for bit in row) + "\n" for row in self.rows())
