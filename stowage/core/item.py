"""Inventory items."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from stowage.core.models import ONE, Flags, Rotation, Vec2, as_vec2
from stowage.core.shape import Shape


def _unit_shape() -> Shape:
    return Shape.filled(ONE)


@dataclass(frozen=True, slots=True)
class Item:
    """An item with a base shape and the oriented shape derived from its rotation.

    The base shape is kept so the oriented shape can always be recomputed
    from scratch; rotation never mutates a shape in place.
    """

    id: int
    base_shape: Shape = field(default_factory=_unit_shape)
    rotation: Rotation = Rotation.NONE
    flags: Flags = 0
    name: str = ""
    icon: object | None = field(default=None, compare=False)
    shape: Shape = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", self.rotation.apply(self.base_shape))

    @property
    def size(self) -> Vec2:
        """Oriented size in cells."""
        return self.shape.size

    def with_shape(self, shape: Shape | Vec2 | tuple[int, int]) -> Item:
        """Return a copy with a new base shape and no rotation."""
        base = shape if isinstance(shape, Shape) else Shape.filled(as_vec2(shape))
        return replace(self, base_shape=base, rotation=Rotation.NONE)

    def with_rotation(self, rotation: Rotation) -> Item:
        return replace(self, rotation=rotation)

    def rotated(self) -> Item:
        """Return a copy turned one step clockwise."""
        return replace(self, rotation=self.rotation.increment())

    def covers(self, offset: Vec2) -> bool:
        """Return whether the oriented shape occupies the cell at ``offset``."""
        return self.shape.is_filled(offset)
