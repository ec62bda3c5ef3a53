"""Container layouts and the arena table that dispatches over them.

Every layout is registered in a ``ContentsTable`` and referenced by integer
id. Composite layouts (sections, headers, inline slots) refer to their
children by id, and a child must be registered before its parent, so the
layout graph is always a tree.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TypeAlias

from stowage.core.item import Item
from stowage.core.models import ZERO, Flags, Vec2, as_vec2, flags_accept
from stowage.core.moves import DragSource, Effect, EffectKind
from stowage.core.shape import Shape
from stowage.runtime.errors import (
    UnknownContentsError,
    UnsupportedContentsOperation,
    report_violation,
)

logger = logging.getLogger(__name__)

SlotItems: TypeAlias = Sequence[tuple[int, Item]]


@dataclass(slots=True)
class GridContents:
    """Rectangular grid; items may be any shape that fits the running occupancy."""

    size: Vec2
    flags: Flags | None = None
    occupancy: Shape = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.size = as_vec2(self.size)
        self.occupancy = Shape(self.size, False)


@dataclass(frozen=True, slots=True)
class ExpandingContents:
    """A single slot holding one item of any size up to ``max_size``."""

    max_size: Vec2
    flags: Flags | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_size", as_vec2(self.max_size))


@dataclass(frozen=True, slots=True)
class SectionContents:
    """Ordered sub-contents presented as one contiguous slot range."""

    sections: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "sections", tuple(self.sections))


@dataclass(frozen=True, slots=True)
class HeaderContents:
    """Labelled wrapper forwarding every operation to ``inner``."""

    header: str
    inner: int


@dataclass(frozen=True, slots=True)
class InlineContents:
    """Expanding slot whose occupant, when it is a container, is shown inline."""

    inner: int


Contents: TypeAlias = GridContents | ExpandingContents | SectionContents | HeaderContents | InlineContents
LeafContents: TypeAlias = GridContents | ExpandingContents


class ContentsTable:
    """Flat arena of layouts keyed by stable integer id."""

    def __init__(self) -> None:
        self._next_id = 1
        self._contents: dict[int, Contents] = {}

    def add(self, contents: Contents) -> int:
        """Register a layout and return its id."""
        for child in _children(contents):
            if child not in self._contents:
                raise UnknownContentsError(child)
        if isinstance(contents, InlineContents) and not isinstance(
            self._contents[contents.inner], ExpandingContents
        ):
            raise TypeError("Inline contents must wrap an expanding contents.")
        contents_id = self._next_id
        self._next_id += 1
        self._contents[contents_id] = contents
        return contents_id

    def get(self, contents_id: int) -> Contents:
        try:
            return self._contents[contents_id]
        except KeyError:
            raise UnknownContentsError(contents_id) from None

    def __contains__(self, contents_id: object) -> bool:
        return contents_id in self._contents

    def leaves(self, contents_id: int) -> Iterator[int]:
        """Yield leaf ids under ``contents_id`` in slot order."""
        contents = self.get(contents_id)
        if isinstance(contents, SectionContents):
            for child in contents.sections:
                yield from self.leaves(child)
        elif isinstance(contents, (HeaderContents, InlineContents)):
            yield from self.leaves(contents.inner)
        else:
            yield contents_id

    def leaf(self, contents_id: int) -> LeafContents:
        contents = self.get(contents_id)
        if not isinstance(contents, (GridContents, ExpandingContents)):
            raise TypeError(f"Contents {contents_id} is not a leaf.")
        return contents

    def unwrap(self, contents_id: int) -> int:
        """Follow header/inline wrappers down to the wrapped id."""
        contents = self.get(contents_id)
        while isinstance(contents, (HeaderContents, InlineContents)):
            contents_id = contents.inner
            contents = self.get(contents_id)
        return contents_id

    def length(self, contents_id: int) -> int:
        """Number of addressable slots."""
        contents = self.get(contents_id)
        if isinstance(contents, GridContents):
            return contents.occupancy.area
        if isinstance(contents, ExpandingContents):
            return 1
        if isinstance(contents, SectionContents):
            return sum(self.length(child) for child in contents.sections)
        return self.length(contents.inner)

    def pos(self, contents_id: int, slot: int) -> Vec2:
        """Return the cell offset of ``slot`` relative to the contents origin."""
        contents = self.get(contents_id)
        if isinstance(contents, GridContents):
            return contents.occupancy.pos(slot)
        if isinstance(contents, ExpandingContents):
            return ZERO
        if isinstance(contents, SectionContents):
            raise UnsupportedContentsOperation("Section contents have no positions; resolve a leaf first.")
        return self.pos(contents.inner, slot)

    def slot_at(self, contents_id: int, offset: Vec2) -> int:
        """Return the slot for a cell offset. Offsets outside the contents are not checked."""
        contents = self.get(contents_id)
        if isinstance(contents, GridContents):
            return contents.occupancy.slot(offset)
        if isinstance(contents, ExpandingContents):
            return 0
        if isinstance(contents, SectionContents):
            raise UnsupportedContentsOperation("Section contents have no positions; resolve a leaf first.")
        return self.slot_at(contents.inner, offset)

    def hover_slot(self, contents_id: int, pointer: Vec2, grab: Vec2) -> int | None:
        """Return the slot a dragged item would land on, or None when outside the contents."""
        contents = self.get(self.unwrap(contents_id))
        if isinstance(contents, ExpandingContents):
            return 0
        if not isinstance(contents, GridContents):
            return None
        origin = pointer - grab
        if not (0 <= origin.x < contents.size.x and 0 <= origin.y < contents.size.y):
            return None
        return contents.occupancy.slot(origin)

    def accepts(self, contents_id: int, item: Item) -> bool:
        contents = self.get(contents_id)
        if isinstance(contents, (GridContents, ExpandingContents)):
            return flags_accept(contents.flags, item.flags)
        if isinstance(contents, SectionContents):
            return any(self.accepts(child, item) for child in contents.sections)
        return self.accepts(contents.inner, item)

    def fits(
        self,
        contents_id: int,
        item: Item,
        slot: int,
        items: SlotItems = (),
        source: DragSource | None = None,
        *,
        strict: bool = False,
    ) -> bool:
        """Return whether ``item`` fits at ``slot``.

        When ``source`` says the item is currently held by this very leaf, the
        occupancy snapshot taken at drag start (item unpainted) is used
        instead of the live occupancy.
        """
        contents = self.get(contents_id)
        own = source is not None and source.contents_id == contents_id
        if isinstance(contents, GridContents):
            occupancy = contents.occupancy
            if own:
                if source.occupancy is None:
                    report_violation(
                        logger,
                        "missing_occupancy_snapshot contents=%s slot=%s",
                        contents_id,
                        source.local_slot,
                        strict=strict,
                    )
                    return False
                occupancy = source.occupancy
            return occupancy.fits(item.shape, occupancy.pos(slot))
        if isinstance(contents, ExpandingContents):
            filled = bool(items) and not own
            return slot == 0 and not filled and item.size.le(contents.max_size)
        if isinstance(contents, SectionContents):
            return False
        return self.fits(contents.inner, item, slot, items, source, strict=strict)

    def find_slot(
        self,
        contents_id: int,
        item: Item,
        items: SlotItems = (),
        source: DragSource | None = None,
        *,
        strict: bool = False,
    ) -> int | None:
        """Return the first slot, in ascending order, where ``item`` is accepted and fits."""
        contents = self.get(contents_id)
        if isinstance(contents, SectionContents):
            for child, start, bucket in self.split_items(contents_id, items, strict=strict):
                found = self.find_slot(child, item, bucket, source, strict=strict)
                if found is not None:
                    return found + start
            return None
        if isinstance(contents, (HeaderContents, InlineContents)):
            return self.find_slot(contents.inner, item, items, source, strict=strict)
        if not self.accepts(contents_id, item):
            return None
        for slot in range(self.length(contents_id)):
            if self.fits(contents_id, item, slot, items, source, strict=strict):
                return slot
        return None

    def add_effect(self, contents_id: int, slot: int, shape: Shape) -> Effect | None:
        """Return the occupancy effect of placing ``shape`` at ``slot``, if any."""
        return self._effect(EffectKind.PAINT, contents_id, slot, shape)

    def remove_effect(self, contents_id: int, slot: int, shape: Shape) -> Effect | None:
        """Return the occupancy effect of removing ``shape`` from ``slot``, if any."""
        return self._effect(EffectKind.UNPAINT, contents_id, slot, shape)

    def apply(self, effect: Effect) -> None:
        """Run a deferred occupancy effect against its leaf."""
        contents = self.get(effect.contents_id)
        if not isinstance(contents, GridContents):
            raise TypeError(f"Effect targets contents {effect.contents_id} which has no occupancy.")
        occupancy = contents.occupancy
        origin = occupancy.pos(effect.slot)
        if effect.kind is EffectKind.PAINT:
            occupancy.paint(effect.shape, origin)
        else:
            occupancy.unpaint(effect.shape, origin)

    def section_ranges(self, contents_id: int) -> list[tuple[int, int]]:
        """Return ``[start, end)`` slot ranges of each sub-contents."""
        contents = self.get(contents_id)
        if not isinstance(contents, SectionContents):
            raise TypeError(f"Contents {contents_id} is not a section.")
        ranges: list[tuple[int, int]] = []
        end = 0
        for child in contents.sections:
            start = end
            end += self.length(child)
            ranges.append((start, end))
        return ranges

    def section_slot(self, contents_id: int, slot: int) -> tuple[int, int] | None:
        """Map a section slot to ``(section index, local slot)``."""
        for index, (start, end) in enumerate(self.section_ranges(contents_id)):
            if start <= slot < end:
                return index, slot - start
        return None

    def resolve_leaf(self, contents_id: int, slot: int) -> tuple[int, int] | None:
        """Map a slot to ``(leaf id, local slot)`` through sections and wrappers."""
        contents = self.get(contents_id)
        if isinstance(contents, SectionContents):
            found = self.section_slot(contents_id, slot)
            if found is None:
                return None
            index, local = found
            return self.resolve_leaf(contents.sections[index], local)
        if isinstance(contents, (HeaderContents, InlineContents)):
            return self.resolve_leaf(contents.inner, slot)
        if not 0 <= slot < self.length(contents_id):
            return None
        return contents_id, slot

    def split_items(
        self,
        contents_id: int,
        items: SlotItems,
        *,
        strict: bool = False,
    ) -> list[tuple[int, int, list[tuple[int, Item]]]]:
        """Partition slot-sorted items into ``(child id, start, local items)`` per section."""
        contents = self.get(contents_id)
        if not isinstance(contents, SectionContents):
            raise TypeError(f"Contents {contents_id} is not a section.")
        ranges = self.section_ranges(contents_id)
        ordered = list(items)
        if any(a[0] > b[0] for a, b in zip(ordered, ordered[1:])):
            report_violation(logger, "section_items_unsorted contents=%s", contents_id, strict=strict)
            ordered.sort(key=lambda entry: entry[0])
        buckets: list[list[tuple[int, Item]]] = [[] for _ in ranges]
        for slot, item in ordered:
            for index, (start, end) in enumerate(ranges):
                if start <= slot < end:
                    buckets[index].append((slot - start, item))
                    break
            else:
                report_violation(
                    logger,
                    "section_item_out_of_range contents=%s slot=%s item=%s",
                    contents_id,
                    slot,
                    item.id,
                    strict=strict,
                )
        return [
            (child, start, bucket)
            for child, (start, _end), bucket in zip(contents.sections, ranges, buckets)
        ]

    def snapshot_without(self, contents_id: int, local_slot: int, shape: Shape) -> Shape | None:
        """Copy a leaf's occupancy with ``shape`` unpainted at ``local_slot``."""
        contents = self.leaf(contents_id)
        if isinstance(contents, ExpandingContents):
            return None
        snapshot = contents.occupancy.copy()
        snapshot.unpaint(shape, snapshot.pos(local_slot))
        return snapshot

    def _effect(self, kind: EffectKind, contents_id: int, slot: int, shape: Shape) -> Effect | None:
        resolved = self.resolve_leaf(contents_id, slot)
        if resolved is None:
            return None
        leaf_id, local = resolved
        if isinstance(self.get(leaf_id), ExpandingContents):
            return None
        return Effect(kind, leaf_id, local, shape)


def _children(contents: Contents) -> tuple[int, ...]:
    if isinstance(contents, SectionContents):
        return contents.sections
    if isinstance(contents, (HeaderContents, InlineContents)):
        return (contents.inner,)
    return ()
