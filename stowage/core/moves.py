"""Per-frame move decisions: drag payload, targets, deferred effects and merging."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from enum import StrEnum

from stowage.core.item import Item
from stowage.core.models import ZERO, ShadowColor, Vec2
from stowage.core.shape import Shape
from stowage.runtime.errors import report_violation

logger = logging.getLogger(__name__)


class EffectKind(StrEnum):
    """Occupancy mutation applied at commit."""

    PAINT = "PAINT"
    UNPAINT = "UNPAINT"


@dataclass(frozen=True, slots=True)
class Effect:
    """Deferred occupancy mutation of one leaf contents, addressed by its local slot."""

    kind: EffectKind
    contents_id: int
    slot: int
    shape: Shape


@dataclass(frozen=True, slots=True)
class DragSource:
    """Where a dragged item came from.

    ``slot`` is in the owning container's slot space; ``contents_id`` and
    ``local_slot`` address the leaf that holds the item. ``occupancy`` is the
    leaf occupancy with the item unpainted, taken at drag start; it is None
    only for leaves whose occupancy is implicit (expanding slots).
    """

    container_id: int
    slot: int
    contents_id: int
    local_slot: int
    occupancy: Shape | None = None


@dataclass(frozen=True, slots=True)
class DragItem:
    """An item being relocated; a copy, so it can rotate without touching the original."""

    item: Item
    source: DragSource
    offset: Vec2 = ZERO

    @property
    def id(self) -> int:
        return self.item.id

    def rotated(self) -> DragItem:
        """Turn the dragged copy clockwise, keeping the grabbed cell under the pointer."""
        height = self.item.size.y
        offset = Vec2(height - 1 - self.offset.y, self.offset.x)
        return replace(self, item=self.item.rotated(), offset=offset)


@dataclass(frozen=True, slots=True)
class Target:
    """Proposed destination for the current drag."""

    container_id: int
    slot: int
    contents_id: int


@dataclass(frozen=True, slots=True)
class Shadow:
    """Hover highlight for a leaf contents slot."""

    contents_id: int
    slot: int
    shape: Shape
    color: ShadowColor


@dataclass(frozen=True, slots=True)
class MoveData:
    """Partial move decision produced by querying one contents for one frame."""

    drag: DragItem | None = None
    target: Target | None = None
    effect: Effect | None = None
    send: DragItem | None = None
    open: int | None = None
    shadows: tuple[Shadow, ...] = field(default=())

    @property
    def is_empty(self) -> bool:
        return (
            self.drag is None
            and self.target is None
            and self.send is None
            and self.open is None
            and not self.shadows
        )

    def merge(self, other: MoveData, *, strict: bool = False) -> MoveData:
        """Fold two frame results; on conflicts the first value wins."""
        if self.drag is not None and other.drag is not None:
            report_violation(
                logger,
                "merge_duplicate_drag kept=%s dropped=%s",
                self.drag.id,
                other.drag.id,
                strict=strict,
            )
        if self.target is not None and other.target is not None:
            report_violation(
                logger,
                "merge_duplicate_target kept=%s dropped=%s",
                self.target,
                other.target,
                strict=strict,
            )
        if self.send is not None and other.send is not None:
            report_violation(
                logger,
                "merge_duplicate_send kept=%s dropped=%s",
                self.send.id,
                other.send.id,
                strict=strict,
            )
        if self.target is not None:
            target, effect = self.target, self.effect
        else:
            target, effect = other.target, other.effect
        return MoveData(
            drag=self.drag if self.drag is not None else other.drag,
            target=target,
            effect=effect,
            send=self.send if self.send is not None else other.send,
            open=self.open if self.open is not None else other.open,
            shadows=self.shadows + other.shadows,
        )

    def map_slots(self, container_id: int, f: Callable[[int], int]) -> MoveData:
        """Remap container slots owned by ``container_id``; other containers are untouched."""
        return replace(
            self,
            drag=_map_drag(self.drag, container_id, f),
            target=(
                replace(self.target, slot=f(self.target.slot))
                if self.target is not None and self.target.container_id == container_id
                else self.target
            ),
            send=_map_drag(self.send, container_id, f),
        )


def merge_all(datas: Iterable[MoveData], *, strict: bool = False) -> MoveData:
    """Fold any number of frame results, first wins."""
    merged = MoveData()
    for data in datas:
        merged = merged.merge(data, strict=strict)
    return merged


def _map_drag(drag: DragItem | None, container_id: int, f: Callable[[int], int]) -> DragItem | None:
    if drag is None or drag.source.container_id != container_id:
        return drag
    return replace(drag, source=replace(drag.source, slot=f(drag.source.slot)))
