"""Container table: item ownership, per-frame queries and move commits."""

from __future__ import annotations

import bisect
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace

from stowage.core.contents import (
    ContentsTable,
    GridContents,
    HeaderContents,
    InlineContents,
    SectionContents,
)
from stowage.core.events import ItemInsert, ItemMove, ItemRemove
from stowage.core.item import Item
from stowage.core.models import ZERO, Pointer, PointerAction, Vec2, shadow_color
from stowage.core.moves import DragItem, DragSource, Effect, MoveData, Shadow, Target
from stowage.core.shape import Shape
from stowage.runtime.config import EngineConfig, load_engine_config
from stowage.runtime.errors import (
    ContentsInUseError,
    StowageError,
    UnknownContentsError,
    log_recoverable,
    report_violation,
)
from stowage.runtime.events import EventBus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Container:
    """Owner of items laid out by one contents tree. Items stay sorted by slot."""

    id: int
    contents_id: int
    items: list[tuple[int, Item]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MoveResult:
    """A committed transfer."""

    item: Item
    source_container_id: int
    source_slot: int
    container_id: int
    slot: int

    @property
    def same_container(self) -> bool:
        return self.source_container_id == self.container_id


class ContainerStore:
    """Flat table of containers keyed by id.

    Item ids and container ids are separate namespaces. An item that opens into
    a container (a bag, a backpack) is linked to it with ``add_container(...,
    item_id=...)``.
    """

    def __init__(
        self,
        table: ContentsTable | None = None,
        *,
        bus: EventBus | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.table = table if table is not None else ContentsTable()
        self.bus = bus if bus is not None else EventBus()
        self.config = config if config is not None else load_engine_config()
        self._containers: dict[int, Container] = {}
        self._claimed: set[int] = set()
        self._nested: dict[int, int] = {}

    @property
    def strict(self) -> bool:
        return self.config.strict_contracts

    def add_container(
        self,
        container_id: int,
        contents_id: int,
        items: Iterable[Item] = (),
        *,
        item_id: int | None = None,
    ) -> Container:
        """Register a container and place its initial items with ``insert``.

        ``item_id`` names the item whose contents this container is.
        """
        if container_id in self._containers:
            raise StowageError(f"Container {container_id} already exists.")
        if item_id is not None and item_id in self._nested:
            raise StowageError(f"Item {item_id} already opens container {self._nested[item_id]}.")
        claimed = {contents_id, *self.table.leaves(contents_id)}
        in_use = sorted(claimed & self._claimed)
        if in_use:
            raise ContentsInUseError(f"Contents {in_use} already belong to another container.")
        self._claimed |= claimed
        container = Container(container_id, contents_id)
        self._containers[container_id] = container
        if item_id is not None:
            self._nested[item_id] = container_id
        for item in items:
            if self.insert(container_id, item) is None:
                raise StowageError(f"No slot for item {item.id} in container {container_id}.")
        logger.debug(
            "container_added id=%s contents=%s items=%d", container_id, contents_id, len(container.items)
        )
        return container

    def container(self, container_id: int) -> Container:
        try:
            return self._containers[container_id]
        except KeyError:
            raise UnknownContentsError(container_id) from None

    def items(self, container_id: int) -> tuple[tuple[int, Item], ...]:
        return tuple(self.container(container_id).items)

    def locate(self, item_id: int) -> tuple[int, int, Item] | None:
        """Return ``(container id, slot, item)`` for an item, if any container holds it."""
        for container in self._containers.values():
            for slot, item in container.items:
                if item.id == item_id:
                    return container.id, slot, item
        return None

    def nested_container(self, item_id: int) -> int | None:
        """Return the container an item opens into, if any."""
        return self._nested.get(item_id)

    def contains(self, outer: int, item_id: int) -> bool:
        """Return whether container ``outer`` holds the item, directly or through nested containers."""
        container = self._containers.get(outer)
        if container is None:
            return False
        for _, item in container.items:
            if item.id == item_id:
                return True
            nested = self._nested.get(item.id)
            if nested is not None and self.contains(nested, item_id):
                return True
        return False

    def encloses(self, outer: int, inner: int) -> bool:
        """Return whether container ``inner`` sits somewhere inside container ``outer``."""
        container = self._containers.get(outer)
        if container is None:
            return False
        for _, item in container.items:
            nested = self._nested.get(item.id)
            if nested is not None and (nested == inner or self.encloses(nested, inner)):
                return True
        return False

    def can_hold(self, container_id: int, item_id: int) -> bool:
        """Return whether placing the item in the container keeps the hierarchy a tree."""
        nested = self._nested.get(item_id)
        if nested is None:
            return True
        return nested != container_id and not self.encloses(nested, container_id)

    def find_slot(self, container_id: int, item: Item, source: DragSource | None = None) -> int | None:
        """Return the first slot of the container that accepts and fits ``item``."""
        container = self.container(container_id)
        return self.table.find_slot(
            container.contents_id, item, container.items, source, strict=self.strict
        )

    def insert(self, container_id: int, item: Item) -> int | None:
        """Place ``item`` in the first free slot and return it."""
        container = self.container(container_id)
        if not self.can_hold(container_id, item.id):
            logger.info("insert_rejected_cycle item=%s container=%s", item.id, container_id)
            return None
        slot = self.find_slot(container_id, item)
        if slot is None:
            logger.info("insert_no_slot item=%s container=%s", item.id, container_id)
            return None
        self._attach(container, slot, item)
        self.bus.publish(ItemInsert(container_id, slot, item.id))
        return slot

    def place(self, container_id: int, slot: int, item: Item) -> bool:
        """Place ``item`` at an explicit slot if it is accepted and fits there."""
        container = self.container(container_id)
        if not self.can_hold(container_id, item.id):
            return False
        resolved = self.table.resolve_leaf(container.contents_id, slot)
        if resolved is None:
            return False
        leaf_id, local = resolved
        local_items = self._items_by_leaf(container).get(leaf_id, [])
        if not self.table.accepts(leaf_id, item):
            return False
        if not self.table.fits(leaf_id, item, local, local_items, strict=self.strict):
            return False
        self._attach(container, slot, item)
        self.bus.publish(ItemInsert(container_id, slot, item.id))
        return True

    def remove(self, container_id: int, slot: int, item_id: int) -> Item | None:
        """Detach an item and release its occupancy."""
        item = self._detach(self.container(container_id), slot, item_id)
        if item is not None:
            self.bus.publish(ItemRemove(container_id, slot, item_id))
        return item

    def pick_up(self, container_id: int, slot: int, item_id: int, offset: Vec2 = ZERO) -> DragItem | None:
        """Start a drag programmatically; the item stays owned until the move commits."""
        container = self.container(container_id)
        for item_slot, item in container.items:
            if item_slot == slot and item.id == item_id:
                resolved = self.table.resolve_leaf(container.contents_id, slot)
                if resolved is None:
                    break
                leaf_id, local = resolved
                return self._drag_for(container_id, slot, leaf_id, local, item, offset)
        return None

    def query(self, container_id: int, drag: DragItem | None, pointer: Pointer | None) -> MoveData:
        """Evaluate one container for this frame without mutating anything."""
        container = self.container(container_id)
        return self._query(container_id, container.contents_id, container.items, drag, pointer)

    def resolve_move(self, drag: DragItem, target: Target, effect: Effect | None = None) -> MoveResult | None:
        """Commit a drag: detach from the source, then attach at the target.

        Returns None when the move is rejected (cycle) or abandoned (the
        source no longer holds the item). Neither case raises.
        """
        item_id = drag.id
        if not self.can_hold(target.container_id, item_id):
            logger.info("move_rejected_cycle item=%s container=%s", item_id, target.container_id)
            return None
        source = self._containers.get(drag.source.container_id)
        dest = self._containers.get(target.container_id)
        if source is None or dest is None:
            log_recoverable(
                logger,
                "move_abandoned_unknown_container source=%s target=%s item=%s",
                drag.source.container_id,
                target.container_id,
                item_id,
            )
            return None

        original = self._detach(source, drag.source.slot, item_id)
        if original is None:
            log_recoverable(
                logger,
                "move_abandoned_stale_source item=%s container=%s slot=%s",
                item_id,
                source.id,
                drag.source.slot,
            )
            return None

        moved = original
        if original.rotation != drag.item.rotation:
            moved = original.with_rotation(drag.item.rotation)
        self._attach(dest, target.slot, moved, effect)

        if source.id == dest.id:
            self.bus.publish(ItemMove(dest.id, drag.source.slot, target.slot, item_id))
        else:
            self.bus.publish(ItemRemove(source.id, drag.source.slot, item_id))
            self.bus.publish(ItemInsert(dest.id, target.slot, item_id))
        logger.info(
            "move_committed item=%s rotation=%s from=%s:%s to=%s:%s",
            item_id,
            moved.rotation.value,
            source.id,
            drag.source.slot,
            dest.id,
            target.slot,
        )

        if self.config.debug_occupancy:
            for container_id in {source.id, dest.id}:
                if not self.occupancy_consistent(container_id):
                    report_violation(
                        logger, "occupancy_inconsistent container=%s", container_id, strict=self.strict
                    )
        return MoveResult(moved, source.id, drag.source.slot, dest.id, target.slot)

    def send(self, drag: DragItem, container_id: int) -> MoveResult | None:
        """Move a picked-up item straight to the first free slot of ``container_id``."""
        if not self.can_hold(container_id, drag.id):
            logger.info("send_rejected_cycle item=%s container=%s", drag.id, container_id)
            return None
        slot = self.find_slot(container_id, drag.item, drag.source)
        if slot is None:
            logger.info("send_no_slot item=%s container=%s", drag.id, container_id)
            return None
        return self.resolve_move(drag, self._target(container_id, slot))

    def rebuild_occupancy(self, container_id: int) -> None:
        """Recompute every grid occupancy of the container from its items."""
        for leaf_id, shape in self._expected_occupancy(self.container(container_id)).items():
            contents = self.table.get(leaf_id)
            if isinstance(contents, GridContents):
                contents.occupancy = shape

    def occupancy_consistent(self, container_id: int) -> bool:
        """Return whether each grid occupancy is exactly the union of its items' shapes."""
        for leaf_id, shape in self._expected_occupancy(self.container(container_id)).items():
            contents = self.table.get(leaf_id)
            if isinstance(contents, GridContents) and contents.occupancy != shape:
                return False
        return True

    def _query(
        self,
        container_id: int,
        contents_id: int,
        items: Sequence[tuple[int, Item]],
        drag: DragItem | None,
        pointer: Pointer | None,
    ) -> MoveData:
        contents = self.table.get(contents_id)
        if isinstance(contents, SectionContents):
            data = MoveData()
            for child, start, bucket in self.table.split_items(contents_id, items, strict=self.strict):
                sub = self._query(container_id, child, bucket, drag, pointer)
                data = data.merge(sub.map_slots(container_id, _shift(start)), strict=self.strict)
            return data
        if isinstance(contents, HeaderContents):
            pointer = _retarget(pointer, contents_id, contents.inner)
            return self._query(container_id, contents.inner, items, drag, pointer)
        if isinstance(contents, InlineContents):
            pointer = _retarget(pointer, contents_id, contents.inner)
            data = self._query(container_id, contents.inner, items, drag, pointer)
            if items:
                occupant = items[0][1]
                nested = self._nested.get(occupant.id)
                if nested is not None and (drag is None or drag.id != occupant.id):
                    data = data.merge(self.query(nested, drag, pointer), strict=self.strict)
            return data
        return self._query_leaf(container_id, contents_id, items, drag, pointer)

    def _query_leaf(
        self,
        container_id: int,
        contents_id: int,
        items: Sequence[tuple[int, Item]],
        drag: DragItem | None,
        pointer: Pointer | None,
    ) -> MoveData:
        if pointer is None or pointer.contents_id != contents_id:
            return MoveData()
        hovered = self._hovered(contents_id, items, pointer.offset, drag)
        if drag is None:
            return self._pointer_action(container_id, contents_id, hovered, pointer)
        if hovered is not None and hovered[1].id in self._nested:
            return self._target_nested(contents_id, hovered, drag)

        slot = self.table.hover_slot(contents_id, pointer.offset, drag.offset)
        if slot is None:
            return MoveData()
        accepts = self.table.accepts(contents_id, drag.item)
        fits = self.table.fits(contents_id, drag.item, slot, items, drag.source, strict=self.strict)
        shadow = Shadow(contents_id, slot, drag.item.shape, shadow_color(accepts, fits))
        if not (accepts and fits):
            return MoveData(shadows=(shadow,))
        return MoveData(
            target=Target(container_id, slot, contents_id),
            effect=self.table.add_effect(contents_id, slot, drag.item.shape),
            shadows=(shadow,),
        )

    def _pointer_action(
        self,
        container_id: int,
        contents_id: int,
        hovered: tuple[int, Item] | None,
        pointer: Pointer,
    ) -> MoveData:
        if hovered is None:
            return MoveData()
        slot, item = hovered
        grab = pointer.offset - self.table.pos(contents_id, slot)
        if pointer.action is PointerAction.PRESS:
            return MoveData(drag=self._drag_for(container_id, slot, contents_id, slot, item, grab))
        if pointer.action is PointerAction.SEND:
            return MoveData(send=self._drag_for(container_id, slot, contents_id, slot, item, grab))
        if pointer.action is PointerAction.OPEN and item.id in self._nested:
            return MoveData(open=self._nested[item.id])
        return MoveData()

    def _target_nested(self, contents_id: int, hovered: tuple[int, Item], drag: DragItem) -> MoveData:
        slot, holder = hovered
        nested = self.container(self._nested[holder.id])
        found = None
        if self.can_hold(nested.id, drag.id):
            found = self.find_slot(nested.id, drag.item, drag.source)
        shadow = Shadow(contents_id, slot, holder.shape, shadow_color(True, found is not None))
        if found is None:
            return MoveData(shadows=(shadow,))
        return MoveData(
            target=self._target(nested.id, found),
            effect=self.table.add_effect(nested.contents_id, found, drag.item.shape),
            shadows=(shadow,),
        )

    def _hovered(
        self,
        contents_id: int,
        items: Sequence[tuple[int, Item]],
        offset: Vec2,
        drag: DragItem | None,
    ) -> tuple[int, Item] | None:
        for slot, item in items:
            if drag is not None and item.id == drag.id:
                continue
            if item.covers(offset - self.table.pos(contents_id, slot)):
                return slot, item
        return None

    def _drag_for(
        self,
        container_id: int,
        slot: int,
        leaf_id: int,
        local_slot: int,
        item: Item,
        offset: Vec2,
    ) -> DragItem:
        source = DragSource(
            container_id=container_id,
            slot=slot,
            contents_id=leaf_id,
            local_slot=local_slot,
            occupancy=self.table.snapshot_without(leaf_id, local_slot, item.shape),
        )
        return DragItem(item=item, source=source, offset=offset)

    def _target(self, container_id: int, slot: int) -> Target:
        contents_id = self.container(container_id).contents_id
        resolved = self.table.resolve_leaf(contents_id, slot)
        leaf_id = resolved[0] if resolved is not None else contents_id
        return Target(container_id, slot, leaf_id)

    def _attach(self, container: Container, slot: int, item: Item, effect: Effect | None = None) -> None:
        bisect.insort(container.items, (slot, item), key=_slot_key)
        if effect is None:
            effect = self.table.add_effect(container.contents_id, slot, item.shape)
        if effect is not None:
            self.table.apply(effect)

    def _detach(self, container: Container, slot: int, item_id: int) -> Item | None:
        for index, (item_slot, item) in enumerate(container.items):
            if item_slot == slot and item.id == item_id:
                del container.items[index]
                effect = self.table.remove_effect(container.contents_id, slot, item.shape)
                if effect is not None:
                    self.table.apply(effect)
                return item
        return None

    def _items_by_leaf(self, container: Container) -> dict[int, list[tuple[int, Item]]]:
        by_leaf: dict[int, list[tuple[int, Item]]] = {}
        for slot, item in container.items:
            resolved = self.table.resolve_leaf(container.contents_id, slot)
            if resolved is not None:
                by_leaf.setdefault(resolved[0], []).append((resolved[1], item))
        return by_leaf

    def _expected_occupancy(self, container: Container) -> dict[int, Shape]:
        expected: dict[int, Shape] = {}
        for leaf_id in self.table.leaves(container.contents_id):
            contents = self.table.get(leaf_id)
            if isinstance(contents, GridContents):
                expected[leaf_id] = Shape(contents.size)
        for slot, item in container.items:
            effect = self.table.add_effect(container.contents_id, slot, item.shape)
            if effect is not None and effect.contents_id in expected:
                shape = expected[effect.contents_id]
                shape.paint(effect.shape, shape.pos(effect.slot))
        return expected


def _slot_key(entry: tuple[int, Item]) -> int:
    return entry[0]


def _shift(start: int) -> Callable[[int], int]:
    return lambda slot: slot + start


def _retarget(pointer: Pointer | None, wrapper_id: int, inner_id: int) -> Pointer | None:
    if pointer is None or pointer.contents_id != wrapper_id:
        return pointer
    return replace(pointer, contents_id=inner_id)
