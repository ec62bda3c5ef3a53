"""Per-frame drag and drop interaction flow."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from stowage.core.events import ContainerOpen, ItemDragEnd, ItemDragOver, ItemDragStart
from stowage.core.models import Pointer
from stowage.core.moves import DragItem, MoveData, Target, merge_all
from stowage.core.store import ContainerStore, MoveResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FrameInput:
    """Pointer and key input for one frame."""

    pointer: Pointer | None = None
    released: bool = False
    rotate: bool = False


@dataclass(frozen=True, slots=True)
class DragState:
    """Drag payload carried from one frame to the next."""

    drag: DragItem | None = None
    target: Target | None = None


@dataclass(frozen=True, slots=True)
class MoveActionResult:
    """Outcome of one frame of interaction."""

    handled: bool
    drag_state: DragState
    data: MoveData = field(default_factory=MoveData)
    committed: MoveResult | None = None
    sent: MoveResult | None = None
    opened: int | None = None
    cancelled: bool = False
    status: str | None = None


class MoveCoordinator:
    """Drag lifecycle as pure-ish orchestration over a container store."""

    @staticmethod
    def on_frame(
        *,
        store: ContainerStore,
        drag_state: DragState,
        frame: FrameInput,
        visible: Sequence[int],
        send_target: int | None = None,
    ) -> MoveActionResult:
        """Query every visible container once, then apply at most one commit.

        Nothing is mutated until every container has been queried with the
        same drag payload.
        """
        drag = drag_state.drag
        if frame.rotate and drag is not None:
            drag = drag.rotated()
            logger.debug("drag_rotated item=%s rotation=%s", drag.id, drag.item.rotation.value)

        data = merge_all(
            (store.query(container_id, drag, frame.pointer) for container_id in visible),
            strict=store.strict,
        )
        handled = frame.rotate and drag is not None

        if drag is None and data.drag is not None:
            drag = data.drag
            handled = True
            store.bus.publish(ItemDragStart(drag.source.container_id, drag.source.slot, drag.id))
            logger.debug(
                "drag_started item=%s container=%s slot=%s",
                drag.id,
                drag.source.container_id,
                drag.source.slot,
            )

        opened = None
        if data.open is not None:
            opened = data.open
            handled = True
            store.bus.publish(ContainerOpen(opened))

        sent = None
        if data.send is not None and send_target is not None:
            handled = True
            sent = store.send(data.send, send_target)

        target = data.target if drag is not None else None
        if drag is not None and target != drag_state.target:
            store.bus.publish(
                ItemDragOver(
                    target.container_id if target is not None else None,
                    target.slot if target is not None else None,
                    drag.id,
                )
            )

        if not frame.released or drag is None:
            return MoveActionResult(
                handled=handled,
                drag_state=DragState(drag=drag, target=target),
                data=data,
                sent=sent,
                opened=opened,
            )

        store.bus.publish(
            ItemDragEnd(
                target.container_id if target is not None else None,
                target.slot if target is not None else None,
                drag.id,
            )
        )
        if target is None:
            logger.info("drag_cancelled item=%s", drag.id)
            return MoveActionResult(
                handled=True,
                drag_state=DragState(),
                data=data,
                sent=sent,
                opened=opened,
                cancelled=True,
                status="Returned item.",
            )
        committed = store.resolve_move(drag, target, data.effect)
        return MoveActionResult(
            handled=True,
            drag_state=DragState(),
            data=data,
            committed=committed,
            sent=sent,
            opened=opened,
            cancelled=committed is None,
            status="Moved item." if committed is not None else "Move rejected.",
        )
