"""Item lifecycle events published on the engine event bus."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ItemInsert:
    """Item inserted into a container at ``slot``."""

    container_id: int
    slot: int
    item_id: int


@dataclass(frozen=True, slots=True)
class ItemRemove:
    """Item removed from a container at ``slot``."""

    container_id: int
    slot: int
    item_id: int


@dataclass(frozen=True, slots=True)
class ItemMove:
    """Item moved within one container."""

    container_id: int
    old_slot: int
    new_slot: int
    item_id: int


@dataclass(frozen=True, slots=True)
class ItemDragStart:
    container_id: int
    slot: int
    item_id: int


@dataclass(frozen=True, slots=True)
class ItemDragOver:
    """Drag target changed. Both fields are None when the drag left every target."""

    container_id: int | None
    slot: int | None
    item_id: int


@dataclass(frozen=True, slots=True)
class ItemDragEnd:
    """Drag released. Fields are None when released outside any accepting slot."""

    container_id: int | None
    slot: int | None
    item_id: int


@dataclass(frozen=True, slots=True)
class ContainerOpen:
    container_id: int
