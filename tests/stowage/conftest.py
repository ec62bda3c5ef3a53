from __future__ import annotations

from dataclasses import dataclass

import pytest

from stowage.core.contents import ContentsTable, ExpandingContents, GridContents
from stowage.core.item import Item
from stowage.core.models import Vec2
from stowage.core.shape import Shape
from stowage.core.store import ContainerStore
from stowage.runtime.config import EngineConfig
from stowage.runtime.events import EventBus


@dataclass(slots=True)
class Inventory:
    store: ContainerStore
    events: list[object]
    grid: int
    expanding: int
    grid_contents: int
    expanding_contents: int


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(debug_occupancy=True)


@pytest.fixture
def store_factory(config: EngineConfig):
    def _make(strict: bool = False) -> tuple[ContainerStore, list[object]]:
        bus = EventBus()
        events: list[object] = []
        bus.subscribe(object, events.append)
        engine_config = EngineConfig(debug_occupancy=config.debug_occupancy, strict_contracts=strict)
        return ContainerStore(ContentsTable(), bus=bus, config=engine_config), events

    return _make


@pytest.fixture
def inventory(store_factory) -> Inventory:
    """4x4 grid (container 1) with a 1x1 item at slot 0; 2x2 expanding slot (container 2), empty."""
    store, events = store_factory()
    grid_contents = store.table.add(GridContents(Vec2(4, 4)))
    expanding_contents = store.table.add(ExpandingContents(Vec2(2, 2)))
    store.add_container(1, grid_contents, [Item(10)])
    store.add_container(2, expanding_contents)
    events.clear()
    return Inventory(store, events, 1, 2, grid_contents, expanding_contents)


@pytest.fixture
def bar() -> Item:
    return Item(30, Shape.filled(Vec2(2, 1)), name="bar")
