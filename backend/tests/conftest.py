from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from notetags.services.items import ItemStore
from notetags.services.tag_store import TagStore
from notetags.services.tagging import TaggingService


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def tag_store(tmp_path: Path, clock):
    store = TagStore(db_path=tmp_path / "tags_test.db", clock=clock)
    yield store
    store.close()


@pytest.fixture()
def item_store(tag_store, clock):
    return ItemStore(engine=tag_store.engine, session_factory=tag_store.session_factory, clock=clock)


@pytest.fixture()
def tagging(tag_store, item_store):
    return TaggingService(tag_store, item_store)
