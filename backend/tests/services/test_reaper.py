"""
Tests for orphaned tag cleanup after item deletion.
"""
from __future__ import annotations

import pytest

from notetags.services.reaper import OrphanReaper


@pytest.fixture()
def reaper(tag_store, item_store):
    return OrphanReaper(tag_store, item_store)


def _save(tagging, item_store, user_id, notes, title="Item"):
    item = item_store.create_item(user_id, title, notes)
    tagging.record_usage(user_id, notes)
    return item


def test_deleting_the_only_mention_removes_the_tag(tagging, item_store, tag_store, reaper):
    item = _save(tagging, item_store, "user-a", "Bought at #hardware store")
    assert tag_store.list_tags("user-a") == ["hardware"]

    item_store.delete_item("user-a", item.id)

    assert reaper.reconcile("user-a") == {"hardware"}
    assert tag_store.list_tags("user-a") == []


def test_tag_survives_while_another_item_mentions_it(tagging, item_store, tag_store, reaper):
    first = _save(tagging, item_store, "user-a", "Lamp #living-room #gift")
    _save(tagging, item_store, "user-a", "Sofa #Living-Room")

    item_store.delete_item("user-a", first.id)

    assert reaper.reconcile("user-a") == {"gift"}
    assert tag_store.list_tags("user-a") == ["living-room"]
    assert tag_store.get("user-a", "living-room").usage_count == 2


def test_reconcile_only_touches_the_given_user(tagging, item_store, tag_store, reaper):
    item = _save(tagging, item_store, "user-a", "#shared")
    _save(tagging, item_store, "user-b", "#shared")

    item_store.delete_item("user-a", item.id)
    reaper.reconcile("user-a")

    assert tag_store.list_tags("user-a") == []
    assert tag_store.list_tags("user-b") == ["shared"]


def test_another_users_note_does_not_keep_a_tag_alive(tagging, item_store, tag_store, reaper):
    _save(tagging, item_store, "user-a", "#solo")
    tag_store.record_usage("user-b", {"solo"})

    assert reaper.reconcile("user-b") == {"solo"}
    assert tag_store.list_tags("user-a") == ["solo"]


def test_substring_mention_keeps_the_shorter_tag(tagging, item_store, tag_store, reaper):
    item = _save(tagging, item_store, "user-a", "#adam")
    _save(tagging, item_store, "user-a", "#adam-smith")

    item_store.delete_item("user-a", item.id)

    assert reaper.reconcile("user-a") == set()
    assert tag_store.list_tags("user-a") == ["adam", "adam-smith"]


def test_reconcile_with_nothing_to_do(tag_store, reaper):
    assert reaper.reconcile("user-a") == set()


def test_reconcile_requires_user(reaper):
    with pytest.raises(ValueError):
        reaper.reconcile("")
