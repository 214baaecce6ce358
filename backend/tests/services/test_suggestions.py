"""
Tests for autocomplete suggestions and the tag statistics view.
"""
from __future__ import annotations

import itertools
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from notetags import database
from notetags.services.suggestions import SuggestionIndex
from notetags.services.tag_store import TagQueryError


@pytest.fixture()
def index(tag_store):
    return SuggestionIndex(tag_store)


def _record_in_order(tag_store, clock, user_id, tags):
    """Record tags one minute apart, oldest first."""
    for tag in tags:
        clock.advance(minutes=1)
        tag_store.record_usage(user_id, {tag})


# ============================================================================
# suggest
# ============================================================================


def test_suggest_orders_by_most_recent_use(tag_store, clock, index):
    _record_in_order(tag_store, clock, "user-a", ["alpha", "beta", "gamma"])
    clock.advance(minutes=1)
    tag_store.record_usage("user-a", {"alpha"})

    tags = [s.tag for s in index.suggest("user-a")]

    assert tags == ["alpha", "gamma", "beta"]


def test_suggest_breaks_ties_by_tag(tag_store, index):
    tag_store.record_usage("user-a", ["zeta", "eta", "theta"])

    assert [s.tag for s in index.suggest("user-a")] == ["eta", "theta", "zeta"]


def test_suggest_filters_by_normalized_prefix(tag_store, clock, index):
    _record_in_order(tag_store, clock, "user-a", ["project-alpha", "project-beta", "personal", "work"])

    for prefix in ("pro", "#PRO", " Pro"):
        results = index.suggest("user-a", prefix)
        assert [s.tag for s in results] == ["project-beta", "project-alpha"]
        assert all(s.tag.startswith("pro") for s in results)


def test_suggest_prefix_wildcards_are_literal(tag_store, index):
    tag_store.record_usage("user-a", ["a_b", "axb", "a-b"])

    assert [s.tag for s in index.suggest("user-a", "a_")] == ["a_b"]
    assert index.suggest("user-a", "%") == []


def test_suggest_empty_prefix_returns_whole_vocabulary(tag_store, index):
    tag_store.record_usage("user-a", ["one", "two"])

    assert {s.tag for s in index.suggest("user-a", "")} == {"one", "two"}
    assert {s.tag for s in index.suggest("user-a", "#")} == {"one", "two"}
    assert {s.tag for s in index.suggest("user-a", None)} == {"one", "two"}


def test_suggest_limit_defaults_to_ten_and_is_clamped(tag_store, index):
    tag_store.record_usage("user-a", [f"tag{i:02d}" for i in range(30)])

    assert len(index.suggest("user-a")) == 10
    assert len(index.suggest("user-a", limit=3)) == 3
    assert len(index.suggest("user-a", limit=0)) == 1
    assert len(index.suggest("user-a", limit=1000)) == 30


def test_suggest_returns_counts_and_recency(tag_store, clock, index):
    tag_store.record_usage("user-a", {"receipt"})
    clock.advance(days=1)
    tag_store.record_usage("user-a", {"receipt"})

    (suggestion,) = index.suggest("user-a", "rec")

    assert suggestion.usage_count == 2
    assert suggestion.last_used == clock.now


@pytest.mark.parametrize("users", [("user-a", "user-b"), ("7", "8"), ("u", "U")])
def test_suggest_and_list_are_tenant_isolated(tag_store, index, users):
    owner, other = users
    tag_store.record_usage(owner, {"private"})
    tag_store.record_usage(other, {"visible"})

    assert [s.tag for s in index.suggest(owner)] == ["private"]
    assert [s.tag for s in index.suggest(other)] == ["visible"]
    assert [t.tag for t in index.list_all(owner)] == ["private"]
    assert index.suggest(other, "priv") == []


def test_suggest_requires_user(index):
    with pytest.raises(ValueError):
        index.suggest("")


# ============================================================================
# list_all
# ============================================================================


def test_list_all_sorts(tag_store, clock, index):
    _record_in_order(tag_store, clock, "user-a", ["mango", "apple", "kiwi"])
    for _ in range(3):
        tag_store.record_usage("user-a", {"kiwi"})
    tag_store.record_usage("user-a", {"apple"})
    clock.advance(minutes=1)
    tag_store.record_usage("user-a", {"mango"})

    by_usage = [t.tag for t in index.list_all("user-a", "usage")]
    by_name = [t.tag for t in index.list_all("user-a", "alphabetical")]
    by_recent = index.list_all("user-a", "recent")

    assert by_usage == ["kiwi", "apple", "mango"]
    assert by_name == ["apple", "kiwi", "mango"]
    assert by_recent[0].tag == "mango"
    assert [t.last_used for t in by_recent] == sorted((t.last_used for t in by_recent), reverse=True)


def test_list_all_unknown_sort_falls_back_to_usage(tag_store, index):
    tag_store.record_usage("user-a", ["b"])
    tag_store.record_usage("user-a", ["a", "b"])

    assert [t.tag for t in index.list_all("user-a", "bogus")] == ["b", "a"]


def test_list_all_flags_inactive_tags(tag_store, clock, index):
    tag_store.record_usage("user-a", {"old"})
    clock.advance(days=31)
    tag_store.record_usage("user-a", {"fresh"})

    stats = {t.tag: t for t in index.list_all("user-a")}

    assert stats["old"].is_inactive is True
    assert stats["fresh"].is_inactive is False
    assert stats["old"].first_used == stats["old"].last_used


def test_inactive_flag_is_recomputed_on_read(tag_store, clock, index):
    tag_store.record_usage("user-a", {"tag"})
    assert index.list_all("user-a")[0].is_inactive is False

    clock.advance(days=30, seconds=1)
    assert index.list_all("user-a")[0].is_inactive is True


def test_inactive_window_is_configurable(tag_store, clock):
    index = SuggestionIndex(tag_store, inactive_after=timedelta(days=1))
    tag_store.record_usage("user-a", {"tag"})
    clock.advance(days=2)

    assert index.list_all("user-a")[0].is_inactive is True


# ============================================================================
# failures
# ============================================================================


def test_read_failures_raise_retryable_error(tag_store, index, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(tag_store, "session_factory", boom)

    with pytest.raises(TagQueryError) as excinfo:
        index.suggest("user-a", "a")
    assert excinfo.value.retryable is True

    with pytest.raises(TagQueryError):
        index.list_all("user-a")


def test_expired_deadline_aborts_the_query(tag_store, index, monkeypatch):
    tag_store.record_usage("user-a", [f"tag{i:03d}" for i in range(200)])

    # First reading sets the deadline, every later reading is past it.
    readings = itertools.chain([0.0], itertools.repeat(1e9))
    monkeypatch.setattr(database, "deadline_clock", lambda: next(readings))

    with pytest.raises(TagQueryError):
        index.list_all("user-a", "alphabetical", timeout=1.0)

    monkeypatch.undo()
    assert len(index.list_all("user-a", "alphabetical", timeout=1.0)) == 200
