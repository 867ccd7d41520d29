# tests/test_state.py
from __future__ import annotations

import pytest

from edumanager.exceptions import StoreError, ValidationError
from edumanager.repositories.state import RecordCache, RepositoryStatus
from edumanager.result import Result


def test_cache_moves_through_load_states():
    cache: RecordCache[int] = RecordCache()
    assert cache.status is RepositoryStatus.IDLE
    assert cache.items == []

    cache.begin_load()
    assert cache.loading

    cache.replace([1, 2, 3])
    assert cache.status is RepositoryStatus.READY
    assert not cache.loading
    assert cache.items == [1, 2, 3]


def test_failed_load_keeps_previous_items():
    cache: RecordCache[int] = RecordCache()
    cache.replace([1, 2])
    error = StoreError("offline")

    cache.begin_load()
    cache.fail(error)
    assert cache.status is RepositoryStatus.ERROR
    assert cache.last_error is error
    assert cache.items == [1, 2]

    cache.replace([3])
    assert cache.last_error is None


def test_items_is_a_copy():
    cache: RecordCache[int] = RecordCache()
    cache.replace([1])
    cache.items.append(2)
    assert len(cache) == 1


def test_prepend_patch_upsert_remove():
    cache: RecordCache[str] = RecordCache()
    cache.replace(["b", "c"])

    cache.prepend("a")
    assert cache.items == ["a", "b", "c"]

    assert cache.patch(lambda x: x == "b", "B")
    assert not cache.patch(lambda x: x == "zz", "Z")
    assert cache.items == ["a", "B", "c"]

    cache.upsert(lambda x: x == "c", "C")
    cache.upsert(lambda x: x == "d", "d")
    assert cache.items == ["d", "a", "B", "C"]

    assert cache.remove(lambda x: x in ("a", "d")) == 2
    assert cache.remove(lambda x: x == "missing") == 0
    assert cache.find(lambda x: x == "C") == "C"
    assert cache.find(lambda x: x == "a") is None


def test_result_holds_exactly_one_side():
    ok = Result.success([1])
    assert ok.ok and ok.unwrap() == [1]

    error = ValidationError("bad")
    failed = Result.failure(error)
    assert not failed.ok
    with pytest.raises(ValidationError):
        failed.unwrap()

    with pytest.raises(ValueError):
        Result()
    with pytest.raises(ValueError):
        Result(data=1, error=error)
