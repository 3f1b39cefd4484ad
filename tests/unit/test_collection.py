from __future__ import annotations

import asyncio
from typing import Dict, Optional

import pytest

from sheetdesk.infrastructure.gateway import FailureKind, Result
from sheetdesk.views.abstract import Page
from sheetdesk.views.collection import PendingSet, RemoteCollection


class _ScriptedLoader:
    """Loader whose responses are released by the test, per scope."""

    def __init__(self) -> None:
        self.releases: Dict[Optional[str], asyncio.Future] = {}
        self.calls: list[Optional[str]] = []

    async def __call__(self, scope: Optional[str]) -> Result[Page[str]]:
        self.calls.append(scope)
        future = asyncio.get_running_loop().create_future()
        self.releases[scope] = future
        return await future

    def answer(self, scope: Optional[str], result: Result[Page[str]]) -> None:
        self.releases[scope].set_result(result)


def _page(*ids: str, ref: Optional[str] = None) -> Result[Page[str]]:
    return Result.ok(Page(records=list(ids), scope_ref=ref))


def _collection(loader, scope: Optional[str] = "2024-03") -> RemoteCollection[str]:
    return RemoteCollection(loader, id_of=lambda r: r, scope_key=scope, name="test")


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_pending_set_membership() -> None:
    pending = PendingSet()
    pending.add("B")
    pending.add("A")
    pending.discard("missing")

    assert "A" in pending and "B" in pending
    assert list(pending) == ["A", "B"]
    pending.discard("A")
    assert len(pending) == 1


@pytest.mark.asyncio
async def test_first_load_uses_loading_flag() -> None:
    loader = _ScriptedLoader()
    collection = _collection(loader)

    task = asyncio.ensure_future(collection.load())
    await _settle()
    assert collection.loading and not collection.refreshing

    loader.answer("2024-03", _page("a", "b", ref="file-1"))
    result = await task

    assert result.success and result.data == ["a", "b"]
    assert collection.records == ["a", "b"]
    assert collection.scope_ref == "file-1"
    assert collection.loaded
    assert not collection.loading


@pytest.mark.asyncio
async def test_reload_with_records_is_background() -> None:
    loader = _ScriptedLoader()
    collection = _collection(loader)
    collection.records = ["old"]

    task = asyncio.ensure_future(collection.load())
    await _settle()
    assert collection.refreshing and not collection.loading
    assert collection.records == ["old"]

    loader.answer("2024-03", _page("new"))
    await task
    assert not collection.refreshing
    assert collection.records == ["new"]


@pytest.mark.asyncio
async def test_failed_load_keeps_previous_records() -> None:
    loader = _ScriptedLoader()
    collection = _collection(loader)
    collection.records = ["kept"]
    collection.scope_ref = "file-1"

    task = asyncio.ensure_future(collection.load())
    await _settle()
    loader.answer("2024-03", Result.fail("boom", FailureKind.TRANSPORT))
    result = await task

    assert not result.success and result.error == "boom"
    assert collection.records == ["kept"]
    assert collection.scope_ref == "file-1"
    assert collection.last_error == "boom"
    assert not collection.refreshing


@pytest.mark.asyncio
async def test_superseded_load_is_discarded() -> None:
    loader = _ScriptedLoader()
    collection = _collection(loader)

    march = asyncio.ensure_future(collection.load("2024-03"))
    await _settle()
    april = asyncio.ensure_future(collection.load("2024-04"))
    await _settle()

    loader.answer("2024-04", _page("april", ref="file-04"))
    await april
    loader.answer("2024-03", _page("march", ref="file-03"))
    await march

    assert collection.scope_key == "2024-04"
    assert collection.records == ["april"]
    assert collection.scope_ref == "file-04"


@pytest.mark.asyncio
async def test_flags_follow_latest_load() -> None:
    loader = _ScriptedLoader()
    collection = _collection(loader)

    first = asyncio.ensure_future(collection.load("2024-03"))
    await _settle()
    second = asyncio.ensure_future(collection.load("2024-04"))
    await _settle()

    loader.answer("2024-03", _page("march"))
    await first
    assert collection.loading

    loader.answer("2024-04", _page("april"))
    await second
    assert not collection.loading


def test_local_patches() -> None:
    collection = _collection(None)
    collection.records = ["a", "b"]

    collection.upsert_local("c")
    assert collection.records == ["c", "a", "b"]
    collection.upsert_local("a")
    assert collection.records == ["c", "a", "b"]

    assert collection.remove_local("a")
    assert not collection.remove_local("zzz")
    assert collection.records == ["c", "b"]


def test_contains_id_is_case_insensitive_by_default() -> None:
    collection = _collection(None)
    collection.records = ["ORD-1"]

    assert collection.contains_id("ord-1")
    assert collection.contains_id(" ORD-1 ")
    assert not collection.contains_id("ord-1", case_insensitive=False)
    assert collection.get("ORD-1") == "ORD-1"
    assert collection.get("nope") is None
