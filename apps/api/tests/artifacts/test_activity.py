"""Tests for the activity log."""

import asyncio

from app.artifacts.activity import ActivityLog


class TestActivityLog:
    def test_ids_increase_from_one(self):
        log = ActivityLog()
        first = log.append("one")
        second = log.append("two")

        assert (first.id, second.id) == (1, 2)
        assert first.timestamp <= second.timestamp

    def test_entries_newest_first(self):
        log = ActivityLog()
        for text in ("a", "b", "c"):
            log.append(text)

        assert [e.text for e in log.entries()] == ["c", "b", "a"]

    def test_ordering_is_numeric_past_ten_entries(self):
        log = ActivityLog()
        for i in range(12):
            log.append(f"entry {i + 1}")

        assert [e.id for e in log.entries()][:4] == [12, 11, 10, 9]

    def test_since_returns_oldest_first(self):
        log = ActivityLog()
        for text in ("a", "b", "c"):
            log.append(text)

        assert [e.text for e in log.since(1)] == ["b", "c"]
        assert log.since(3) == []

    def test_clear_keeps_counter_running(self):
        log = ActivityLog()
        log.append("a")
        log.append("b")
        log.clear()

        assert len(log) == 0
        assert log.append("c").id == 3

    async def test_wait_returns_pending_entries_immediately(self):
        log = ActivityLog()
        log.append("a")

        entries = await log.wait_for_entries(0, timeout=0.01)

        assert [e.text for e in entries] == ["a"]

    async def test_wait_times_out_with_empty_list(self):
        log = ActivityLog()
        assert await log.wait_for_entries(0, timeout=0.01) == []

    async def test_wait_wakes_on_append(self):
        log = ActivityLog()

        async def _append_later():
            await asyncio.sleep(0.01)
            log.append("late")

        waiter = asyncio.create_task(log.wait_for_entries(0, timeout=1.0))
        await _append_later()
        entries = await waiter

        assert [e.text for e in entries] == ["late"]
