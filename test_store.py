"""
Tests for the SQLite-backed key-value store.

The store is async (aiosqlite); each test drives it with asyncio.run.
"""

import asyncio

from shuttle_tally import session as ss
from shuttle_tally import store
from shuttle_tally.constants import HISTORY_KEY, ROSTER_KEY


def test_roster_round_trip(tmp_path):
    async def run():
        await store.init_db(str(tmp_path / "kv.sqlite"))
        assert await store.load_roster() is None
        state = ss.add_player(ss.new_session([]), "An", "0901")
        assert await store.save_roster(ss.roster_stubs(state))
        return await store.load_roster()

    roster = asyncio.run(run())
    assert len(roster) == 1
    assert roster[0]["name"] == "An"
    assert roster[0]["phone"] == "0901"
    # the guest never goes to storage
    assert all(r["id"] != "guest-player-id" for r in roster)


def test_history_round_trip_and_clear(tmp_path):
    async def run():
        await store.init_db(str(tmp_path / "kv.sqlite"))
        state = ss.new_session([{"id": "p1", "name": "An"}, {"id": "p2", "name": "Bình"}])
        state, _ = ss.auto_assign(state)
        state, _ = ss.end_match(state, 0, "A", fee_per_match=28000)
        _, record = ss.save_session(state)
        assert await store.save_history([record])
        loaded = await store.load_history()
        assert await store.clear_history()
        return record, loaded, await store.load_history()

    record, loaded, after_clear = asyncio.run(run())
    assert [s.id for s in loaded] == [record.id]
    assert loaded[0].summary.grand_total == record.summary.grand_total
    assert after_clear == []


def test_court_colors_round_trip_ignores_bad_keys(tmp_path):
    async def run():
        await store.init_db(str(tmp_path / "kv.sqlite"))
        assert await store.save_court_colors({0: "sky", 6: "rose"})
        await store.set_json("badmintonCourtColors", {"0": "sky", "6": "rose", "x": "red", "9": "lime"})
        return await store.load_court_colors()

    assert asyncio.run(run()) == {0: "sky", 6: "rose"}


def test_malformed_records_fall_back_to_defaults(tmp_path):
    async def run():
        await store.init_db(str(tmp_path / "kv.sqlite"))
        await store._write_raw(HISTORY_KEY, "{not json")
        await store.set_json(ROSTER_KEY, {"oops": True})
        return await store.load_history(), await store.load_roster()

    history, roster = asyncio.run(run())
    assert history == []
    assert roster is None


def test_missing_table_is_created_on_first_use(tmp_path):
    async def run():
        store.DB_PATH = str(tmp_path / "fresh.sqlite")
        assert await store.set_json("k", [1, 2])
        return await store.get_json("k")

    assert asyncio.run(run()) == [1, 2]


def test_plain_memory_path_keeps_one_shared_database():
    async def run():
        await store.init_db(":memory:")
        try:
            assert store.is_ephemeral()
            assert store.DB_PATH.startswith("file:")
            assert await store.save_court_colors({2: "lime"})
            return await store.load_court_colors()
        finally:
            await store.close_db()

    assert asyncio.run(run()) == {2: "lime"}


def test_write_failure_is_reported_not_raised(tmp_path):
    async def run():
        await store.init_db(str(tmp_path / "kv.sqlite"))
        # A directory cannot be opened as a database file
        store.DB_PATH = str(tmp_path)
        return await store.save_roster([{"id": "p1", "name": "An"}]), await store.load_roster()

    saved, loaded = asyncio.run(run())
    assert saved is False
    assert loaded is None
