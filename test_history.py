"""
Tests for history parsing, grouping and daily stats.
"""

from datetime import date, datetime

from shuttle_tally.history import (
    daily_stats,
    group_by_date,
    parse_date,
    revenue_by_day,
    sessions_from_json,
)
from shuttle_tally.models import Player, PlayerDetails, Session, SessionSummary


def _session(sid: str, when: str, total: float, names=("An",)) -> Session:
    return Session(
        id=sid,
        date=when,
        players=[PlayerDetails(id=f"{sid}-{n}", name=n) for n in names],
        summary=SessionSummary(grand_total=total),
    )


def _local_iso(y, m, d, hh=10) -> str:
    return datetime(y, m, d, hh, 0).isoformat()


def test_parse_date_handles_z_suffix_and_garbage():
    assert parse_date("2026-10-19T03:00:00.000Z") is not None
    assert parse_date("not a date") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_group_by_date_newest_first_and_skips_bad_dates():
    sessions = [
        _session("s1", _local_iso(2026, 10, 18), 100000),
        _session("s2", _local_iso(2026, 10, 19, 9), 50000),
        _session("s3", "garbage", 999999),
        _session("s4", _local_iso(2026, 10, 19, 20), 70000),
    ]
    groups = group_by_date(sessions)
    assert [g.day for g in groups] == [date(2026, 10, 19), date(2026, 10, 18)]
    assert [s.id for s in groups[0].sessions] == ["s2", "s4"]
    assert groups[0].total_revenue == 120000
    assert revenue_by_day(sessions)[1] == (date(2026, 10, 18), 100000, 1)


def test_sessions_from_json_skips_malformed_entries():
    good = _session("s1", _local_iso(2026, 10, 19), 10).to_dict()
    data = [good, {"id": "x", "players": "nope", "summary": {}}, 42, {"id": "y", "players": []}]
    loaded = sessions_from_json(data)
    assert [s.id for s in loaded] == ["s1"]
    assert sessions_from_json({"not": "a list"}) == []
    assert sessions_from_json(None) == []


def test_session_json_round_trip_keeps_camel_case_keys():
    s = _session("s1", _local_iso(2026, 10, 19), 42000, names=("An", "Bình"))
    d = s.to_dict()
    assert set(d["summary"]) == {"totalCourtFee", "totalDrinksCost", "totalShuttlecockCost", "grandTotal"}
    assert "consumedDrinks" in d["players"][0] and "totalCost" in d["players"][0]
    assert Session.from_dict(d) == s


def test_daily_stats_counts_today_only():
    today = date(2026, 10, 19)
    sessions = [
        _session("s1", _local_iso(2026, 10, 19), 100000, names=("An", "Bình")),
        _session("s2", _local_iso(2026, 10, 18), 500000, names=("Chi",)),
    ]
    current = [Player(id="p1", name="Bình"), Player(id="p2", name="Dũng")]
    stats = daily_stats(sessions, 30000, current, today=today)
    assert stats.saved_revenue == 100000
    assert stats.total_revenue == 130000
    assert stats.unique_players == 3
