"""
Tests for court slot assignment and auto-assign.
"""

import random

import pytest

from shuttle_tally.constants import COURT_COUNT, DOUBLES, GUEST_PLAYER_ID, SINGLES
from shuttle_tally.courts import (
    AssignmentTable,
    NothingToAssign,
    auto_assign,
    court_slots,
    default_game_types,
    team_slots,
    unassigned_players,
)
from shuttle_tally.models import Player, SlotId


def _players(n: int) -> list[Player]:
    return [Player(id=f"p{i}", name=f"Player {i}") for i in range(1, n + 1)]


def _assert_consistent(table: AssignmentTable):
    occupants = [pid for _, pid in table.items()]
    assert len(occupants) == len(set(occupants)), "a player sits in two slots"
    for slot, pid in table.items():
        assert table.slot_of(pid) == slot


def test_slot_key_round_trip_and_validation():
    slot = SlotId(3, "B", 1)
    assert slot.key == "court-3-B-1"
    assert SlotId.parse("court-3-B-1") == slot
    with pytest.raises(ValueError):
        SlotId(COURT_COUNT, "A", 0)
    with pytest.raises(ValueError):
        SlotId(0, "C", 0)
    with pytest.raises(ValueError):
        SlotId(0, "A", 2)
    with pytest.raises(ValueError):
        SlotId.parse("court-x-A-0")


def test_slot_lists_follow_game_type():
    assert team_slots(0, "A", SINGLES) == [SlotId(0, "A", 0)]
    assert [s.key for s in court_slots(2, DOUBLES)] == [
        "court-2-A-0", "court-2-A-1", "court-2-B-0", "court-2-B-1",
    ]
    assert [s.key for s in court_slots(2, SINGLES)] == ["court-2-A-0", "court-2-B-0"]


def test_assign_moves_player_between_slots():
    table = AssignmentTable()
    a0, b1 = SlotId(0, "A", 0), SlotId(1, "B", 1)
    table.assign("p1", a0)
    table.assign("p1", b1)
    assert table.occupant(a0) is None
    assert table.occupant(b1) == "p1"
    assert table.slot_of("p1") == b1
    assert len(table) == 1


def test_assign_to_occupied_slot_displaces_previous_occupant():
    table = AssignmentTable()
    slot = SlotId(0, "A", 0)
    table.assign("p1", slot)
    displaced = table.assign("p2", slot)
    assert displaced == "p1"
    assert table.occupant(slot) == "p2"
    assert "p1" not in table
    assert table.slot_of("p1") is None


def test_reassigning_same_slot_is_not_a_displacement():
    table = AssignmentTable()
    slot = SlotId(4, "B", 0)
    table.assign("p1", slot)
    assert table.assign("p1", slot) is None
    assert table.occupant(slot) == "p1"


def test_unassign_empty_slot_is_harmless():
    table = AssignmentTable()
    assert table.unassign(SlotId(0, "A", 0)) is None
    assert len(table) == 0


def test_no_double_occupancy_over_random_sequences():
    rng = random.Random(20261019)
    slots = [s for c in range(COURT_COUNT) for s in court_slots(c, DOUBLES)]
    ids = [f"p{i}" for i in range(12)]
    table = AssignmentTable()
    for _ in range(2000):
        if rng.random() < 0.8:
            table.assign(rng.choice(ids), rng.choice(slots))
        else:
            table.unassign(rng.choice(slots))
        _assert_consistent(table)


def test_vacate_second_positions():
    table = AssignmentTable({
        SlotId(1, "A", 0): "p1",
        SlotId(1, "A", 1): "p2",
        SlotId(1, "B", 0): "p3",
        SlotId(1, "B", 1): "p4",
    })
    freed = table.vacate_second_positions(1)
    assert sorted(freed) == ["p2", "p4"]
    assert table.occupant(SlotId(1, "A", 1)) is None
    assert table.occupant(SlotId(1, "B", 1)) is None
    assert table.occupant(SlotId(1, "A", 0)) == "p1"
    _assert_consistent(table)


def test_unassigned_players_excludes_guest_and_seated():
    guest = Player(id=GUEST_PLAYER_ID, name="Guest", is_guest=True)
    players = [guest, *_players(3)]
    table = AssignmentTable({SlotId(0, "A", 0): "p2"})
    assert [p.id for p in unassigned_players(players, table)] == ["p1", "p3"]


def test_auto_assign_fills_in_court_then_slot_order():
    table = AssignmentTable()
    placed = auto_assign(table, _players(6), default_game_types())
    assert [(s.key, pid) for s, pid in placed] == [
        ("court-0-A-0", "p1"),
        ("court-0-A-1", "p2"),
        ("court-0-B-0", "p3"),
        ("court-0-B-1", "p4"),
        ("court-1-A-0", "p5"),
        ("court-1-A-1", "p6"),
    ]


def test_auto_assign_respects_singles_courts():
    table = AssignmentTable()
    types = default_game_types()
    types[0] = SINGLES
    placed = auto_assign(table, _players(3), types)
    assert [s.key for s, _ in placed] == ["court-0-A-0", "court-0-B-0", "court-1-A-0"]
    assert table.occupant(SlotId(0, "A", 1)) is None


def test_auto_assign_never_overwrites_occupied_slots():
    before = {
        SlotId(0, "A", 1): "x1",
        SlotId(0, "B", 0): "x2",
        SlotId(2, "A", 0): "x3",
    }
    table = AssignmentTable(before)
    auto_assign(table, _players(9), default_game_types())
    for slot, pid in before.items():
        assert table.occupant(slot) == pid
    _assert_consistent(table)


def test_auto_assign_stops_when_pool_runs_out():
    table = AssignmentTable()
    placed = auto_assign(table, _players(2), default_game_types())
    assert len(placed) == 2
    assert len(table) == 2


def test_auto_assign_with_empty_pool_signals_nothing_to_assign():
    table = AssignmentTable({SlotId(0, "A", 0): "p1"})
    with pytest.raises(NothingToAssign):
        auto_assign(table, [], default_game_types())
    assert table.occupant(SlotId(0, "A", 0)) == "p1"
    assert len(table) == 1


def test_copy_is_independent():
    table = AssignmentTable({SlotId(0, "A", 0): "p1"})
    clone = table.copy()
    clone.assign("p2", SlotId(0, "A", 0))
    assert table.occupant(SlotId(0, "A", 0)) == "p1"
    assert "p1" in table and "p1" not in clone
