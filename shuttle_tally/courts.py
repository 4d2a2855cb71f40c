"""
Court slot assignment.

A venue has COURT_COUNT courts; each court has teams A and B and each team
holds one slot (singles) or two (doubles). The table keeps the forward map
(slot -> player) and the inverse map (player -> slot) in step so that a
player is never booked into two slots at once.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .constants import COURT_COUNT, DOUBLES, GAME_TYPES, SINGLES, TEAMS
from .logging_config import get_logger
from .models import Player, SlotId

log = get_logger(__name__)


class NothingToAssign(LookupError):
    """Raised when auto-assign is asked to place players but none are free."""


def default_game_types() -> dict[int, str]:
    return {i: DOUBLES for i in range(COURT_COUNT)}


def check_court(court_index: int) -> int:
    if not isinstance(court_index, int) or not 0 <= court_index < COURT_COUNT:
        raise ValueError(f"Court index must be 0..{COURT_COUNT - 1}, got {court_index!r}")
    return court_index


def team_slots(court_index: int, team: str, game_type: str) -> list[SlotId]:
    """Slots of one team on a court, position 0 first."""
    check_court(court_index)
    if team not in TEAMS:
        raise ValueError(f"Team must be 'A' or 'B', got {team!r}")
    positions = (0,) if game_type == SINGLES else (0, 1)
    return [SlotId(court_index, team, p) for p in positions]


def court_slots(court_index: int, game_type: str) -> list[SlotId]:
    """All slots on a court in fill order: team A before B, position 0 before 1."""
    return [s for team in TEAMS for s in team_slots(court_index, team, game_type)]


class AssignmentTable:
    """Slot occupancy with a maintained player -> slot index."""

    def __init__(self, slots: Optional[dict[SlotId, str]] = None):
        self._slots: dict[SlotId, str] = {}
        self._where: dict[str, SlotId] = {}
        for slot, player_id in (slots or {}).items():
            self.assign(player_id, slot)

    def copy(self) -> "AssignmentTable":
        other = AssignmentTable()
        other._slots = dict(self._slots)
        other._where = dict(self._where)
        return other

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._where

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssignmentTable):
            return NotImplemented
        return self._slots == other._slots

    def __repr__(self) -> str:
        inner = ", ".join(f"{s.key}={pid}" for s, pid in sorted(self._slots.items()))
        return f"AssignmentTable({inner})"

    def occupant(self, slot: SlotId) -> Optional[str]:
        return self._slots.get(slot)

    def slot_of(self, player_id: str) -> Optional[SlotId]:
        return self._where.get(player_id)

    def items(self) -> list[tuple[SlotId, str]]:
        return sorted(self._slots.items())

    def assigned_ids(self) -> set[str]:
        return set(self._where)

    def assign(self, player_id: str, slot: SlotId) -> Optional[str]:
        """Put `player_id` into `slot`, moving them if they sit elsewhere.

        An occupied target slot is overwritten; the previous occupant becomes
        unassigned and their id is returned so callers can report it.
        """
        previous_slot = self._where.pop(player_id, None)
        if previous_slot is not None:
            del self._slots[previous_slot]

        displaced = self._slots.get(slot)
        if displaced is not None and displaced != player_id:
            del self._where[displaced]
            log.debug("Slot %s overwritten: %s displaced by %s", slot.key, displaced, player_id)
        else:
            displaced = None

        self._slots[slot] = player_id
        self._where[player_id] = slot
        return displaced

    def unassign(self, slot: SlotId) -> Optional[str]:
        """Empty a slot. Returns who was there, if anyone."""
        player_id = self._slots.pop(slot, None)
        if player_id is not None:
            del self._where[player_id]
        return player_id

    def remove_player(self, player_id: str) -> Optional[SlotId]:
        slot = self._where.pop(player_id, None)
        if slot is not None:
            del self._slots[slot]
        return slot

    def clear_court(self, court_index: int) -> list[str]:
        """Empty every slot on a court (both positions, both teams)."""
        freed = []
        for slot in court_slots(court_index, DOUBLES):
            pid = self.unassign(slot)
            if pid is not None:
                freed.append(pid)
        return freed

    def vacate_second_positions(self, court_index: int) -> list[str]:
        """Empty position 1 of both teams; used when a court turns to singles."""
        freed = []
        for team in TEAMS:
            pid = self.unassign(SlotId(court_index, team, 1))
            if pid is not None:
                freed.append(pid)
        return freed


def check_game_type(game_type: str) -> str:
    if game_type not in GAME_TYPES:
        raise ValueError(f"Game type must be one of {GAME_TYPES}, got {game_type!r}")
    return game_type


def unassigned_players(players: Iterable[Player], table: AssignmentTable) -> list[Player]:
    """Non-guest players not sitting in any slot, in roster order."""
    return [p for p in players if not p.is_guest and p.id not in table]


def auto_assign(
    table: AssignmentTable,
    pool: Iterable[Player],
    game_types: dict[int, str],
) -> list[tuple[SlotId, str]]:
    """Greedy first-fit of the free pool into empty slots, court by court.

    Occupied slots are never touched. Mutates `table` and returns the
    placements made. Raises NothingToAssign when the pool is empty.
    """
    available = [p.id for p in pool]
    if not available:
        raise NothingToAssign("No players available to assign")

    placed: list[tuple[SlotId, str]] = []
    for court in range(COURT_COUNT):
        if not available:
            break
        for slot in court_slots(court, game_types.get(court, DOUBLES)):
            if not available:
                break
            if table.occupant(slot) is None:
                player_id = available.pop(0)
                table.assign(player_id, slot)
                placed.append((slot, player_id))

    log.debug("Auto-assign placed %s player(s), %s left over", len(placed), len(available))
    return placed
