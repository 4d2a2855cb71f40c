"""
Session state and its transitions.

`SessionState` is a single immutable snapshot of the running session. Each
transition takes the current state plus its arguments and returns a new
state; nothing is mutated in place, so the front end only has to swap its
reference after every action (and persist whatever record changed).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, Optional

from . import billing, courts, settlement
from .constants import (
    COURT_FEE,
    DEFAULT_PLAYER_NAMES,
    DOUBLES,
    DRINKS,
    GUEST_PLAYER_ID,
    GUEST_PLAYER_NAME,
    SHUTTLECOCK_FEE_PER_MATCH,
    SINGLES,
)
from .courts import AssignmentTable, NothingToAssign
from .logging_config import get_logger
from .models import Adjustment, Player, Session, Settlement, SlotId, to_number
from .settlement import Ledger

log = get_logger(__name__)

__all__ = [
    "SessionState",
    "NothingToAssign",
    "new_session",
    "roster_stubs",
    "find_player",
    "add_player",
    "remove_player",
    "update_player_info",
    "import_players",
    "update_drink",
    "update_quantity",
    "set_adjustment",
    "toggle_paid",
    "mark_all_paid",
    "assign",
    "unassign",
    "unassigned",
    "auto_assign",
    "set_game_type",
    "set_court_color",
    "end_match",
    "totals",
    "details",
    "reset_session",
    "save_session",
]


@dataclass(frozen=True)
class SessionState:
    players: tuple[Player, ...] = ()
    assignments: AssignmentTable = field(default_factory=AssignmentTable)
    game_types: dict[int, str] = field(default_factory=courts.default_game_types)
    ledger: Ledger = field(default_factory=Ledger)
    court_colors: dict[int, str] = field(default_factory=dict)

    @property
    def matches_played(self) -> int:
        return self.ledger.matches_played

    def names(self) -> dict[str, str]:
        return {p.id: p.name for p in self.players}


# --- Players ---

def guest_player() -> Player:
    return Player(id=GUEST_PLAYER_ID, name=GUEST_PLAYER_NAME, is_guest=True, quantity=1)


def _new_player(name: str, phone: str = "") -> Player:
    return Player(id=str(uuid.uuid4()), name=name, phone=phone or "")


def players_from_roster(stubs: Optional[Iterable[dict]]) -> list[Player]:
    """Guest first, then the stored roster; two placeholder players if none is stored."""
    if stubs is None:
        regular = [_new_player(n) for n in DEFAULT_PLAYER_NAMES]
    else:
        regular = []
        for s in stubs:
            if not isinstance(s, dict) or not s.get("id") or s.get("id") == GUEST_PLAYER_ID:
                continue
            regular.append(Player(id=str(s["id"]), name=str(s.get("name") or ""), phone=str(s.get("phone") or "")))
    return [guest_player(), *regular]


def new_session(roster: Optional[Iterable[dict]] = None, court_colors: Optional[dict[int, str]] = None) -> SessionState:
    return SessionState(
        players=tuple(players_from_roster(roster)),
        court_colors=dict(court_colors or {}),
    )


def roster_stubs(state: SessionState) -> list[dict]:
    """The persisted roster: id, name and phone of every non-guest player."""
    return [{"id": p.id, "name": p.name, "phone": p.phone} for p in state.players if not p.is_guest]


def find_player(state: SessionState, player_id: str) -> Player:
    for p in state.players:
        if p.id == player_id:
            return p
    raise KeyError(f"Unknown player: {player_id}")


def _update(state: SessionState, player_id: str, **changes) -> SessionState:
    find_player(state, player_id)
    players = tuple(replace(p, **changes) if p.id == player_id else p for p in state.players)
    return replace(state, players=players)


def add_player(state: SessionState, name: str, phone: str = "") -> SessionState:
    name = (name or "").strip()
    if not name:
        return state
    player = _new_player(name, (phone or "").strip())
    log.debug("Added player %s (%s)", player.name, player.id)
    return replace(state, players=state.players + (player,))


def remove_player(state: SessionState, player_id: str) -> SessionState:
    player = find_player(state, player_id)
    if player.is_guest:
        raise ValueError("The guest player cannot be removed")
    table = state.assignments.copy()
    table.remove_player(player_id)
    log.debug("Removed player %s (%s)", player.name, player_id)
    return replace(
        state,
        players=tuple(p for p in state.players if p.id != player_id),
        assignments=table,
        ledger=state.ledger.without(player_id),
    )


def update_player_info(state: SessionState, player_id: str, name: str, phone: str = "") -> SessionState:
    name = (name or "").strip()
    if not name:
        raise ValueError("Player name cannot be empty")
    return _update(state, player_id, name=name, phone=(phone or "").strip())


def import_players(state: SessionState, entries: Iterable[dict]) -> SessionState:
    """Replace the roster wholesale; the guest stays, session tallies are cleared."""
    imported = []
    for e in entries:
        name = str((e or {}).get("name") or "").strip()
        if name:
            imported.append(_new_player(name, str(e.get("phone") or "").strip()))
    guests = [p for p in state.players if p.is_guest]
    log.info("Imported %s player(s); assignments and tallies cleared", len(imported))
    return replace(
        state,
        players=tuple(guests + imported),
        assignments=AssignmentTable(),
        ledger=Ledger(matches_played=state.ledger.matches_played),
    )


# --- Billing inputs ---

def update_drink(state: SessionState, player_id: str, drink_id: str, delta: int) -> SessionState:
    if drink_id not in DRINKS:
        raise ValueError(f"Unknown drink: {drink_id}")
    player = find_player(state, player_id)
    drinks = dict(player.consumed_drinks)
    qty = max(0, int(to_number(drinks.get(drink_id))) + int(to_number(delta)))
    if qty == 0:
        drinks.pop(drink_id, None)
    else:
        drinks[drink_id] = qty
    return _update(state, player_id, consumed_drinks=drinks)


def update_quantity(state: SessionState, player_id: str, delta: int) -> SessionState:
    """Walk-in headcount; only the guest carries a quantity."""
    player = find_player(state, player_id)
    if not player.is_guest:
        return state
    qty = max(1, billing.quantity_of(player) + int(to_number(delta)))
    return _update(state, player_id, quantity=qty)


def set_adjustment(state: SessionState, player_id: str, amount, reason: str = "") -> SessionState:
    adj = Adjustment(amount=to_number(amount), reason=(reason or "").strip())
    log.debug("Adjustment for %s: %s (%s)", player_id, adj.amount, adj.reason)
    return _update(state, player_id, adjustment=adj)


def toggle_paid(state: SessionState, player_id: str) -> SessionState:
    return _update(state, player_id, is_paid=not find_player(state, player_id).is_paid)


def mark_all_paid(state: SessionState) -> SessionState:
    return replace(state, players=tuple(replace(p, is_paid=True) for p in state.players))


# --- Courts ---

def assign(state: SessionState, player_id: str, slot: SlotId) -> tuple[SessionState, Optional[str]]:
    """Seat a player; returns the new state and whoever was displaced from `slot`.

    Raises ValueError for the guest and for position 1 on a singles court.
    """
    player = find_player(state, player_id)
    if player.is_guest:
        raise ValueError("The guest player cannot be assigned to a court")
    if slot.position == 1 and state.game_types.get(slot.court, DOUBLES) == SINGLES:
        raise ValueError(f"Court {slot.court + 1} is singles; position {slot.position} is not used")
    table = state.assignments.copy()
    displaced = table.assign(player_id, slot)
    return replace(state, assignments=table), displaced


def unassign(state: SessionState, slot: SlotId) -> SessionState:
    table = state.assignments.copy()
    table.unassign(slot)
    return replace(state, assignments=table)


def unassigned(state: SessionState) -> list[Player]:
    return courts.unassigned_players(state.players, state.assignments)


def auto_assign(state: SessionState) -> tuple[SessionState, list[tuple[SlotId, str]]]:
    """Fill empty slots from the free pool. Raises NothingToAssign if nobody is free."""
    table = state.assignments.copy()
    placed = courts.auto_assign(table, unassigned(state), state.game_types)
    return replace(state, assignments=table), placed


def set_game_type(state: SessionState, court_index: int, game_type: str) -> SessionState:
    """Switching to singles silently empties both position-1 slots of the court."""
    courts.check_court(court_index)
    courts.check_game_type(game_type)
    game_types = {**state.game_types, court_index: game_type}
    table = state.assignments
    if game_type == SINGLES:
        table = table.copy()
        freed = table.vacate_second_positions(court_index)
        if freed:
            log.debug("Court %s set to singles; unassigned %s", court_index, freed)
    return replace(state, game_types=game_types, assignments=table)


def set_court_color(state: SessionState, court_index: int, color: str) -> SessionState:
    courts.check_court(court_index)
    return replace(state, court_colors={**state.court_colors, court_index: color})


def end_match(
    state: SessionState,
    court_index: int,
    losing_team: str,
    fee_per_match: float = SHUTTLECOCK_FEE_PER_MATCH,
) -> tuple[SessionState, Optional[Settlement]]:
    """Settle a court. An empty losing team leaves the state exactly as it was."""
    courts.check_court(court_index)
    result = settlement.settle(
        state.assignments,
        state.ledger,
        court_index,
        losing_team,
        game_type=state.game_types.get(court_index, DOUBLES),
        names=state.names(),
        fee_per_match=fee_per_match,
    )
    if result is None:
        return state, None
    table, ledger, outcome = result
    log.info(
        "Match #%s finished on court %s; losing team %s: %s",
        outcome.match_number, court_index + 1, losing_team, " & ".join(outcome.loser_names),
    )
    return replace(state, assignments=table, ledger=ledger), outcome


# --- Totals and lifecycle ---

def totals(state: SessionState, court_fee: float = COURT_FEE) -> billing.Totals:
    return billing.summarize(state.players, state.ledger, court_fee=court_fee)


def details(state: SessionState, court_fee: float = COURT_FEE):
    return billing.player_details(state.players, state.ledger, court_fee=court_fee)


def session_game_type(state: SessionState) -> str:
    types = set(state.game_types.values()) or {DOUBLES}
    return SINGLES if types == {SINGLES} else DOUBLES


def reset_session(state: SessionState) -> SessionState:
    """Start over with the same roster; billing inputs and tallies are cleared."""
    return new_session(roster_stubs(state), state.court_colors)


def save_session(
    state: SessionState,
    now: Optional[datetime] = None,
    court_fee: float = COURT_FEE,
) -> tuple[SessionState, Optional[Session]]:
    """Freeze the current session into a history record and reset.

    Returns the reset state and the record, or the unchanged state and None
    when there is nobody to bill.
    """
    if not state.players:
        return state, None
    now = now or datetime.now(timezone.utc)
    record = Session(
        id=str(uuid.uuid4()),
        date=now.isoformat(),
        players=details(state, court_fee),
        game_type=session_game_type(state),
        summary=totals(state, court_fee).summary(),
    )
    log.info("Session %s saved: %s player(s), grand total %s", record.id, len(record.players), record.summary.grand_total)
    return reset_session(state), record
