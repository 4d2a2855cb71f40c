"""
Tests for per-player bills and session totals.
"""

from fractions import Fraction

from shuttle_tally.billing import (
    court_fee_of,
    drinks_cost_of,
    player_details,
    summarize,
    total_cost_of,
)
from shuttle_tally.constants import GUEST_PLAYER_ID
from shuttle_tally.models import Adjustment, Player
from shuttle_tally.settlement import Ledger


def test_guest_headcount_drives_court_fee():
    guest = Player(id=GUEST_PLAYER_ID, name="Guest", is_guest=True, quantity=3)
    assert court_fee_of(guest, 15000) == 45000
    assert total_cost_of(guest, {}, court_fee=15000) == 45000


def test_drinks_cost_uses_price_table_and_ignores_unknown_ids():
    p = Player(id="p1", name="An", consumed_drinks={"tra-duong": 2, "nuoc-suoi": 1, "bia-cu": 5})
    assert drinks_cost_of(p) == 2 * 12000 + 5000


def test_total_combines_every_component():
    p = Player(
        id="p1",
        name="An",
        consumed_drinks={"nuoc-chai": 1},
        adjustment=Adjustment(amount=-5000, reason="member discount"),
    )
    fees = {"p1": Fraction(14000)}
    assert total_cost_of(p, fees, court_fee=15000) == 15000 + 15000 + 14000 - 5000


def test_junk_numbers_are_coerced_not_propagated():
    p = Player(
        id="p1",
        name="An",
        quantity="abc",
        consumed_drinks={"nuoc-suoi": "2"},
        adjustment=Adjustment(amount=float("nan")),
    )
    assert court_fee_of(p, 15000) == 15000
    assert drinks_cost_of(p) == 10000
    assert total_cost_of(p, {}, court_fee=15000) == 25000


def test_quantity_floor_is_one():
    p = Player(id=GUEST_PLAYER_ID, name="Guest", is_guest=True, quantity=0)
    assert court_fee_of(p, 15000) == 15000


def test_summary_totals_and_paid_subset():
    players = [
        Player(id="p1", name="An", is_paid=True),
        Player(id="p2", name="Bình", consumed_drinks={"tra-duong": 1}),
        Player(id=GUEST_PLAYER_ID, name="Guest", is_guest=True, quantity=2, adjustment=Adjustment(1000)),
    ]
    ledger = Ledger(1, {"p1": 1, "p2": 1}, {"p1": Fraction(14000), "p2": Fraction(14000)})
    t = summarize(players, ledger, court_fee=15000)
    assert t.player_count == 4
    assert t.total_court_fee == 60000
    assert t.total_drinks_cost == 12000
    assert t.total_shuttlecock_cost == 28000
    assert t.total_adjustments == 1000
    assert t.grand_total == 60000 + 12000 + 28000 + 1000
    assert t.total_paid == 15000 + 14000
    assert t.outstanding == t.grand_total - t.total_paid
    assert t.summary().grand_total == 101000.0


def test_grand_total_equals_sum_of_player_totals():
    players = [Player(id=f"p{i}", name=str(i)) for i in range(3)]
    ledger = Ledger(1, {}, {"p0": Fraction(28000, 3), "p1": Fraction(28000, 3), "p2": Fraction(28000, 3)})
    rows = player_details(players, ledger, court_fee=15000)
    assert sum(r.total_cost for r in rows) == summarize(players, ledger, court_fee=15000).grand_total


def test_derivation_is_idempotent():
    players = [
        Player(id="p1", name="An", consumed_drinks={"nuoc-chai": 2}, adjustment=Adjustment(-2000, "late")),
        Player(id=GUEST_PLAYER_ID, name="Guest", is_guest=True, quantity=3),
    ]
    ledger = Ledger(2, {"p1": 2}, {"p1": Fraction(28000)})
    first = player_details(players, ledger)
    second = player_details(players, ledger)
    assert [r.total_cost for r in first] == [r.total_cost for r in second]
    assert first == second
    assert summarize(players, ledger) == summarize(players, ledger)
    assert ledger.matches_played == 2
