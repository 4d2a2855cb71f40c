# app.py
# Discord front desk for a badminton venue: courts, shuttle fees, drinks and bills

from __future__ import annotations

import os
from datetime import date

import discord
from discord import app_commands
from dotenv import load_dotenv

import fmt
from shuttle_tally import session as ss
from shuttle_tally import store
from shuttle_tally.constants import (
    COURT_COLORS,
    COURT_COUNT,
    DRINKS,
    SINGLES,
    TEAMS,
)
from shuttle_tally.constants import COURT_FEE as DEFAULT_COURT_FEE
from shuttle_tally.constants import SHUTTLECOCK_FEE_PER_MATCH as DEFAULT_SHUTTLE_FEE
from shuttle_tally.courts import court_slots
from shuttle_tally.history import daily_stats, group_by_date, revenue_by_day
from shuttle_tally.logging_config import get_logger, setup_logging
from shuttle_tally.models import SlotId
from views import ConfirmView, DrinkView, EndMatchView

# --- Env / Config ---
load_dotenv()
setup_logging()
log = get_logger(__name__)

TOKEN = os.getenv("DISCORD_TOKEN")
TEST_MODE = os.getenv("TEST_MODE", "0").lower() in ("1", "true", "yes")
TEST_GUILD_ID = int(os.getenv("TEST_GUILD_ID", "0") or 0) or None
EPHEMERAL_DB = os.getenv("EPHEMERAL_DB", "0").lower() in ("1", "true", "yes")

DATABASE_PATH = os.getenv(
    "DATABASE_PATH",
    "./test_shuttle_tally.sqlite" if TEST_MODE else "./shuttle_tally.sqlite",
)
if EPHEMERAL_DB:
    DATABASE_PATH = "file::memory:?cache=shared"


def _env_amount(name: str, default: int, allow_zero: bool) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("Invalid %s value %r, using default %s", name, raw, default)
        return default
    if value < 0 or (value == 0 and not allow_zero):
        log.warning("%s must be %s, using default %s", name, "non-negative" if allow_zero else "positive", default)
        return default
    return value


COURT_FEE = _env_amount("COURT_FEE", DEFAULT_COURT_FEE, allow_zero=True)
SHUTTLECOCK_FEE_PER_MATCH = _env_amount("SHUTTLECOCK_FEE_PER_MATCH", DEFAULT_SHUTTLE_FEE, allow_zero=False)

# Intents
intents = discord.Intents.none()
intents.guilds = True

# Discord client + tree
bot = discord.Client(intents=intents)
tree = app_commands.CommandTree(bot)

# One venue session per process; every command swaps in the state its transition returns
STATE: ss.SessionState = ss.new_session([])
HISTORY: list = []
_loaded = False


# --- Helpers ---
async def load_everything() -> None:
    global STATE, HISTORY, _loaded
    await store.init_db(DATABASE_PATH)
    roster = await store.load_roster()
    colors = await store.load_court_colors()
    HISTORY = await store.load_history()
    STATE = ss.new_session(roster, colors)
    if roster is None:
        # First run: write the placeholder roster so ids stay stable across restarts
        await store.save_roster(ss.roster_stubs(STATE))
    _loaded = True
    log.info("Loaded %s roster player(s), %s saved session(s)", len(STATE.players) - 1, len(HISTORY))


async def persist_roster() -> str:
    ok = await store.save_roster(ss.roster_stubs(STATE))
    return "" if ok else "\n⚠️ Roster could not be saved to disk."


async def persist_history() -> str:
    ok = await store.save_history(HISTORY)
    return "" if ok else "\n⚠️ History could not be saved to disk."


def _name(player_id: str | None) -> str:
    if player_id is None:
        return "—"
    for p in STATE.players:
        if p.id == player_id:
            return p.name
    return "?"


def _court_card(court: int) -> str:
    game_type = STATE.game_types.get(court, "doubles")
    color = STATE.court_colors.get(court)
    head = f"{fmt.bold(f'Court {court + 1}')} · {game_type}" + (f" · {color}" if color else "")
    sides = []
    for team in TEAMS:
        names = [_name(STATE.assignments.occupant(s)) for s in court_slots(court, game_type) if s.team == team]
        sides.append(f"{team}: " + " / ".join(names))
    return head + "\n" + "   vs   ".join(sides)


def _slot(court: int, team: str, position: int) -> SlotId:
    return SlotId(court - 1, team, position - 1)


async def _error(inter: discord.Interaction, e: Exception) -> None:
    msg = e.args[0] if e.args else str(e)
    if inter.response.is_done():
        await inter.followup.send(f"❌ {msg}", ephemeral=True)
    else:
        await inter.response.send_message(f"❌ {msg}", ephemeral=True)


async def send_pages(inter: discord.Interaction, pages: list[str], ephemeral: bool = False) -> None:
    """First page as the reply, the rest as follow-ups."""
    first, *rest = pages
    await inter.response.send_message(first, ephemeral=ephemeral)
    for page in rest:
        await inter.followup.send(page, ephemeral=ephemeral)


async def player_autocomplete(inter: discord.Interaction, current: str) -> list[app_commands.Choice[str]]:
    current = (current or "").lower()
    out = []
    for p in STATE.players:
        if current in p.name.lower():
            out.append(app_commands.Choice(name=p.name[:100], value=p.id))
        if len(out) >= 25:
            break
    return out


court_range = app_commands.Range[int, 1, COURT_COUNT]
team_choices = [app_commands.Choice(name=f"Team {t}", value=t) for t in TEAMS]


# --- Discord events ---
@bot.event
async def on_ready():
    if not _loaded:
        await load_everything()

    if store.is_ephemeral(DATABASE_PATH):
        log.warning("Ephemeral DB mode active: data will NOT persist between restarts")

    if TEST_MODE and TEST_GUILD_ID:
        await tree.sync(guild=discord.Object(id=TEST_GUILD_ID))
        log.info("Commands synced to test guild %s", TEST_GUILD_ID)
    else:
        await tree.sync()
        log.info("Commands synced globally")

    status = "Badminton 🏸 [TEST MODE]" if TEST_MODE else "Badminton 🏸"
    await bot.change_presence(activity=discord.Game(name=status))
    log.info("Bot ready as %s | guilds=%s | DB=%s", bot.user, len(bot.guilds), DATABASE_PATH)


# --- Commands: roster ---
@tree.command(name="player_add", description="Add a player to the roster")
@app_commands.describe(name="Display name", phone="Phone number (optional)")
async def player_add(inter: discord.Interaction, name: str, phone: str = ""):
    global STATE
    before = len(STATE.players)
    STATE = ss.add_player(STATE, name, phone)
    if len(STATE.players) == before:
        return await inter.response.send_message("❌ Name cannot be empty.", ephemeral=True)
    warn = await persist_roster()
    await inter.response.send_message(f"✅ Added {fmt.bold(STATE.players[-1].name)}.{warn}")


@tree.command(name="player_remove", description="Remove a player from the roster")
@app_commands.autocomplete(player=player_autocomplete)
async def player_remove(inter: discord.Interaction, player: str):
    global STATE
    try:
        name = ss.find_player(STATE, player).name
        STATE = ss.remove_player(STATE, player)
    except (KeyError, ValueError) as e:
        return await _error(inter, e)
    warn = await persist_roster()
    await inter.response.send_message(f"🗑️ Removed {fmt.bold(name)}.{warn}")


@tree.command(name="player_edit", description="Change a player's name or phone")
@app_commands.autocomplete(player=player_autocomplete)
async def player_edit(inter: discord.Interaction, player: str, name: str, phone: str = ""):
    global STATE
    try:
        STATE = ss.update_player_info(STATE, player, name, phone)
    except (KeyError, ValueError) as e:
        return await _error(inter, e)
    warn = await persist_roster()
    await inter.response.send_message(f"✏️ Updated {fmt.bold(name.strip())}.{warn}", ephemeral=True)


@tree.command(name="players_import", description="Replace the roster: one player per line, 'name, phone'")
@app_commands.describe(text="Lines of 'name' or 'name, phone'")
async def players_import(inter: discord.Interaction, text: str):
    global STATE
    entries = []
    for line in text.replace(";", "\n").splitlines():
        name, _, phone = line.partition(",")
        if name.strip():
            entries.append({"name": name.strip(), "phone": phone.strip()})
    STATE = ss.import_players(STATE, entries)
    warn = await persist_roster()
    await inter.response.send_message(f"📥 {len(entries)} player(s) imported.{warn}")


# --- Commands: courts ---
@tree.command(name="courts", description="Show every court and who is waiting")
async def courts_cmd(inter: discord.Interaction):
    cards = [_court_card(c) for c in range(COURT_COUNT)]
    free = [p.name for p in ss.unassigned(STATE)]
    waiting = ", ".join(free) if free else "nobody"
    await inter.response.send_message("\n\n".join(cards) + f"\n\n{fmt.bold('Waiting')}: {waiting}")


@tree.command(name="assign", description="Put a player in a court slot")
@app_commands.autocomplete(player=player_autocomplete)
@app_commands.choices(team=team_choices)
@app_commands.describe(position="1 or 2 (2 is only used in doubles)")
async def assign(
    inter: discord.Interaction,
    player: str,
    court: court_range,
    team: str,
    position: app_commands.Range[int, 1, 2] = 1,
):
    global STATE
    try:
        STATE, displaced = ss.assign(STATE, player, _slot(court, team, position))
    except (KeyError, ValueError) as e:
        return await _error(inter, e)
    note = f"\n↩️ {fmt.bold(_name(displaced))} is back in the waiting list." if displaced else ""
    await inter.response.send_message(_court_card(court - 1) + note)


@tree.command(name="unassign", description="Free a court slot")
@app_commands.choices(team=team_choices)
async def unassign(
    inter: discord.Interaction,
    court: court_range,
    team: str,
    position: app_commands.Range[int, 1, 2] = 1,
):
    global STATE
    STATE = ss.unassign(STATE, _slot(court, team, position))
    await inter.response.send_message(_court_card(court - 1))


@tree.command(name="auto_assign", description="Fill empty slots with waiting players, court by court")
async def auto_assign(inter: discord.Interaction):
    global STATE
    try:
        STATE, placed = ss.auto_assign(STATE)
    except ss.NothingToAssign:
        return await inter.response.send_message("Nobody is waiting to be assigned.", ephemeral=True)
    touched = sorted({slot.court for slot, _ in placed})
    cards = "\n\n".join(_court_card(c) for c in touched) or "All courts are full."
    await inter.response.send_message(f"🏸 Placed {len(placed)} player(s).\n\n{cards}")


@tree.command(name="court_type", description="Set a court to singles or doubles")
@app_commands.choices(game_type=[
    app_commands.Choice(name="Doubles", value="doubles"),
    app_commands.Choice(name="Singles", value="singles"),
])
async def court_type(inter: discord.Interaction, court: court_range, game_type: str):
    global STATE
    STATE = ss.set_game_type(STATE, court - 1, game_type)
    note = " Second positions were freed." if game_type == SINGLES else ""
    await inter.response.send_message(_court_card(court - 1) + ("\n" + note if note else ""))


@tree.command(name="court_color", description="Set a court's display colour")
@app_commands.choices(color=[app_commands.Choice(name=c, value=c) for c in COURT_COLORS])
async def court_color(inter: discord.Interaction, court: court_range, color: str):
    global STATE
    STATE = ss.set_court_color(STATE, court - 1, color)
    ok = await store.save_court_colors(STATE.court_colors)
    warn = "" if ok else "\n⚠️ Colour could not be saved to disk."
    await inter.response.send_message(f"🎨 Court {court} is now {color}.{warn}", ephemeral=True)


async def _settle(inter: discord.Interaction, court_index: int, team: str) -> None:
    global STATE
    STATE, outcome = ss.end_match(STATE, court_index, team, fee_per_match=SHUTTLECOCK_FEE_PER_MATCH)
    if outcome is None:
        msg = f"Court {court_index + 1} team {team} is empty; nothing to settle."
        if inter.response.is_done():
            return await inter.followup.send(msg, ephemeral=True)
        return await inter.response.send_message(msg, ephemeral=True)
    text = (
        fmt.settlement_notice(outcome.match_number, outcome.loser_names)
        + f"\n{fmt.vnd(outcome.fee_per_loser)} each. Court {court_index + 1} is free."
    )
    if inter.response.is_done():
        await inter.followup.send(text)
    else:
        await inter.response.send_message(text)


@tree.command(name="end_match", description="Finish the match on a court; the losing team pays the shuttles")
@app_commands.choices(losing_team=team_choices)
async def end_match(inter: discord.Interaction, court: court_range, losing_team: str | None = None):
    if losing_team:
        return await _settle(inter, court - 1, losing_team)

    async def on_lost(i2: discord.Interaction, court_index: int, team: str):
        await i2.response.edit_message(view=None)
        await _settle(i2, court_index, team)

    await inter.response.send_message(_court_card(court - 1), view=EndMatchView(court - 1, on_lost))


# --- Commands: billing ---
@tree.command(name="drink", description="Add or remove drinks for a player")
@app_commands.autocomplete(player=player_autocomplete)
@app_commands.choices(drink=[app_commands.Choice(name=d["name"], value=k) for k, d in DRINKS.items()])
@app_commands.describe(amount="How many to add (negative to remove); leave empty to pick from a menu")
async def drink(inter: discord.Interaction, player: str, drink: str | None = None, amount: int = 1):
    global STATE
    try:
        pname = ss.find_player(STATE, player).name
    except KeyError as e:
        return await _error(inter, e)

    if drink is None:
        async def on_pick(i2: discord.Interaction, player_id: str, drink_id: str):
            global STATE
            try:
                STATE = ss.update_drink(STATE, player_id, drink_id, 1)
            except (KeyError, ValueError) as e:
                return await _error(i2, e)
            await i2.response.send_message(f"🥤 +1 {DRINKS[drink_id]['name']} for {fmt.bold(pname)}.", ephemeral=True)
        return await inter.response.send_message(
            f"Drinks for {fmt.bold(pname)}", view=DrinkView(player, DRINKS, on_pick), ephemeral=True
        )

    try:
        STATE = ss.update_drink(STATE, player, drink, amount)
    except (KeyError, ValueError) as e:
        return await _error(inter, e)
    count = ss.find_player(STATE, player).consumed_drinks.get(drink, 0)
    await inter.response.send_message(f"🥤 {fmt.bold(pname)}: {DRINKS[drink]['name']} × {count}", ephemeral=True)


@tree.command(name="guests", description="Change the walk-in guest headcount")
@app_commands.describe(delta="People to add (negative to remove; never below 1)")
async def guests(inter: discord.Interaction, delta: int):
    global STATE
    guest = next(p for p in STATE.players if p.is_guest)
    STATE = ss.update_quantity(STATE, guest.id, delta)
    qty = ss.find_player(STATE, guest.id).quantity
    await inter.response.send_message(f"👥 Walk-in guests: {qty} ({fmt.vnd(qty * COURT_FEE)} court fee)")


@tree.command(name="adjust", description="Discount (negative) or surcharge a player's bill")
@app_commands.autocomplete(player=player_autocomplete)
async def adjust(inter: discord.Interaction, player: str, amount: float, reason: str = ""):
    global STATE
    try:
        STATE = ss.set_adjustment(STATE, player, amount, reason)
        p = ss.find_player(STATE, player)
    except KeyError as e:
        return await _error(inter, e)
    label = fmt.adjustment_label(p.adjustment.amount, p.adjustment.reason) or "cleared"
    await inter.response.send_message(f"🧾 {fmt.bold(p.name)}: adjustment {label}", ephemeral=True)


@tree.command(name="paid", description="Toggle a player's paid flag")
@app_commands.autocomplete(player=player_autocomplete)
async def paid(inter: discord.Interaction, player: str):
    global STATE
    try:
        STATE = ss.toggle_paid(STATE, player)
        p = ss.find_player(STATE, player)
    except KeyError as e:
        return await _error(inter, e)
    await inter.response.send_message(f"{'✅' if p.is_paid else '⬜'} {fmt.bold(p.name)}", ephemeral=True)


@tree.command(name="paid_all", description="Mark every player as paid")
async def paid_all(inter: discord.Interaction):
    global STATE
    STATE = ss.mark_all_paid(STATE)
    await inter.response.send_message("✅ Everyone is marked as paid.")


@tree.command(name="bill", description="Show the bill for the current session")
async def bill(inter: discord.Interaction):
    rows = ss.details(STATE, court_fee=COURT_FEE)
    t = ss.totals(STATE, court_fee=COURT_FEE)
    footer = (
        f"{fmt.bold('Players')}: {t.player_count} · {fmt.bold('Matches')}: {STATE.matches_played}\n"
        f"Court {fmt.vnd(t.total_court_fee)} · Drinks {fmt.vnd(t.total_drinks_cost)} · "
        f"Shuttles {fmt.vnd(t.total_shuttlecock_cost)} · Adjustments {fmt.vnd(t.total_adjustments)}\n"
        f"{fmt.bold('Total')}: {fmt.code(fmt.vnd(t.grand_total))} · "
        f"{fmt.bold('Paid')}: {fmt.code(fmt.vnd(t.total_paid))} · "
        f"{fmt.bold('Outstanding')}: {fmt.code(fmt.vnd(t.outstanding))}"
    )
    await send_pages(inter, fmt.paginate(fmt.bill_pages(rows, COURT_FEE) + [footer]))


# --- Commands: session lifecycle and history ---
@tree.command(name="save_session", description="Finish the session, save it to history and start a new one")
async def save_session(inter: discord.Interaction):
    stats = daily_stats(HISTORY, 0, [], today=date.today())

    async def on_confirm(i2: discord.Interaction):
        global STATE, HISTORY
        STATE, record = ss.save_session(STATE, court_fee=COURT_FEE)
        if record is None:
            return await i2.response.edit_message(content="Nothing to save.", view=None)
        HISTORY = [record, *HISTORY]
        warn = await persist_history()
        await i2.response.edit_message(
            content=f"💾 Session saved: {fmt.vnd(record.summary.grand_total)}. A new session has started.{warn}",
            view=None,
        )

    await inter.response.send_message(
        f"End the current session, save it and start a new one?\n"
        f"Revenue already saved today: {fmt.bold(fmt.vnd(stats.saved_revenue))}",
        view=ConfirmView(on_confirm, confirm_label="Save"),
        ephemeral=True,
    )


@tree.command(name="reset_session", description="Discard the current session's tallies without saving")
async def reset_session(inter: discord.Interaction):
    async def on_confirm(i2: discord.Interaction):
        global STATE
        STATE = ss.reset_session(STATE)
        await i2.response.edit_message(content="🔄 Session reset.", view=None)

    await inter.response.send_message(
        "Discard all assignments, matches, drinks and adjustments of this session?",
        view=ConfirmView(on_confirm, confirm_label="Reset"),
        ephemeral=True,
    )


@tree.command(name="today", description="Today's revenue and player count")
async def today(inter: discord.Interaction):
    t = ss.totals(STATE, court_fee=COURT_FEE)
    stats = daily_stats(HISTORY, t.grand_total, STATE.players, today=date.today())
    await inter.response.send_message(
        f"{fmt.bold('Today')}\n"
        f"Saved sessions: {fmt.vnd(stats.saved_revenue)}\n"
        f"Including current session: {fmt.vnd(stats.total_revenue)}\n"
        f"Players: {stats.unique_players}"
    )


@tree.command(name="history", description="Saved sessions grouped by day")
@app_commands.describe(days="How many days to show (1-14)")
async def history(inter: discord.Interaction, days: app_commands.Range[int, 1, 14] = 3):
    groups = group_by_date(HISTORY)[: int(days)]
    if not groups:
        return await inter.response.send_message("No saved sessions yet.", ephemeral=True)
    parts = []
    for g in groups:
        rows = [
            [fmt.when(s.date), str(len(s.players)), s.game_type, fmt.vnd(s.summary.grand_total)]
            for s in g.sessions
        ]
        title = f"{fmt.bold(fmt.day(g.day))}: {fmt.vnd(g.total_revenue)}"
        pages = fmt.mono_table_pages(
            rows, headers=["Saved", "Players", "Type", "Total"], limit=fmt.DISCORD_LIMIT - len(title) - 1
        )
        parts.append(title + "\n" + pages[0])
        parts.extend(pages[1:])
    await send_pages(inter, fmt.paginate(parts), ephemeral=True)


@tree.command(name="revenue", description="Revenue per day across saved sessions")
async def revenue(inter: discord.Interaction):
    rows = [[d.isoformat(), str(n), fmt.vnd(total)] for d, total, n in revenue_by_day(HISTORY)]
    if not rows:
        return await inter.response.send_message("No saved sessions yet.", ephemeral=True)
    await send_pages(inter, fmt.mono_table_pages(rows, headers=["Day", "Sessions", "Revenue"]), ephemeral=True)


@tree.command(name="clear_history", description="Delete every saved session")
async def clear_history(inter: discord.Interaction):
    async def on_confirm(i2: discord.Interaction):
        global HISTORY
        HISTORY = []
        ok = await store.clear_history()
        warn = "" if ok else "\n⚠️ History could not be removed from disk."
        await i2.response.edit_message(content=f"🧹 History cleared.{warn}", view=None)

    await inter.response.send_message(
        "Delete the whole session history? This cannot be undone.",
        view=ConfirmView(on_confirm, confirm_label="Delete"),
        ephemeral=True,
    )


# --- Entrypoint ---
if __name__ == "__main__":
    if not TOKEN:
        log.error("DISCORD_TOKEN not set. Put it in environment or .env")
        raise SystemExit(1)
    bot.run(TOKEN, log_handler=None)
