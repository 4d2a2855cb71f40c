from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Iterable

from shuttle_tally.history import parse_date

# Discord rejects message content longer than this
DISCORD_LIMIT = 2000


def bold(t: str) -> str:
	return f"**{t}**"


def code(t: str) -> str:
	return f"`{t}`"


def block(t: str, lang: str | None = None) -> str:
	return f"```{lang or ''}\n{t}\n```"


def vnd(amount) -> str:
	"""Format an amount as Vietnamese đồng, e.g. 15000 -> '15.000 ₫'.

	Rounds half-up to whole đồng for display only; stored values keep their
	exact fractions.
	"""
	try:
		d = Decimal(str(float(amount))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
	except (TypeError, ValueError, ArithmeticError):
		d = Decimal(0)
	sign = "-" if d < 0 else ""
	return f"{sign}{abs(int(d)):,}".replace(",", ".") + " ₫"


def when(value) -> str:
	"""Short local date/time for a session timestamp (ISO string or datetime)."""
	dt = value if isinstance(value, datetime) else parse_date(value)
	if dt is None:
		return "?"
	return dt.strftime("%d/%m/%Y %H:%M")


def day(d) -> str:
	return d.strftime("%A %d/%m/%Y")


def settlement_notice(match_number: int, loser_names: Iterable[str]) -> str:
	return f"Match {match_number} finished! Losing team: {' & '.join(loser_names)}."


def adjustment_label(amount, reason: str = "") -> str:
	if not amount:
		return ""
	sign = "+" if float(amount) > 0 else ""
	return f"{sign}{vnd(amount)}" + (f" ({reason})" if reason else "")


def _table_lines(rows: list[list[str]], headers: Optional[list[str]] = None) -> tuple[list[str], list[str]]:
	"""Header lines (title + divider) and body lines, padded to the widest cell."""
	# Normalize all to strings and compute column count
	norm_rows = [[str(c) for c in r] for r in rows]
	col_count = max((len(r) for r in norm_rows), default=0)
	if headers:
		headers = [str(h) for h in headers]
		col_count = max(col_count, len(headers))

	def pad_row(r: Iterable[str]) -> list[str]:
		lst = list(r)
		if len(lst) < col_count:
			lst += [""] * (col_count - len(lst))
		return lst

	if headers:
		headers = pad_row(headers)
	norm_rows = [pad_row(r) for r in norm_rows]

	widths = [0] * col_count
	for r in ([headers] if headers else []) + norm_rows:
		for i, cell in enumerate(r):
			widths[i] = max(widths[i], len(cell))

	def fmt_row(r: list[str]) -> str:
		return " | ".join((r[i].ljust(widths[i]) for i in range(col_count)))

	head = [fmt_row(headers), "-+-".join("-" * w for w in widths)] if headers else []
	return head, [fmt_row(r) for r in norm_rows]


def mono_table(rows: list[list[str]], headers: Optional[list[str]] = None) -> str:
	"""Render a monospaced table as one Markdown code block."""
	head, body = _table_lines(rows, headers)
	return block("\n".join(head + body), "md")


def mono_table_pages(
	rows: list[list[str]],
	headers: Optional[list[str]] = None,
	limit: int = DISCORD_LIMIT,
) -> list[str]:
	"""Like mono_table, but split into code blocks that each fit in `limit` chars.

	Every page repeats the header and keeps the column widths of the whole table.
	"""
	head, body = _table_lines(rows, headers)
	fence = len(block("", "md"))
	pages: list[str] = []
	lines = list(head)
	size = len("\n".join(lines))
	for line in body:
		grown = size + len(line) + (1 if lines else 0)
		if len(lines) > len(head) and fence + grown > limit:
			pages.append(block("\n".join(lines), "md"))
			lines = list(head)
			size = len("\n".join(lines))
			grown = size + len(line) + (1 if lines else 0)
		lines.append(line)
		size = grown
	pages.append(block("\n".join(lines), "md"))
	return pages


def paginate(parts: Iterable[str], limit: int = DISCORD_LIMIT) -> list[str]:
	"""Pack text parts into as few messages as fit in `limit`; parts are never split."""
	pages: list[str] = []
	cur = ""
	for part in parts:
		if cur and len(cur) + 1 + len(part) > limit:
			pages.append(cur)
			cur = part
		else:
			cur = f"{cur}\n{part}" if cur else part
	if cur:
		pages.append(cur)
	return pages


BILL_HEADERS = ["Player", "Court", "Drinks", "Shuttle", "Adj.", "Total", "Losses", "Paid"]


def _bill_rows(details, court_fee: int) -> list[list[str]]:
	rows = []
	for p in details:
		name = f"{p.name} x{p.quantity}" if p.is_guest else p.name
		rows.append([
			name,
			vnd(p.quantity * court_fee),
			vnd(p.drinks_cost),
			vnd(p.shuttlecock_cost),
			vnd(p.adjustment.amount) if p.adjustment.amount else "",
			vnd(p.total_cost),
			str(p.losses),
			"✓" if p.is_paid else "",
		])
	return rows


def bill_table(details, court_fee: int) -> str:
	"""One row per player: court, drinks, shuttles, adjustment, total, losses, paid."""
	return mono_table(_bill_rows(details, court_fee), headers=BILL_HEADERS)


def bill_pages(details, court_fee: int, limit: int = DISCORD_LIMIT) -> list[str]:
	return mono_table_pages(_bill_rows(details, court_fee), headers=BILL_HEADERS, limit=limit)
