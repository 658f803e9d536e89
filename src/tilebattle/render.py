"""Rich rendering for matches — board, racks, scores and turn history."""

from __future__ import annotations

from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tilebattle.battle.flow import MatchState
from tilebattle.engine.board import Board, Multiplier, TileSource
from tilebattle.engine.state import BattleType, PlayerState

BAR_WIDTH = 30
HISTORY_LINES = 12

SEAT_COLORS = ("cyan", "magenta")

_PREMIUM_STYLES = {
    Multiplier.TW: (" 3W", "bold red"),
    Multiplier.DW: (" 2W", "bold magenta"),
    Multiplier.TL: (" 3L", "bold blue"),
    Multiplier.DL: (" 2L", "bold cyan"),
}


def _seat_color(ms: MatchState, side: str) -> str:
    return SEAT_COLORS[ms.order.index(side) % len(SEAT_COLORS)]


def board_text(board: Board) -> Text:
    """Board with colored premium squares; free tiles in yellow, pending lowercase."""
    text = Text()
    text.append("      ", style="dim")
    for c in range(board.size):
        text.append(f"{c:>3d}", style="dim")
    text.append("\n")

    for r in range(board.size):
        text.append(f"  {r:>2d}  ", style="dim")
        for c in range(board.size):
            cell = board.cell(r, c)
            if cell.pending is not None:
                text.append(f" {cell.pending.lower()} ", style="bold green")
            elif cell.confirmed is not None:
                style = "bold yellow" if cell.source is TileSource.FREE else "bold white"
                text.append(f" {cell.confirmed} ", style=style)
            elif cell.multiplier in _PREMIUM_STYLES:
                label, style = _PREMIUM_STYLES[cell.multiplier]
                text.append(label, style=style)
            else:
                text.append("  .", style="dim")
        text.append("\n")
    return text


def format_rack(tiles) -> Text:
    """A rack in slot order, so rack indices line up with what is shown."""
    rack = Text()
    for i, tile in enumerate(tiles):
        if i > 0:
            rack.append(" ")
        style = "bold red" if tile in "JQXZ" else ("bold" if tile in "KFHVWY" else "")
        rack.append(f"[{tile}]", style=style)
    return rack


def _make_bar(value: int, max_value: int, color: str) -> Text:
    """Bar proportional to ``max_value``."""
    total = max(max_value, 1)
    filled = int(min(1, max(0, value) / total) * BAR_WIDTH)
    bar = Text()
    bar.append("█" * filled, style=f"bold {color}")
    bar.append("░" * (BAR_WIDTH - filled), style="dim")
    bar.append(f" {value}", style=f"bold {color}")
    return bar


def _status_line(player: PlayerState) -> str:
    s = player.status
    parts = []
    if s.shield:
        parts.append(f"shield {s.shield}")
    if s.mirror:
        parts.append(f"mirror {s.mirror}")
    if s.poisoned:
        parts.append(f"poison {s.poison_damage}x{s.poison_turns}")
    if player.letter_limit is not None:
        parts.append(f"must place {player.letter_limit}")
    if player.next_turn_multiplier != 1:
        parts.append(f"next x{player.next_turn_multiplier:g}")
    return ", ".join(parts)


def build_header(ms: MatchState) -> Panel:
    title = Text()
    if ms.finished:
        title.append("FINAL  ", style="bold red")
    else:
        title.append("LIVE  ", style="bold green")
    title.append(f"{ms.mode.value.upper()}  ", style="bold white")
    for i, side in enumerate(ms.order):
        if i:
            title.append("  vs  ", style="dim")
        title.append(side, style=f"bold {_seat_color(ms, side)}")

    sub = Text()
    turn_limit = ms.game.turn_limit
    sub.append(f"Turn {ms.game.turn}/{turn_limit}", style="bold")
    sub.append("  |  ", style="dim")
    sub.append(f"Category: {ms.game.category}", style="bold")
    sub.append("  |  ", style="dim")
    sub.append(f"Bag: {len(ms.game.bag)}", style="bold yellow")
    if not ms.finished:
        sub.append("  |  ", style="dim")
        sub.append(f"To move: {ms.active}", style=f"bold {_seat_color(ms, ms.active)}")

    return Panel(
        Group(Align.center(title), Align.center(sub)),
        border_style="red" if ms.finished else "bright_white",
        padding=(0, 1),
    )


def build_board_panel(ms: MatchState) -> Panel:
    """Board on the left, scores, racks and statuses on the right."""
    hp_mode = ms.battle_type is BattleType.HP
    side = Text()
    side.append("HP\n" if hp_mode else "SCORES\n", style="bold underline")
    values = {
        s: ms.player(s).hp if hp_mode else ms.player(s).score for s in ms.order
    }
    top = ms.max_hp if hp_mode else max(values.values())
    for name in ms.order:
        color = _seat_color(ms, name)
        side.append(f"  {name[:16]}\n", style=f"bold {color}")
        side.append("  ")
        side.append_text(_make_bar(values[name], top, color))
        side.append("\n")
    side.append("\n")

    side.append("RACKS\n", style="bold underline")
    for name in ms.order:
        player = ms.player(name)
        side.append(f"  {name[:10]}: ", style=f"bold {_seat_color(ms, name)}")
        side.append_text(format_rack(player.rack))
        side.append("\n")
        if status := _status_line(player):
            side.append(f"    {status}\n", style="dim cyan")
        if player.special_hand:
            cards = " ".join(c.word for c in player.special_hand)
            side.append(f"    cards: {cards}\n", style="dim")

    table = Table(show_header=False, show_edge=False, padding=0, expand=True)
    table.add_column("board", ratio=3)
    table.add_column("side", ratio=1, min_width=35)
    table.add_row(board_text(ms.game.board), side)
    return Panel(table, title="[bold]Board[/bold]", border_style="green", padding=(0, 1))


def build_history_panel(ms: MatchState) -> Panel:
    """Most recent half-turns first."""
    lines: list[Text] = []
    history = ms.game.turn_history[-HISTORY_LINES:]
    if not history:
        lines.append(Text("  No plays yet", style="dim italic"))
    for rec in reversed(history):
        line = Text()
        line.append(f"  T{rec.turn:<3d} ", style="dim")
        color = _seat_color(ms, rec.side) if rec.side in ms.order else "white"
        line.append(f"{rec.side:<12s} ", style=f"bold {color}")
        if rec.passed:
            line.append("PASS", style="dim yellow")
        else:
            line.append(" ".join(w.word for w in rec.words), style="bold white")
            line.append(f"  {rec.total_score}pts", style="bold green")
            if rec.multiplier != 1:
                line.append(f"  x{rec.multiplier:g}", style="bold yellow")
            if rec.special_effect:
                line.append(f"  {rec.special_effect}", style="dim cyan")
            if rec.damage_dealt:
                line.append(f"  -{rec.damage_dealt}HP", style="bold red")
        lines.append(line)
    return Panel(
        Group(*lines), title="[bold]History[/bold]", border_style="yellow", padding=(0, 1)
    )


def render_match(ms: MatchState) -> Group:
    return Group(build_header(ms), build_board_panel(ms), build_history_panel(ms))
