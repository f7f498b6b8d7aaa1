# FILE: narrate.py | version: 2026-10-19.v1
# Console narration + trace dumps. Read-only over GameState; the engine never imports this.

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List, Optional

from engine import GameEvent, GameState, parse_tile


def _tile_label(s: Optional[str]) -> str:
    if not s:
        return "?"
    return str(parse_tile(s))


def _ends_label(ev: GameEvent) -> str:
    if len(ev.open_ends) != 2 or ev.open_ends[0] is None:
        return "(empty)"
    return f"({ev.open_ends[0]} ; {ev.open_ends[1]})"


def render_event(ev: GameEvent) -> Optional[str]:
    """One narration line per event, or None for events that stay silent."""
    if ev.type == "deal":
        return f"Tiles dealt. Stock size: {ev.stock_count}"
    if ev.type == "open":
        return f"{ev.player} starts the game with domino: {_tile_label(ev.tile)}!"
    if ev.type == "no_opener":
        return f"No opening tile found, {ev.next_player} plays first."
    if ev.type == "play":
        return f"{ev.player} plays: {_tile_label(ev.tile)} edges: {_ends_label(ev)}"
    if ev.type == "draw":
        return f"{ev.player} draws: {_tile_label(ev.tile)} (stock {ev.stock_count})"
    if ev.type == "pass":
        return f"{ev.player} passes."
    if ev.type == "stalemate":
        return f"All players are in a stalemate. {ev.winner} wins with the lowest hand score."
    if ev.type == "win":
        return f"{ev.winner} won, game over!"
    return None


def render_state(st: GameState) -> str:
    lines: List[str] = ["======= Game State ======="]
    for p in st.players:
        hand = ", ".join(str(t) for t in st.hand_of(p))
        lines.append(f"{p}'s hand: [{hand}]")
    lines.append(f"Stock size: {st.stock_count()}")
    lines.append(f"Current player: {st.current_player()}")
    return "\n".join(lines) + "\n"


class ConsoleTrace:
    """
    Observer that narrates a match. Subscribe it to a TurnEngine.
    show_turns prints the game-state block whenever the turn passes on.
    """

    def __init__(self, st: GameState, show_turns: bool = False, out: Callable[[str], None] = print) -> None:
        self.st = st
        self.show_turns = bool(show_turns)
        self.out = out

    def __call__(self, ev: GameEvent) -> None:
        if ev.type == "deal":
            self.out(render_state(self.st))
        if ev.type == "turn":
            if self.show_turns:
                self.out(render_state(self.st))
            return
        line = render_event(ev)
        if line is not None:
            self.out(line)


# ----------------------------
# Dumps
# ----------------------------

def write_trace_json(path: str, st: GameState) -> None:
    Path(path).write_text(json.dumps(st.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")


def write_trace_text(path: str, st: GameState) -> None:
    d = st.to_dict()
    lines: List[str] = []
    lines.append("=== MATCH DUMP ===")
    lines.append(json.dumps(d.get("meta", {}), ensure_ascii=False))
    lines.append("")
    lines.append("=== EVENTS ===")
    for ev in st.events:
        line = render_event(ev)
        if line is not None:
            lines.append(line)
    lines.append("")
    lines.append("=== RAW ===")
    for ev in (d.get("events") or []):
        lines.append(json.dumps(ev, ensure_ascii=False))
    Path(path).write_text("\n".join(lines), encoding="utf-8")


def dump_match(st: GameState, dump_json: Optional[str] = None, dump_text: Optional[str] = None) -> bool:
    if not (dump_json or dump_text):
        return False
    try:
        if dump_json:
            write_trace_json(dump_json, st)
        if dump_text:
            write_trace_text(dump_text, st)
        print(f"[dump] wrote match_json={dump_json} text={dump_text}", flush=True)
        return True
    except OSError as e:
        print(f"[dump] failed: {e}", flush=True)
        return False
