# FILE: simulate.py | version: 2026-10-19.v1
# One narrated match from the command line.
#
# Run:
#     python simulate.py --players Alice Bob Carol --seed 7

from __future__ import annotations

import argparse
import random
from typing import Iterable, List, Optional

from engine import GameState
from narrate import ConsoleTrace, dump_match
from turns import DEFAULT_MAX_TURNS, DEFAULT_POLICY, STALEMATE_POLICIES, Observer, StalematePolicy, TurnEngine

DEFAULT_PLAYERS = ["Alice", "Bob"]


def play_match(
    players: List[str],
    seed: Optional[int] = None,
    policy: StalematePolicy = DEFAULT_POLICY,
    max_turns: int = DEFAULT_MAX_TURNS,
    observers: Iterable[Observer] = (),
) -> TurnEngine:
    """Deal and play a whole match; returns the finished engine (state + winner)."""
    st = GameState(players=list(players))
    eng = TurnEngine(st, random.Random(seed), policy=policy)
    for fn in observers:
        eng.subscribe(fn)
    eng.run(max_turns=max_turns)
    return eng


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Simulate one double-six dominoes match.")
    ap.add_argument("--players", nargs="+", default=DEFAULT_PLAYERS, help="2-4 player names, in seating order.")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--policy", choices=list(STALEMATE_POLICIES), default=DEFAULT_POLICY)
    ap.add_argument("--max_turns", type=int, default=DEFAULT_MAX_TURNS)
    ap.add_argument("--show_turns", action="store_true", help="print the game-state block every turn.")
    ap.add_argument("--quiet", action="store_true", help="only print the result line.")
    ap.add_argument("--dump_json", type=str, default=None, help="Write full state + events JSON to path.")
    ap.add_argument("--dump_text", type=str, default=None, help="Write readable events text to path.")
    return ap


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    st = GameState(players=list(args.players))
    eng = TurnEngine(st, random.Random(args.seed), policy=args.policy)
    if not args.quiet:
        eng.subscribe(ConsoleTrace(st, show_turns=bool(args.show_turns)))

    winner = eng.run(max_turns=int(args.max_turns))

    print(f"[sim] winner={winner} reason={st.end_reason} turns={eng.turns} stock={st.stock_count()}", flush=True)
    dump_match(st, dump_json=args.dump_json, dump_text=args.dump_text)


if __name__ == "__main__":
    main()
