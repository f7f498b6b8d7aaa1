# FILE: evaluate.py | version: 2026-10-19.v1
# Headless evaluator: many seeded random matches, aggregate report as JSON.
#
# Design:
# - Match i is seeded with base_seed + i * 10007, so any match of a report can be
#   replayed alone with simulate.py --seed.
# - Tile conservation is asserted after every event when strict_asserts is on.
# - jobs > 1 splits the batch over a spawn pool; chunks keep their own seed ranges.

from __future__ import annotations

import argparse
import json
import multiprocessing as mp
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from engine import GameEvent, GameState
from narrate import dump_match
from turns import DEFAULT_MAX_TURNS, DEFAULT_POLICY, STALEMATE_POLICIES, StalematePolicy, TurnEngine

SEED_STRIDE = 10007


@dataclass
class EvalConfig:
    matches: int = 500
    players: List[str] = field(default_factory=lambda: ["p0", "p1"])
    base_seed: int = 12345
    policy: StalematePolicy = DEFAULT_POLICY
    max_turns: int = DEFAULT_MAX_TURNS
    strict_asserts: bool = True

    # dump first match (optional)
    dump_match_json: Optional[str] = None
    dump_match_text: Optional[str] = None


@dataclass
class MatchRecord:
    seed: int
    winner_seat: int
    stalemate: bool
    opener_seat: int  # -1 when no opener
    turns: int
    final_stock: int
    winner_score: int


def _conservation_observer(st: GameState):
    def _check(_ev: GameEvent) -> None:
        st.check_conservation()
    return _check


def play_one_match(cfg: EvalConfig, seed: int) -> GameState:
    st = GameState(players=list(cfg.players))
    eng = TurnEngine(st, random.Random(int(seed)), policy=cfg.policy)
    if cfg.strict_asserts:
        eng.subscribe(_conservation_observer(st))
    eng.run(max_turns=int(cfg.max_turns))
    # stash for the report; not part of GameState
    setattr(st, "_m_turns", int(eng.turns))
    return st


def record_of(st: GameState, seed: int) -> MatchRecord:
    if st.winner is None:
        raise RuntimeError(f"match seed={seed} finished without a winner")
    return MatchRecord(
        seed=int(seed),
        winner_seat=st.players.index(st.winner),
        stalemate=(st.end_reason == "stalemate"),
        opener_seat=(int(st.opener[0]) if st.opener is not None else -1),
        turns=int(getattr(st, "_m_turns", 0)),
        final_stock=st.stock_count(),
        winner_score=int(st.final_scores.get(st.winner, 0)),
    )


def summarize(records: List[MatchRecord], n_players: int) -> Dict[str, Any]:
    n = len(records)
    if n == 0:
        return {"matches": 0}

    winners = np.array([r.winner_seat for r in records], dtype=np.int64)
    openers = np.array([r.opener_seat for r in records], dtype=np.int64)
    stalemates = np.array([r.stalemate for r in records], dtype=bool)
    turns = np.array([r.turns for r in records], dtype=np.float64)
    stock = np.array([r.final_stock for r in records], dtype=np.float64)

    wins = np.bincount(winners, minlength=n_players)
    opened = openers >= 0
    opener_won = int(np.sum(winners[opened] == openers[opened]))

    return {
        "matches": int(n),
        "wins_by_seat": [int(x) for x in wins],
        "win_rate_by_seat": [round(float(x) / float(n), 4) for x in wins],
        "stalemates": int(np.sum(stalemates)),
        "stalemate_rate": round(float(np.mean(stalemates)), 4),
        "no_opener": int(np.sum(~opened)),
        "opener_win_rate": round(float(opener_won) / float(max(1, int(np.sum(opened)))), 4),
        "turns_mean": round(float(np.mean(turns)), 2),
        "turns_median": round(float(np.median(turns)), 2),
        "turns_p90": round(float(np.percentile(turns, 90)), 2),
        "turns_max": int(np.max(turns)),
        "final_stock_mean": round(float(np.mean(stock)), 3),
        "stalemate_winner_score_mean": (
            round(float(np.mean([r.winner_score for r in records if r.stalemate])), 3)
            if bool(np.any(stalemates)) else None
        ),
    }


def _config_dict(cfg: EvalConfig) -> Dict[str, Any]:
    return {
        "matches": int(cfg.matches),
        "players": list(cfg.players),
        "base_seed": int(cfg.base_seed),
        "policy": cfg.policy,
        "max_turns": int(cfg.max_turns),
        "strict_asserts": bool(cfg.strict_asserts),
    }


def run_records(cfg: EvalConfig) -> List[MatchRecord]:
    out: List[MatchRecord] = []
    for i in range(int(cfg.matches)):
        seed = int(cfg.base_seed + i * SEED_STRIDE)
        st = play_one_match(cfg, seed)
        out.append(record_of(st, seed))

        if i == 0:
            dump_match(st, dump_json=cfg.dump_match_json, dump_text=cfg.dump_match_text)
    return out


def run_eval(cfg: EvalConfig) -> Dict[str, Any]:
    t0 = time.perf_counter()
    records = run_records(cfg)
    results = summarize(records, len(cfg.players))
    results["elapsed_sec"] = round(float(time.perf_counter() - t0), 3)
    return {"ok": True, "config": _config_dict(cfg), "results": results}


def run_eval_parallel(cfg: EvalConfig, jobs: int, progress_every: int) -> Dict[str, Any]:
    jobs = max(1, int(jobs))
    matches = int(cfg.matches)
    if jobs == 1 or matches < 50:
        return run_eval(cfg)

    jobs = min(jobs, matches)
    per = matches // jobs
    rem = matches % jobs

    chunks: List[EvalConfig] = []
    start = 0
    for j in range(jobs):
        n = per + (1 if j < rem else 0)
        c = EvalConfig(**{**cfg.__dict__})
        c.matches = n
        c.base_seed = int(cfg.base_seed) + start * SEED_STRIDE
        if start > 0:
            c.dump_match_json = None
            c.dump_match_text = None
        chunks.append(c)
        start += n

    t0 = time.perf_counter()
    records: List[MatchRecord] = []

    with mp.get_context("spawn").Pool(processes=jobs) as pool:
        done = 0
        for part in pool.imap_unordered(run_records, chunks, chunksize=1):
            records.extend(part)
            done += len(part)
            if progress_every > 0:
                dt = time.perf_counter() - t0
                mps = done / max(1e-9, dt)
                print(f"[eval] progress matches_done={done}/{matches} mps={mps:.2f}", flush=True)

    records.sort(key=lambda r: r.seed)
    results = summarize(records, len(cfg.players))
    results["elapsed_sec"] = round(float(time.perf_counter() - t0), 3)
    return {"ok": True, "config": _config_dict(cfg), "results": results}


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser()
    ap.add_argument("--matches", type=int, default=500)
    ap.add_argument("--players", nargs="+", default=["p0", "p1"])
    ap.add_argument("--seed", type=int, default=12345)
    ap.add_argument("--policy", choices=list(STALEMATE_POLICIES), default=DEFAULT_POLICY)
    ap.add_argument("--max_turns", type=int, default=DEFAULT_MAX_TURNS)
    ap.add_argument("--no_asserts", action="store_true")
    ap.add_argument("--jobs", type=int, default=1, help="parallel workers for eval (Windows uses spawn).")
    ap.add_argument("--progress_every", type=int, default=1, help="print progress per finished chunk (0=off).")
    ap.add_argument("--dump_match_json", type=str, default=None, help="Write first match full state JSON to path.")
    ap.add_argument("--dump_match_text", type=str, default=None, help="Write first match readable events text to path.")
    return ap


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    cfg = EvalConfig(
        matches=int(args.matches),
        players=list(args.players),
        base_seed=int(args.seed),
        policy=str(args.policy),  # type: ignore[arg-type]
        max_turns=int(args.max_turns),
        strict_asserts=(not bool(args.no_asserts)),
        dump_match_json=args.dump_match_json,
        dump_match_text=args.dump_match_text,
    )

    rep = run_eval_parallel(cfg, jobs=int(args.jobs), progress_every=int(args.progress_every))

    print(json.dumps(rep, ensure_ascii=False), flush=True)            # machine-friendly
    print(json.dumps(rep, ensure_ascii=False, indent=2), flush=True)  # readable


if __name__ == "__main__":
    main()
