import json

import pytest

import evaluate
from evaluate import EvalConfig, MatchRecord, run_eval, summarize


def test_run_eval_report_shape():
    cfg = EvalConfig(matches=12, players=["a", "b", "c"], base_seed=7)
    rep = run_eval(cfg)
    assert rep["ok"] is True
    assert rep["config"]["players"] == ["a", "b", "c"]

    res = rep["results"]
    assert res["matches"] == 12
    assert sum(res["wins_by_seat"]) == 12
    assert len(res["win_rate_by_seat"]) == 3
    assert 0.0 <= res["stalemate_rate"] <= 1.0
    assert res["turns_max"] >= res["turns_median"] > 0


def test_run_eval_is_reproducible():
    cfg = EvalConfig(matches=8, base_seed=99)
    a = run_eval(cfg)["results"]
    b = run_eval(cfg)["results"]
    a.pop("elapsed_sec")
    b.pop("elapsed_sec")
    assert a == b


def test_summarize_counts():
    recs = [
        MatchRecord(seed=1, winner_seat=0, stalemate=False, opener_seat=0, turns=10, final_stock=4, winner_score=0),
        MatchRecord(seed=2, winner_seat=1, stalemate=True, opener_seat=0, turns=20, final_stock=0, winner_score=6),
        MatchRecord(seed=3, winner_seat=1, stalemate=False, opener_seat=-1, turns=30, final_stock=2, winner_score=0),
    ]
    res = summarize(recs, 2)
    assert res["wins_by_seat"] == [1, 2]
    assert res["stalemates"] == 1
    assert res["no_opener"] == 1
    assert res["opener_win_rate"] == 0.5
    assert res["turns_median"] == 20.0
    assert res["final_stock_mean"] == 2.0
    assert res["stalemate_winner_score_mean"] == 6.0


def test_summarize_empty():
    assert summarize([], 2) == {"matches": 0}


def test_small_batch_skips_the_pool(monkeypatch):
    def _boom(*_a, **_k):
        raise AssertionError("pool should not be used")

    monkeypatch.setattr(evaluate.mp, "get_context", _boom)
    rep = evaluate.run_eval_parallel(EvalConfig(matches=3), jobs=4, progress_every=0)
    assert rep["results"]["matches"] == 3


def test_main_prints_json(capsys):
    evaluate.main(["--matches", "3", "--players", "x", "y", "--seed", "5"])
    first = capsys.readouterr().out.splitlines()[0]
    rep = json.loads(first)
    assert rep["results"]["matches"] == 3


def test_bad_players_rejected():
    with pytest.raises(ValueError):
        run_eval(EvalConfig(matches=1, players=["solo"]))
