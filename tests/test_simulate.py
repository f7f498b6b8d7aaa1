import simulate
from turns import TurnEngine


def test_play_match_returns_finished_engine():
    seen = []
    eng = simulate.play_match(["Ann", "Ben", "Cy"], seed=11, observers=[seen.append])
    assert isinstance(eng, TurnEngine)
    assert eng.is_over()
    assert eng.winner in ("Ann", "Ben", "Cy")
    assert seen[0].type == "deal"
    assert seen[-1].type == "win"


def test_main_narrates_and_reports(capsys):
    simulate.main(["--players", "Ann", "Ben", "--seed", "3"])
    out = capsys.readouterr().out
    assert "======= Game State =======" in out
    assert "starts the game with domino" in out
    assert "[sim] winner=" in out


def test_main_quiet(capsys, tmp_path):
    p = tmp_path / "t.json"
    simulate.main(["--seed", "3", "--quiet", "--dump_json", str(p)])
    out = capsys.readouterr().out
    assert "Game State" not in out
    assert out.startswith("[sim] winner=")
    assert p.exists()
