import pytest

from engine import DOUBLE_BLANK_PENALTY, Domino, hand_score, lowest_score_player, resolve_opener, tile_score

P = ["ann", "ben", "cat"]


def test_double_six_always_opens():
    hands = {
        "ann": [Domino(5, 5), Domino(4, 4)],
        "ben": [Domino(1, 2), Domino(6, 6)],
        "cat": [Domino(3, 3)],
    }
    assert resolve_opener(P, hands) == (1, Domino(6, 6))


def test_highest_double_without_double_six():
    hands = {
        "ann": [Domino(2, 2), Domino(6, 5)],
        "ben": [Domino(1, 3)],
        "cat": [Domino(4, 4), Domino(0, 0)],
    }
    idx, tile = resolve_opener(P, hands)
    assert (idx, tile) == (2, Domino(4, 4))


def test_double_blank_does_not_count_as_a_double():
    hands = {
        "ann": [Domino(0, 0), Domino(1, 5)],
        "ben": [Domino(2, 6), Domino(0, 6)],
        "cat": [],
    }
    assert resolve_opener(P, hands) == (1, Domino(2, 6))


def test_highest_tile_skips_tiles_with_a_blank():
    hands = {"ann": [Domino(0, 6), Domino(1, 3)], "ben": [Domino(0, 5)], "cat": []}
    assert resolve_opener(P, hands) == (0, Domino(1, 3))


def test_highest_tile_tie_goes_to_first_seat():
    hands = {"ann": [Domino(1, 6)], "ben": [Domino(2, 6)], "cat": [Domino(6, 3)]}
    assert resolve_opener(P, hands) == (0, Domino(1, 6))


def test_no_opener():
    hands = {"ann": [Domino(0, 0)], "ben": [Domino(0, 3)], "cat": []}
    assert resolve_opener(P, hands) is None


def test_scorer_examples():
    assert hand_score([Domino(0, 0), Domino(3, 4)]) == 32
    assert hand_score([Domino(1, 2), Domino(5, 5)]) == 13
    assert hand_score([]) == 0
    assert tile_score(Domino(0, 0)) == DOUBLE_BLANK_PENALTY
    assert tile_score(Domino(6, 6)) == 12


def test_lowest_score_wins_blocked_game():
    hands = {"ann": [Domino(4, 6)], "ben": [Domino(1, 3)]}
    winner, scores = lowest_score_player(["ann", "ben"], hands)
    assert winner == "ben"
    assert scores == {"ann": 10, "ben": 4}


def test_lowest_score_tie_goes_to_first_seat():
    hands = {"ann": [Domino(2, 3)], "ben": [Domino(1, 4)], "cat": [Domino(6, 6)]}
    winner, _ = lowest_score_player(P, hands)
    assert winner == "ann"


def test_double_blank_penalty_decides_blocked_game():
    hands = {"ann": [Domino(0, 0)], "ben": [Domino(6, 5), Domino(4, 4)]}
    winner, scores = lowest_score_player(["ann", "ben"], hands)
    assert scores["ann"] == 25 and scores["ben"] == 19
    assert winner == "ben"


def test_lowest_score_needs_players():
    with pytest.raises(ValueError):
        lowest_score_player([], {})
