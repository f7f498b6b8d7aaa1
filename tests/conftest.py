from __future__ import annotations

from typing import Any, List, MutableSequence, Optional, Sequence

import pytest

from engine import ALL_TILES, Domino, GameState


class ScriptedRandom:
    """
    Deterministic stand-in for random.Random.
    shuffle keeps order; randrange/choice consume `picks` (index, wrapped to the
    range) and fall back to 0 once the script runs out.
    """

    def __init__(self, picks: Optional[List[int]] = None) -> None:
        self.picks = list(picks or [])
        self.calls: List[str] = []

    def _next(self, n: int) -> int:
        if n <= 0:
            raise ValueError("empty range")
        if self.picks:
            return self.picks.pop(0) % n
        return 0

    def shuffle(self, x: MutableSequence[Any]) -> None:
        self.calls.append("shuffle")

    def randrange(self, stop: int) -> int:
        self.calls.append("randrange")
        return self._next(stop)

    def choice(self, seq: Sequence[Any]) -> Any:
        self.calls.append("choice")
        return seq[self._next(len(seq))]


def rest_of_set(*held: List[Domino]) -> List[Domino]:
    taken = {t for hand in held for t in hand}
    return [t for t in ALL_TILES if t not in taken]


def blocked_state(hands: dict, ends=(3, 3)) -> GameState:
    """Mid-game position with an empty stock; conservation is not meaningful here."""
    st = GameState(players=list(hands))
    for p, hand in hands.items():
        st.hands[p] = list(hand)
    st.stock = []
    st.chain.left_end, st.chain.right_end = ends
    st.dealt = True
    return st


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def first_pick():
    return ScriptedRandom()
