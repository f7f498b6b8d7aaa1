# FILE: turns.py | version: 2026-10-19.v1
# Turn state machine: play / draw-until-playable / pass / stalemate / win.
#
# Policy notes:
# - "all_blocked" (default): stalemate once every seat has passed in a row with
#   the stock empty. A seat only looks at its own hand during its turn.
# - "first_blocked": the first seat that starts its turn blocked with an empty
#   stock ends the game. Kept for replaying traces produced under that rule.

from __future__ import annotations

import os
from typing import Callable, List, Literal, Optional

from engine import (
    Domino,
    GameEvent,
    GameState,
    RandomSource,
    resolve_opener,
    tile_str,
)

StalematePolicy = Literal["all_blocked", "first_blocked"]
Phase = Literal["unstarted", "awaiting_play", "drawing", "stalemate", "terminal"]
Observer = Callable[[GameEvent], None]

STALEMATE_POLICIES = ("all_blocked", "first_blocked")

DEFAULT_POLICY: StalematePolicy = os.environ.get("DOMINO_STALEMATE_POLICY", "all_blocked").strip() or "all_blocked"  # type: ignore[assignment]
DEFAULT_MAX_TURNS = int(os.environ.get("DOMINO_MAX_TURNS", "1000"))


class TurnEngine:
    """Drives one match on a GameState it owns exclusively."""

    def __init__(
        self,
        state: GameState,
        rng: RandomSource,
        policy: StalematePolicy = DEFAULT_POLICY,
    ) -> None:
        if policy not in STALEMATE_POLICIES:
            raise ValueError(f"Unknown stalemate policy: {policy}")
        self.state = state
        self.rng = rng
        self.policy: StalematePolicy = policy
        self.phase: Phase = "unstarted"
        self.turns = 0
        self.consecutive_passes = 0
        self._observers: List[Observer] = []

    # ---- observers ----

    def subscribe(self, fn: Observer) -> None:
        self._observers.append(fn)

    def _emit(self, ev: GameEvent, out: List[GameEvent]) -> None:
        out.append(ev)
        for fn in self._observers:
            fn(ev)

    # ---- lifecycle ----

    @property
    def winner(self) -> Optional[str]:
        return self.state.winner

    def is_over(self) -> bool:
        return self.phase in ("stalemate", "terminal")

    def start(self) -> List[GameEvent]:
        """
        Deal (unless tiles were already placed), then force the opening tile
        for whoever holds it. Without an opener the chain stays empty and
        seat 0 moves first with a free choice.
        """
        if self.phase != "unstarted":
            raise RuntimeError(f"Match already started (phase={self.phase})")

        st = self.state
        out: List[GameEvent] = []

        if not st.dealt:
            self._emit(st.deal(self.rng), out)
        elif st.events and st.events[-1].type == "deal":
            self._emit(st.events[-1], out)

        st.opener = resolve_opener(st.players, st.hands)
        self.phase = "awaiting_play"

        if st.opener is None:
            st.current_index = 0
            ev = GameEvent(type="no_opener", ply=st.ply(), next_player=st.current_player(),
                           stock_count=st.stock_count())
            st.events.append(ev)
            self._emit(ev, out)
            return out

        idx, tile = st.opener
        st.current_index = idx
        player = st.current_player()
        ev = GameEvent(type="open", ply=st.ply(), player=player, tile=tile_str(tile),
                       stock_count=st.stock_count())
        st.events.append(ev)
        self._emit(ev, out)

        self._play(player, tile, out)
        if not self.is_over():
            self._emit(st.advance(), out)
        return out

    def step(self) -> List[GameEvent]:
        """Run the current seat's turn. Returns the events it produced."""
        if self.phase == "unstarted":
            raise RuntimeError("Match not started")
        if self.is_over():
            raise RuntimeError(f"Match is over (winner={self.state.winner})")

        st = self.state
        out: List[GameEvent] = []
        player = st.current_player()
        self.turns += 1

        playable = st.playable_tiles(player)
        if playable:
            self._play(player, self.rng.choice(playable), out)
        elif st.stock:
            self.phase = "drawing"
            while st.stock:
                t, ev = st.draw(player, self.rng)
                self._emit(ev, out)
                if st.chain.is_playable(t):
                    self.phase = "awaiting_play"
                    self._play(player, t, out)
                    break
            else:
                self.phase = "awaiting_play"
                self._pass(player, out)
        elif self.policy == "first_blocked":
            self._stalemate(out)
        else:
            self._pass(player, out)

        if self.is_over():
            return out

        if self.policy == "all_blocked" and not st.stock and self.consecutive_passes >= len(st.players):
            self._stalemate(out)
            return out

        self._emit(st.advance(), out)
        return out

    def run(self, max_turns: int = DEFAULT_MAX_TURNS) -> Optional[str]:
        if self.phase == "unstarted":
            self.start()
        while not self.is_over():
            if self.turns >= int(max_turns):
                raise RuntimeError(f"No result after {self.turns} turns")
            self.step()
        return self.state.winner

    # ---- internals ----

    def _play(self, player: str, t: Domino, out: List[GameEvent]) -> None:
        st = self.state
        self._emit(st.play_tile(player, t), out)
        self.consecutive_passes = 0
        if not st.hands[player]:
            self.phase = "terminal"
            self._emit(st.declare_domino(player), out)

    def _pass(self, player: str, out: List[GameEvent]) -> None:
        self._emit(self.state.record_pass(player), out)
        if not self.state.stock:
            self.consecutive_passes += 1
        else:
            self.consecutive_passes = 0

    def _stalemate(self, out: List[GameEvent]) -> None:
        st = self.state
        self.phase = "stalemate"
        self._emit(st.declare_stalemate(), out)
        # declare_stalemate also logs the closing "win" event
        self._emit(st.events[-1], out)
