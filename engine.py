# FILE: engine.py | version: 2026-10-19.v1
# (double-six block/draw game: chain ends, hand/stock registry, opener rule, stalemate scoring)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, MutableSequence, Optional, Protocol, Sequence, Tuple, TypeVar
from datetime import datetime

EndName = Literal["left", "right", "both"]
EventType = Literal["deal", "open", "no_opener", "play", "draw", "pass", "turn", "stalemate", "win"]
EndReason = Literal["domino", "stalemate"]

MAX_PIP = 6
DOUBLE_BLANK_PENALTY = 25
MIN_PLAYERS = 2
MAX_PLAYERS = 4

T = TypeVar("T")


class IllegalPlay(ValueError):
    """Tile not held by the player, or not matching an open end. Nothing was mutated."""


class EmptyStock(LookupError):
    """Draw requested from an empty stock."""


class RandomSource(Protocol):
    """The only nondeterminism in a match. random.Random satisfies it."""

    def shuffle(self, x: MutableSequence[Any]) -> None: ...

    def randrange(self, stop: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...


def now_ts() -> str:
    return datetime.now().isoformat(timespec="seconds")


# =============================================================================
# Tiles
# =============================================================================

@dataclass(frozen=True, eq=False)
class Domino:
    """
    A double-six tile. Orientation is kept for display and for the chain update
    order, but two tiles with the same pips in either order are the same tile.
    """

    left: int
    right: int

    def __post_init__(self) -> None:
        if not (0 <= self.left <= MAX_PIP and 0 <= self.right <= MAX_PIP):
            raise ValueError(f"Tile out of range: {self.left}-{self.right}")

    def key(self) -> Tuple[int, int]:
        return (min(self.left, self.right), max(self.left, self.right))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Domino):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def __str__(self) -> str:
        return f"[ {self.left} | {self.right} ]"


def parse_tile(s: str) -> Domino:
    s = (s or "").strip().replace("[", "").replace("]", "").replace(" ", "")
    s = s.replace("|", "-").replace(",", "-")
    if "-" in s:
        a, b = s.split("-", 1)
        return Domino(int(a), int(b))
    if len(s) == 2 and s.isdigit():
        return Domino(int(s[0]), int(s[1]))
    raise ValueError(f"Cannot parse tile: {s}")


def tile_str(t: Domino) -> str:
    return f"{t.left}-{t.right}"


def is_double(t: Domino) -> bool:
    return t.left == t.right


def has_pip(t: Domino, v: int) -> bool:
    return t.left == v or t.right == v


def pip_count(t: Domino) -> int:
    return t.left + t.right


def all_tiles() -> List[Domino]:
    out: List[Domino] = []
    for i in range(MAX_PIP + 1):
        for j in range(i, MAX_PIP + 1):
            out.append(Domino(i, j))
    return out


ALL_TILES: List[Domino] = all_tiles()
ALL_SET = frozenset(ALL_TILES)
DOUBLE_SIX = Domino(6, 6)
DOUBLE_BLANK = Domino(0, 0)


def hand_size_for(player_count: int) -> int:
    return 7 if int(player_count) == 2 else 5


# =============================================================================
# Scoring
# =============================================================================

def tile_score(t: Domino) -> int:
    if t == DOUBLE_BLANK:
        return DOUBLE_BLANK_PENALTY
    return pip_count(t)


def hand_score(hand: Iterable[Domino]) -> int:
    """Pip value of a hand for the blocked-game tiebreak; the double blank counts 25."""
    return int(sum(tile_score(t) for t in hand))


def lowest_score_player(players: Sequence[str], hands: Dict[str, List[Domino]]) -> Tuple[str, Dict[str, int]]:
    """
    Winner of a blocked game: lowest hand score, first in seating order on ties.
    Returns (winner, scores_by_player).
    """
    if not players:
        raise ValueError("No players to score")
    scores = {p: hand_score(hands.get(p, [])) for p in players}
    winner = min(players, key=lambda p: scores[p])
    return winner, scores


# =============================================================================
# Opener rule
# =============================================================================

def resolve_opener(players: Sequence[str], hands: Dict[str, List[Domino]]) -> Optional[Tuple[int, Domino]]:
    """
    Pick the opening tile and the seat holding it, over the union of dealt hands:
      1. the double six;
      2. else the highest double, not counting the double blank;
      3. else the tile with the highest pip among tiles carrying no blank.
    Ties go to the first tile found walking seats in order.
    Returns None when nothing qualifies (then nobody is forced to open).
    """
    pool: List[Tuple[int, Domino]] = []
    for idx, p in enumerate(players):
        for t in hands.get(p, []):
            pool.append((idx, t))

    for idx, t in pool:
        if t == DOUBLE_SIX:
            return idx, t

    doubles = [(idx, t) for idx, t in pool if is_double(t) and t.left != 0]
    if doubles:
        return max(doubles, key=lambda it: it[1].left)

    no_blank = [(idx, t) for idx, t in pool if t.left != 0 and t.right != 0]
    if no_blank:
        return max(no_blank, key=lambda it: max(it[1].left, it[1].right))

    return None


# =============================================================================
# Chain (board)
# =============================================================================

@dataclass
class Chain:
    """
    The line of play reduced to its two open end values.
    Ends are None until the first tile lands.
    """

    left_end: Optional[int] = None
    right_end: Optional[int] = None
    played_order: List[Domino] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self.left_end is None or self.right_end is None

    def open_ends(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.left_end, self.right_end)

    def is_playable(self, t: Domino) -> bool:
        if self.is_empty():
            return True
        return (
            t.left == self.left_end or t.left == self.right_end
            or t.right == self.left_end or t.right == self.right_end
        )

    def play(self, t: Domino) -> EndName:
        """
        Attach t and return which end moved. Matching order matters when a tile
        fits both ends: the first rule that applies wins.
        """
        if self.is_empty():
            self.left_end = t.left
            self.right_end = t.right
            self.played_order.append(t)
            return "both"

        if t.left == self.right_end:
            self.right_end = t.right
            moved: EndName = "right"
        elif t.right == self.left_end:
            self.left_end = t.left
            moved = "left"
        elif t.left == self.left_end:
            self.left_end = t.right
            moved = "left"
        elif t.right == self.right_end:
            self.right_end = t.left
            moved = "right"
        else:
            raise IllegalPlay(f"Illegal: {tile_str(t)} does not match ends ({self.left_end};{self.right_end})")

        self.played_order.append(t)
        return moved

    def snapshot(self) -> Dict[str, Any]:
        return {
            "left_end": self.left_end,
            "right_end": self.right_end,
            "played_order": [tile_str(t) for t in self.played_order],
        }

    @classmethod
    def from_snapshot(cls, d: Dict[str, Any]) -> "Chain":
        c = cls()
        c.left_end = d.get("left_end")
        c.right_end = d.get("right_end")
        c.played_order = [parse_tile(s) for s in (d.get("played_order") or [])]
        return c

    def clone(self) -> "Chain":
        return Chain(self.left_end, self.right_end, list(self.played_order))


# =============================================================================
# Events
# =============================================================================

@dataclass
class GameEvent:
    type: EventType
    ts: str = field(default_factory=now_ts)
    ply: int = 0
    player: Optional[str] = None
    tile: Optional[str] = None
    end: Optional[EndName] = None
    open_ends: List[Optional[int]] = field(default_factory=list)
    stock_count: int = 0
    hand_count: int = 0
    next_player: Optional[str] = None

    winner: Optional[str] = None
    scores: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "ts": self.ts,
            "ply": self.ply,
            "player": self.player,
            "tile": self.tile,
            "end": self.end,
            "open_ends": list(self.open_ends),
            "stock_count": int(self.stock_count),
            "hand_count": int(self.hand_count),
            "next_player": self.next_player,
            "winner": self.winner,
            "scores": dict(self.scores),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GameEvent":
        return cls(
            type=d["type"],
            ts=d.get("ts", now_ts()),
            ply=int(d.get("ply", 0)),
            player=d.get("player"),
            tile=d.get("tile"),
            end=d.get("end"),
            open_ends=list(d.get("open_ends", [])),
            stock_count=int(d.get("stock_count", 0)),
            hand_count=int(d.get("hand_count", 0)),
            next_player=d.get("next_player"),
            winner=d.get("winner"),
            scores={k: int(v) for k, v in (d.get("scores") or {}).items()},
        )


# =============================================================================
# Hand / stock registry
# =============================================================================

@dataclass
class GameState:
    """
    Owns every tile location for one match: each player's hand, the stock and
    the chain. A tile is in exactly one of them at any time.
    """

    players: List[str] = field(default_factory=list)
    hands: Dict[str, List[Domino]] = field(default_factory=dict)
    stock: List[Domino] = field(default_factory=list)
    chain: Chain = field(default_factory=Chain)

    current_index: int = 0
    dealt: bool = False
    opener: Optional[Tuple[int, Domino]] = None

    game_over: bool = False
    winner: Optional[str] = None
    end_reason: Optional[EndReason] = None
    final_scores: Dict[str, int] = field(default_factory=dict)

    events: List[GameEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        names = [str(p) for p in self.players]
        if not (MIN_PLAYERS <= len(names) <= MAX_PLAYERS):
            raise ValueError(f"Need {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(names)}")
        if any(not n.strip() for n in names):
            raise ValueError("Player names must be non-empty")
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate player name in {names}")
        self.players = names
        for p in self.players:
            self.hands.setdefault(p, [])

    def ply(self) -> int:
        return len(self.events)

    # ---- read access ----

    def current_player(self) -> str:
        return self.players[self.current_index]

    def next_index(self) -> int:
        return (self.current_index + 1) % len(self.players)

    def hand_of(self, player: str) -> List[Domino]:
        return list(self._hand(player))

    def stock_count(self) -> int:
        return len(self.stock)

    def playable_tiles(self, player: str) -> List[Domino]:
        return [t for t in self._hand(player) if self.chain.is_playable(t)]

    def _hand(self, player: str) -> List[Domino]:
        if player not in self.hands:
            raise ValueError(f"Unknown player: {player}")
        return self.hands[player]

    # ---- invariants ----

    def check_conservation(self) -> None:
        seen: List[Domino] = []
        for p in self.players:
            seen.extend(self.hands[p])
        seen.extend(self.stock)
        seen.extend(self.chain.played_order)
        if len(seen) != len(ALL_TILES):
            raise RuntimeError(f"Invariant broken: {len(seen)} != {len(ALL_TILES)}")
        if len(set(seen)) != len(seen):
            raise RuntimeError("Invariant broken: tile in two places")
        if set(seen) != ALL_SET:
            raise RuntimeError("Invariant broken: tile set differs from double-six set")

    # ---- setup ----

    def deal(self, rng: RandomSource) -> GameEvent:
        if self.dealt:
            raise ValueError("Tiles already dealt")
        tiles = list(ALL_TILES)
        rng.shuffle(tiles)

        size = hand_size_for(len(self.players))
        for p in self.players:
            self.hands[p] = tiles[:size]
            del tiles[:size]
        self.stock = tiles
        return self._after_deal()

    def deal_from(self, hands: Dict[str, List[Domino]], stock: List[Domino]) -> GameEvent:
        """Place an explicit arrangement instead of shuffling."""
        if self.dealt:
            raise ValueError("Tiles already dealt")
        if set(hands) != set(self.players):
            raise ValueError(f"Hands given for {sorted(hands)}, players are {self.players}")
        placed = [t for p in self.players for t in hands[p]] + list(stock)
        if len(placed) != len(ALL_TILES) or set(placed) != ALL_SET:
            raise ValueError("Arrangement must place each of the 28 tiles exactly once")

        for p in self.players:
            self.hands[p] = list(hands[p])
        self.stock = list(stock)
        return self._after_deal()

    def _after_deal(self) -> GameEvent:
        self.dealt = True
        self.chain = Chain()
        ev = GameEvent(
            type="deal",
            ply=self.ply(),
            stock_count=self.stock_count(),
            open_ends=list(self.chain.open_ends()),
            next_player=self.current_player(),
        )
        self.events.append(ev)
        return ev

    # ---- core actions ----

    def draw(self, player: str, rng: RandomSource) -> Tuple[Domino, GameEvent]:
        hand = self._hand(player)
        if not self.stock:
            raise EmptyStock("Stock is empty")

        t = self.stock.pop(rng.randrange(len(self.stock)))
        hand.append(t)

        ev = GameEvent(
            type="draw",
            ply=self.ply(),
            player=player,
            tile=tile_str(t),
            open_ends=list(self.chain.open_ends()),
            stock_count=self.stock_count(),
            hand_count=len(hand),
        )
        self.events.append(ev)
        return t, ev

    def play_tile(self, player: str, t: Domino) -> GameEvent:
        if self.game_over:
            raise IllegalPlay(f"Game is over ({self.end_reason})")
        hand = self._hand(player)
        if t not in hand:
            raise IllegalPlay(f"{player} doesn't have tile: {tile_str(t)}")
        if not self.chain.is_playable(t):
            raise IllegalPlay(
                f"Illegal: {tile_str(t)} cannot go on ({self.chain.left_end};{self.chain.right_end})"
            )

        # Take the held instance so orientation comes from the hand, not the caller.
        held = hand[hand.index(t)]
        end = self.chain.play(held)
        hand.remove(held)

        ev = GameEvent(
            type="play",
            ply=self.ply(),
            player=player,
            tile=tile_str(held),
            end=end,
            open_ends=list(self.chain.open_ends()),
            stock_count=self.stock_count(),
            hand_count=len(hand),
        )
        self.events.append(ev)
        return ev

    def record_pass(self, player: str) -> GameEvent:
        ev = GameEvent(
            type="pass",
            ply=self.ply(),
            player=player,
            open_ends=list(self.chain.open_ends()),
            stock_count=self.stock_count(),
            hand_count=len(self._hand(player)),
        )
        self.events.append(ev)
        return ev

    def advance(self) -> GameEvent:
        self.current_index = self.next_index()
        ev = GameEvent(
            type="turn",
            ply=self.ply(),
            next_player=self.current_player(),
            open_ends=list(self.chain.open_ends()),
            stock_count=self.stock_count(),
        )
        self.events.append(ev)
        return ev

    # ---- game end ----

    def declare_domino(self, player: str) -> GameEvent:
        """player emptied their hand."""
        if self._hand(player):
            raise ValueError(f"{player} still holds {len(self.hands[player])} tiles")
        self.final_scores = {p: hand_score(self.hands[p]) for p in self.players}
        return self._finalize(player, "domino")

    def declare_stalemate(self) -> GameEvent:
        if self.stock:
            raise ValueError("Cannot declare stalemate while stock is not empty")
        winner, scores = lowest_score_player(self.players, self.hands)
        self.final_scores = scores
        ev = GameEvent(
            type="stalemate",
            ply=self.ply(),
            open_ends=list(self.chain.open_ends()),
            winner=winner,
            scores=dict(scores),
        )
        self.events.append(ev)
        self._finalize(winner, "stalemate")
        return ev

    def _finalize(self, winner: str, reason: EndReason) -> GameEvent:
        self.game_over = True
        self.winner = winner
        self.end_reason = reason
        ev = GameEvent(
            type="win",
            ply=self.ply(),
            player=winner,
            winner=winner,
            open_ends=list(self.chain.open_ends()),
            stock_count=self.stock_count(),
            scores=dict(self.final_scores),
        )
        self.events.append(ev)
        return ev

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meta": {
                "players": list(self.players),
                "current_player": self.current_player(),
                "stock_count": self.stock_count(),
                "opener": (
                    {"player": self.players[self.opener[0]], "tile": tile_str(self.opener[1])}
                    if self.opener is not None else None
                ),
                "game_over": bool(self.game_over),
                "winner": self.winner,
                "end_reason": self.end_reason,
                "final_scores": dict(self.final_scores),
            },
            "chain": self.chain.snapshot(),
            "hands": {p: [tile_str(t) for t in self.hands[p]] for p in self.players},
            "stock": [tile_str(t) for t in self.stock],
            "events": [e.to_dict() for e in self.events],
        }
