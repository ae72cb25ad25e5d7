"""Data models produced by engine analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, auto

from kibitz.core.enums import Color
from kibitz.core.move import Move


class AdapterState(IntEnum):
    """Lifecycle of an :class:`~kibitz.analysis.adapter.AnalysisAdapter`."""

    UNINITIALIZED = auto()
    HANDSHAKING = auto()
    READY = auto()
    SEARCHING = auto()
    STOPPED = auto()  # terminal


@dataclass(slots=True, frozen=True)
class Score:
    """Engine score: centipawns or a mate distance, never both.

    Mate distances are signed; ``mate=-2`` means the side the score is
    relative to gets mated in two.
    """

    cp: int | None = None
    mate: int | None = None

    def __post_init__(self) -> None:
        if (self.cp is None) == (self.mate is None):
            raise ValueError("Score needs exactly one of cp or mate")

    @property
    def is_mate(self) -> bool:
        return self.mate is not None

    def __neg__(self) -> Score:
        if self.mate is not None:
            return Score(mate=-self.mate)
        assert self.cp is not None
        return Score(cp=-self.cp)

    def from_perspective(self, turn: Color, viewer: Color) -> Score:
        """Re-express a score relative to *turn* as seen by *viewer*."""
        return self if turn == viewer else -self

    def __str__(self) -> str:
        if self.mate is not None:
            return f"#{self.mate}"
        assert self.cp is not None
        return f"{self.cp / 100:+.2f}"


@dataclass(slots=True, frozen=True)
class InfoReport:
    """Fields of one ``info`` progress line. Every field is optional."""

    depth: int | None = None
    seldepth: int | None = None
    multipv: int = 1
    score: Score | None = None
    bound: str | None = None  # "lowerbound" / "upperbound"
    nodes: int | None = None
    nps: int | None = None
    time_ms: int | None = None
    pv: tuple[str, ...] = ()
    string: str | None = None

    @property
    def is_complete(self) -> bool:
        """Whether the report carries depth, score, a move list and a valid rank."""
        return (
            self.depth is not None
            and self.score is not None
            and bool(self.pv)
            and self.multipv >= 1
        )


@dataclass(slots=True, frozen=True)
class EvaluationLine:
    """One ranked variation of the current analysis, ready for display."""

    rank: int
    depth: int
    score: Score  # relative to ``turn``
    turn: Color
    pv: tuple[Move, ...]
    san: tuple[str, ...]
    seldepth: int | None = None
    nodes: int | None = None

    @property
    def best_move(self) -> Move:
        return self.pv[0]

    @property
    def best_san(self) -> str:
        return self.san[0]

    @property
    def white_score(self) -> Score:
        """The score with White-positive sign convention."""
        return self.score.from_perspective(self.turn, Color.WHITE)
