"""GameController — the board-facing entry point of a game session.

Wraps a :class:`Timeline` and answers the questions a board widget asks:
which squares a piece may go to, what happens when a move is dropped,
whether the side to move is in check. Listeners subscribe through plain
callback lists; an optional :class:`AnalysisAdapter` is re-armed with every
new current position.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kibitz.analysis.models import AdapterState, EvaluationLine
from kibitz.core.enums import GameStatus, PieceType
from kibitz.core.move_generator import find_move, legal_moves
from kibitz.core.notation import move_to_san, position_to_fen
from kibitz.core.rules import Rules
from kibitz.game.timeline import Timeline

if TYPE_CHECKING:
    from kibitz.analysis.adapter import AnalysisAdapter
    from kibitz.core.move import Move
    from kibitz.core.position import Position
    from kibitz.core.types import Square

_LOGGER = logging.getLogger(__name__)

# ── Event definitions ────────────────────────────────────────────────────────

PositionCallback = Callable[["Position"], None]
MoveCallback = Callable[["Move", str], None]  # move, san
AnalysisCallback = Callable[[list[EvaluationLine]], None]


@dataclass
class GameEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_position_changed: list[PositionCallback] = field(default_factory=list)
    on_move: list[MoveCallback] = field(default_factory=list)
    on_analysis: list[AnalysisCallback] = field(default_factory=list)


# ── Controller ───────────────────────────────────────────────────────────────


class GameController:
    """Single-threaded façade over a timeline and an optional analysis.

    Analysis updates reach ``events.on_analysis`` on whatever thread the
    adapter's transport delivers output on.
    """

    __slots__ = ("_timeline", "_adapter", "events")

    def __init__(self, fen: str | None = None) -> None:
        self._timeline = Timeline(fen)
        self._adapter: AnalysisAdapter | None = None
        self.events = GameEvents()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    @property
    def position(self) -> Position:
        return self._timeline.position

    @property
    def fen(self) -> str:
        return position_to_fen(self._timeline.position)

    @property
    def adapter(self) -> AnalysisAdapter | None:
        return self._adapter

    # ── Board boundary ───────────────────────────────────────────────────

    def legal_moves(self, square: Square) -> set[Square]:
        """Destinations the piece on *square* may legally move to."""
        return legal_moves(self._timeline.position, square)

    def apply_move(
        self,
        from_sq: Square,
        to_sq: Square,
        promotion: PieceType | None = None,
    ) -> Position:
        """Play the move between two squares at the cursor.

        Promotion defaults to a queen. Raises
        :class:`~kibitz.core.errors.IllegalMoveError` and leaves the game
        unchanged if no such legal move exists.
        """
        before = self._timeline.position
        move = find_move(before, from_sq, to_sq, promotion)
        san = move_to_san(before, move)
        position = self._timeline.push(move)
        _LOGGER.debug("Played %s", san)
        for cb in self.events.on_move:
            cb(move, san)
        self._position_changed()
        return position

    def is_check(self) -> bool:
        return Rules.is_in_check(self._timeline.position)

    def is_checkmate(self) -> bool:
        return Rules.is_checkmate(self._timeline.position)

    def is_stalemate(self) -> bool:
        return Rules.is_stalemate(self._timeline.position)

    def status(self) -> GameStatus:
        return Rules.status(self._timeline.position)

    def checked_king_square(self) -> Square | None:
        return Rules.checked_king_square(self._timeline.position)

    # ── Navigation ───────────────────────────────────────────────────────

    def go_to(self, index: int) -> Position:
        position = self._timeline.go_to(index)
        self._position_changed()
        return position

    def first(self) -> Position:
        return self.go_to(0)

    def previous(self) -> Position:
        return self.go_to(max(0, self._timeline.cursor - 1))

    def next(self) -> Position:
        return self.go_to(min(len(self._timeline), self._timeline.cursor + 1))

    def last(self) -> Position:
        return self.go_to(len(self._timeline))

    def new_game(self, fen: str | None = None) -> Position:
        """Discard the history and start from *fen* (standard start if omitted)."""
        position = self._timeline.reset(fen)
        _LOGGER.info("New game from %s", self._timeline.start_fen)
        self._position_changed()
        return position

    # ── Analysis ─────────────────────────────────────────────────────────

    def enable_analysis(self, adapter: AnalysisAdapter) -> None:
        """Attach *adapter*, starting it if needed, and analyse the current position."""
        if self._adapter is not None and self._adapter is not adapter:
            self._adapter.quit()
        self._adapter = adapter
        if adapter.state == AdapterState.UNINITIALIZED:
            adapter.start()
        self._request_analysis()

    def disable_analysis(self) -> None:
        adapter, self._adapter = self._adapter, None
        if adapter is not None:
            adapter.quit()

    # ── Internals ────────────────────────────────────────────────────────

    def _position_changed(self) -> None:
        position = self._timeline.position
        for cb in self.events.on_position_changed:
            cb(position)
        self._request_analysis()

    def _request_analysis(self) -> None:
        adapter = self._adapter
        if adapter is None or adapter.state == AdapterState.STOPPED:
            return
        adapter.analyze(self._timeline.position, self._emit_analysis)

    def _emit_analysis(self, lines: list[EvaluationLine]) -> None:
        for cb in self.events.on_analysis:
            cb(lines)
