"""High-level chess rules: check, checkmate, stalemate."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kibitz.core.enums import GameStatus
from kibitz.core.move_generator import MoveGenerator

if TYPE_CHECKING:
    from kibitz.core.position import Position
    from kibitz.core.types import Square


class Rules:
    """Static rule-checker that operates on a :class:`Position`.

    Draws by repetition, the fifty-move rule or insufficient material are
    left to the caller; ``Position.halfmove_clock`` is kept up to date for
    that purpose.
    """

    @staticmethod
    def is_in_check(position: Position) -> bool:
        gen = MoveGenerator(position)
        return gen.is_in_check(position.side_to_move)

    @staticmethod
    def has_legal_moves(position: Position) -> bool:
        return MoveGenerator(position).has_legal_move()

    @staticmethod
    def is_checkmate(position: Position) -> bool:
        return Rules.is_in_check(position) and not Rules.has_legal_moves(position)

    @staticmethod
    def is_stalemate(position: Position) -> bool:
        return not Rules.is_in_check(position) and not Rules.has_legal_moves(position)

    @staticmethod
    def status(position: Position) -> GameStatus:
        """Classify *position* for the side to move."""
        gen = MoveGenerator(position)
        in_check = gen.is_in_check(position.side_to_move)
        if gen.has_legal_move():
            return GameStatus.CHECK if in_check else GameStatus.ONGOING
        return GameStatus.CHECKMATE if in_check else GameStatus.STALEMATE

    @staticmethod
    def checked_king_square(position: Position) -> Square | None:
        """King square to highlight when the side to move is in check."""
        if not Rules.is_in_check(position):
            return None
        return position.board.king_square(position.side_to_move)
