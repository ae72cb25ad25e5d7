"""Position — complete game state (board + metadata) as a persistent value."""

from __future__ import annotations

from dataclasses import dataclass, field

from kibitz.core.board import Board
from kibitz.core.enums import CastlingRights, CastlingSide, Color, PieceType
from kibitz.core.move import Move
from kibitz.core.piece import Piece
from kibitz.core.types import Square, file_of, make_square, rank_of

_ROOK_CORNERS: dict[Square, CastlingRights] = {
    make_square(0, 0): CastlingRights.WHITE_QUEENSIDE,
    make_square(7, 0): CastlingRights.WHITE_KINGSIDE,
    make_square(0, 7): CastlingRights.BLACK_QUEENSIDE,
    make_square(7, 7): CastlingRights.BLACK_KINGSIDE,
}

# CastlingSide -> (rook file before, rook file after)
_ROOK_FILES: dict[CastlingSide, tuple[int, int]] = {
    CastlingSide.KINGSIDE: (7, 5),
    CastlingSide.QUEENSIDE: (0, 3),
}


def castling_rook_squares(color: Color, side: CastlingSide) -> tuple[Square, Square]:
    """``(from, to)`` squares of the rook when *color* castles on *side*."""
    rank = 0 if color == Color.WHITE else 7
    from_file, to_file = _ROOK_FILES[side]
    return make_square(from_file, rank), make_square(to_file, rank)


@dataclass(frozen=True, slots=True)
class Position:
    """Full chess position: board + side to move + castling + en passant + clocks.

    Positions are never modified. :meth:`after` produces the successor
    position for a move, which is what lets the move generator try moves
    speculatively without cloning or undoing anything.

    ``last_move`` is carried for display only and does not take part in
    equality: two positions reached by different moves compare equal.
    """

    board: Board = field(default_factory=Board.initial)
    side_to_move: Color = Color.WHITE
    castling: CastlingRights = CastlingRights.ALL
    en_passant: Square | None = None
    halfmove_clock: int = 0
    fullmove_number: int = 1
    last_move: Move | None = field(default=None, compare=False)

    @classmethod
    def initial(cls) -> Position:
        """The standard starting position."""
        return cls()

    # ── State transition ─────────────────────────────────────────────────

    def after(self, move: Move) -> Position:
        """The position reached by playing *move*, without legality checks.

        Callers wanting validation go through
        :func:`kibitz.core.move_generator.apply_move`.
        """
        piece = move.piece
        color = piece.color

        changes: dict[Square, Piece | None] = {move.from_sq: None}

        # En passant: the captured pawn sits beside the origin, not on the target
        if move.en_passant:
            changes[make_square(file_of(move.to_sq), rank_of(move.from_sq))] = None

        placed = piece if move.promotion is None else Piece(color, move.promotion)
        changes[move.to_sq] = placed

        if move.castling is not None:
            rook_from, rook_to = castling_rook_squares(color, move.castling)
            changes[rook_from] = None
            changes[rook_to] = self.board[rook_from]

        next_en_passant: Square | None = None
        if move.is_double_pawn_push:
            next_en_passant = make_square(
                file_of(move.from_sq),
                (rank_of(move.from_sq) + rank_of(move.to_sq)) // 2,
            )

        if piece.piece_type == PieceType.PAWN or move.captured is not None:
            halfmove_clock = 0
        else:
            halfmove_clock = self.halfmove_clock + 1

        fullmove_number = self.fullmove_number
        if color == Color.BLACK:
            fullmove_number += 1

        return Position(
            board=self.board.replace(changes),
            side_to_move=color.opposite,
            castling=self._castling_after(move),
            en_passant=next_en_passant,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
            last_move=move,
        )

    def _castling_after(self, move: Move) -> CastlingRights:
        rights = self.castling
        if move.piece.piece_type == PieceType.KING:
            if move.piece.color == Color.WHITE:
                rights &= ~CastlingRights.WHITE_BOTH
            else:
                rights &= ~CastlingRights.BLACK_BOTH

        # A rook leaving its corner, or being captured there.
        for sq in (move.from_sq, move.to_sq):
            corner_right = _ROOK_CORNERS.get(sq)
            if corner_right is not None:
                rights &= ~corner_right
        return rights

    # ── Utilities ────────────────────────────────────────────────────────

    def piece_at(self, sq: Square) -> Piece | None:
        return self.board[sq]

    def has_castling_right(self, color: Color, side: CastlingSide) -> bool:
        return bool(self.castling & CastlingRights.for_side(color, side))
