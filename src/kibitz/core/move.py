"""Move value object."""

from __future__ import annotations

from dataclasses import dataclass

from kibitz.core.enums import CastlingSide, PieceType
from kibitz.core.piece import Piece, piece_type_letter
from kibitz.core.types import Square, rank_of, square_name


@dataclass(frozen=True, slots=True)
class Move:
    """Description of a single ply.

    A move records what it does (the moving piece, what it captures, how it
    promotes or castles) but holds no reference to the position it was
    generated from.
    """

    from_sq: Square
    to_sq: Square
    piece: Piece
    captured: Piece | None = None
    promotion: PieceType | None = None
    castling: CastlingSide | None = None
    en_passant: bool = False

    # ── Display ──────────────────────────────────────────────────────────

    def __str__(self) -> str:
        return self.uci

    @property
    def uci(self) -> str:
        """Compact coordinate notation, e.g. ``e2e4`` or ``e7e8q``."""
        base = f"{square_name(self.from_sq)}{square_name(self.to_sq)}"
        if self.promotion is not None:
            base += piece_type_letter(self.promotion)
        return base

    # ── Classification ───────────────────────────────────────────────────

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_double_pawn_push(self) -> bool:
        return (
            self.piece.piece_type == PieceType.PAWN
            and abs(rank_of(self.to_sq) - rank_of(self.from_sq)) == 2
        )
