"""Piece value object."""

from __future__ import annotations

from dataclasses import dataclass

from kibitz.core.enums import Color, PieceType

_LETTERS: dict[PieceType, str] = {
    PieceType.PAWN: "p",
    PieceType.KNIGHT: "n",
    PieceType.BISHOP: "b",
    PieceType.ROOK: "r",
    PieceType.QUEEN: "q",
    PieceType.KING: "k",
}
_LETTER_TYPES: dict[str, PieceType] = {v: k for k, v in _LETTERS.items()}

# Glyphs are laid out white-first in code point order, pawn last.
_GLYPHS: dict[Color, str] = {Color.WHITE: "♔♕♖♗♘♙", Color.BLACK: "♚♛♜♝♞♟"}
_GLYPH_ORDER = (
    PieceType.KING,
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.PAWN,
)


def piece_type_letter(piece_type: PieceType) -> str:
    """Lowercase letter for *piece_type*, as used by FEN and UCI promotions."""
    return _LETTERS[piece_type]


def piece_type_from_letter(letter: str) -> PieceType:
    """Inverse of :func:`piece_type_letter` (case-insensitive)."""
    try:
        return _LETTER_TYPES[letter.lower()]
    except KeyError:
        raise ValueError(f"Invalid piece letter: {letter!r}") from None


@dataclass(frozen=True, slots=True)
class Piece:
    """Immutable value object representing a chess piece.

    Promotion replaces the pawn with a new :class:`Piece`; pieces are never
    mutated in place.
    """

    color: Color
    piece_type: PieceType

    def __str__(self) -> str:
        """FEN character (uppercase = white, lowercase = black)."""
        letter = _LETTERS[self.piece_type]
        return letter.upper() if self.color == Color.WHITE else letter

    @classmethod
    def from_char(cls, char: str) -> Piece:
        """Create piece from FEN character, e.g. 'N' → white knight."""
        if len(char) != 1 or char.lower() not in _LETTER_TYPES:
            raise ValueError(f"Invalid piece character: {char!r}")
        color = Color.WHITE if char.isupper() else Color.BLACK
        return cls(color, _LETTER_TYPES[char.lower()])

    @property
    def symbol(self) -> str:
        """Unicode chess symbol, e.g. ♞."""
        return _GLYPHS[self.color][_GLYPH_ORDER.index(self.piece_type)]
