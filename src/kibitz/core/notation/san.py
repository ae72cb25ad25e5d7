"""SAN (Standard Algebraic Notation) conversion and parsing."""

from __future__ import annotations

from kibitz.core.enums import CastlingSide, PieceType
from kibitz.core.errors import IllegalMoveError
from kibitz.core.move import Move
from kibitz.core.move_generator import MoveGenerator
from kibitz.core.piece import Piece
from kibitz.core.position import Position
from kibitz.core.types import file_of, parse_square, rank_of, square_name

_SAN_PIECE: dict[PieceType, str] = {
    PieceType.KNIGHT: "N",
    PieceType.BISHOP: "B",
    PieceType.ROOK: "R",
    PieceType.QUEEN: "Q",
    PieceType.KING: "K",
}
_SAN_PIECE_REV: dict[str, PieceType] = {v: k for k, v in _SAN_PIECE.items()}


def _piece_label(piece_type: PieceType, move: Move, figurine: bool) -> str:
    if figurine:
        return Piece(move.piece.color, piece_type).symbol
    return _SAN_PIECE[piece_type]


def move_to_san(position: Position, move: Move, *, figurine: bool = False) -> str:
    """Convert a legal *move* to SAN given the *position* before the move.

    With *figurine* set, piece letters are replaced by the mover's unicode
    chess glyphs (``♘f3`` rather than ``Nf3``).
    """
    piece = move.piece

    if move.castling == CastlingSide.KINGSIDE:
        san = "O-O"
    elif move.castling == CastlingSide.QUEENSIDE:
        san = "O-O-O"
    else:
        san = ""
        if piece.piece_type == PieceType.PAWN:
            if move.is_capture:
                san += chr(ord("a") + file_of(move.from_sq))
        else:
            san += _piece_label(piece.piece_type, move, figurine)
            san += _disambiguation(position, move)

        if move.is_capture:
            san += "x"

        san += square_name(move.to_sq)

        if move.promotion is not None:
            san += "=" + _piece_label(move.promotion, move, figurine)

    # Check / checkmate suffix
    after = MoveGenerator(position.after(move))
    if after.is_in_check(piece.color.opposite):
        san += "+" if after.has_legal_move() else "#"

    return san


def _disambiguation(position: Position, move: Move) -> str:
    legal = MoveGenerator(position).generate_legal_moves()
    ambiguous = [
        m
        for m in legal
        if m.to_sq == move.to_sq
        and m.from_sq != move.from_sq
        and m.piece == move.piece
    ]
    if not ambiguous:
        return ""
    same_file = any(file_of(m.from_sq) == file_of(move.from_sq) for m in ambiguous)
    same_rank = any(rank_of(m.from_sq) == rank_of(move.from_sq) for m in ambiguous)
    if not same_file:
        return chr(ord("a") + file_of(move.from_sq))
    if not same_rank:
        return str(rank_of(move.from_sq) + 1)
    return square_name(move.from_sq)


def parse_san(position: Position, san: str) -> Move:
    """Parse a SAN string into a :class:`Move` given the current *position*."""
    legal = MoveGenerator(position).generate_legal_moves()

    clean = san.rstrip("+#!?")

    if clean in ("O-O", "0-0", "O-O-O", "0-0-0"):
        side = CastlingSide.KINGSIDE if len(clean) == 3 else CastlingSide.QUEENSIDE
        for m in legal:
            if m.castling == side:
                return m
        raise IllegalMoveError(f"Illegal move: {san}")

    try:
        return _match_san(legal, clean)
    except IllegalMoveError:
        raise
    except (ValueError, IndexError):
        raise IllegalMoveError(f"Unreadable move: {san}") from None


def _match_san(legal: list[Move], clean: str) -> Move:
    promotion: PieceType | None = None
    if "=" in clean:
        promotion = _SAN_PIECE_REV.get(clean[-1])
        if promotion is None:
            raise IllegalMoveError(f"Invalid promotion: {clean}")
        clean = clean[:-2]

    to_sq = parse_square(clean[-2:])
    clean = clean[:-2]

    if clean.endswith("x"):
        clean = clean[:-1]

    if clean and clean[0] in _SAN_PIECE_REV:
        piece_type = _SAN_PIECE_REV[clean[0]]
        clean = clean[1:]
    else:
        piece_type = PieceType.PAWN

    from_file: int | None = None
    from_rank: int | None = None
    if len(clean) == 2:
        from_sq = parse_square(clean)
        from_file, from_rank = file_of(from_sq), rank_of(from_sq)
    elif len(clean) == 1:
        if clean in "abcdefgh":
            from_file = ord(clean) - ord("a")
        elif clean in "12345678":
            from_rank = int(clean) - 1
        else:
            raise IllegalMoveError(f"Invalid disambiguation: {clean}")
    elif clean:
        raise IllegalMoveError(f"Invalid SAN prefix: {clean}")

    candidates: list[Move] = []
    for m in legal:
        if m.piece.piece_type != piece_type or m.to_sq != to_sq:
            continue
        if m.promotion != promotion and not (
            promotion is None and m.promotion == PieceType.QUEEN
        ):
            continue
        if from_file is not None and file_of(m.from_sq) != from_file:
            continue
        if from_rank is not None and rank_of(m.from_sq) != from_rank:
            continue
        candidates.append(m)

    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        raise IllegalMoveError(f"Illegal move: {clean}")
    raise IllegalMoveError(f"Ambiguous move: {clean} → {[m.uci for m in candidates]}")
