"""FEN parsing and serialization."""

from __future__ import annotations

from kibitz.core.board import Board
from kibitz.core.enums import CastlingRights, Color, PieceType
from kibitz.core.errors import MalformedPositionError
from kibitz.core.move_generator import MoveGenerator
from kibitz.core.piece import Piece
from kibitz.core.position import Position
from kibitz.core.types import Square, make_square, parse_square, rank_of, square_name

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

_CASTLING_CHARS: tuple[tuple[str, CastlingRights], ...] = (
    ("K", CastlingRights.WHITE_KINGSIDE),
    ("Q", CastlingRights.WHITE_QUEENSIDE),
    ("k", CastlingRights.BLACK_KINGSIDE),
    ("q", CastlingRights.BLACK_QUEENSIDE),
)


def position_from_fen(fen: str) -> Position:
    """Parse a FEN string into a :class:`Position`.

    The two clock fields may be omitted. Raises
    :class:`MalformedPositionError` for anything that does not describe a
    reachable-looking position: bad fields, a missing or extra king, pawns
    on a back rank, or the side not to move already in check.
    """
    parts = fen.split()
    if not (4 <= len(parts) <= 6):
        raise MalformedPositionError(f"Invalid FEN (need 4-6 fields): {fen!r}")

    placement, side_part, castling_part, ep_part = parts[:4]

    board = _parse_placement(placement, fen)

    # Side to move
    if side_part == "w":
        side = Color.WHITE
    elif side_part == "b":
        side = Color.BLACK
    else:
        raise MalformedPositionError(f"Invalid FEN side-to-move field: {side_part!r}")

    castling = _parse_castling(castling_part)

    # En passant
    ep: Square | None = None
    if ep_part != "-":
        try:
            ep = parse_square(ep_part)
        except ValueError:
            raise MalformedPositionError(
                f"Invalid FEN en-passant square: {ep_part!r}"
            ) from None
        expected_ep_rank = 5 if side == Color.WHITE else 2
        if rank_of(ep) != expected_ep_rank:
            raise MalformedPositionError(
                f"Invalid FEN en-passant square for side-to-move: {ep_part!r}"
            )

    # Clocks (optional)
    halfmove = _parse_counter(parts, 4, default=0, minimum=0, name="halfmove clock")
    fullmove = _parse_counter(parts, 5, default=1, minimum=1, name="fullmove number")

    position = Position(board, side, castling, ep, halfmove, fullmove)
    _validate(position, fen)
    return position


def _parse_placement(placement: str, fen: str) -> Board:
    ranks = placement.split("/")
    if len(ranks) != 8:
        raise MalformedPositionError(
            f"Invalid FEN board (must contain 8 ranks): {fen!r}"
        )
    pieces: dict[Square, Piece] = {}
    for rank_idx, rank_text in enumerate(ranks):
        rank = 7 - rank_idx
        file = 0
        for ch in rank_text:
            if ch in "0123456789":
                step = int(ch)
                if not (1 <= step <= 8):
                    raise MalformedPositionError(f"Invalid FEN digit {ch!r}: {fen!r}")
                file += step
            else:
                if file >= 8:
                    raise MalformedPositionError(f"Invalid FEN rank width: {fen!r}")
                try:
                    pieces[make_square(file, rank)] = Piece.from_char(ch)
                except ValueError as exc:
                    raise MalformedPositionError(str(exc)) from None
                file += 1
            if file > 8:
                raise MalformedPositionError(f"Invalid FEN rank width: {fen!r}")
        if file != 8:
            raise MalformedPositionError(f"Invalid FEN rank width: {fen!r}")
    return Board(pieces)


def _parse_castling(castling_part: str) -> CastlingRights:
    castling = CastlingRights.NONE
    if castling_part == "-":
        return castling
    rights = dict(_CASTLING_CHARS)
    seen: set[str] = set()
    for ch in castling_part:
        right = rights.get(ch)
        if right is None or ch in seen:
            raise MalformedPositionError(
                f"Invalid FEN castling field: {castling_part!r}"
            )
        seen.add(ch)
        castling |= right
    return castling


def _parse_counter(
    parts: list[str], index: int, *, default: int, minimum: int, name: str
) -> int:
    if len(parts) <= index:
        return default
    text = parts[index]
    if not (text.isascii() and text.isdigit()) or int(text) < minimum:
        raise MalformedPositionError(f"Invalid FEN {name}: {text!r}")
    return int(text)


def _validate(position: Position, fen: str) -> None:
    board = position.board
    for color in Color:
        if board.count(color, PieceType.KING) != 1:
            raise MalformedPositionError(
                f"FEN must have exactly one {color} king: {fen!r}"
            )
        pawns = board.pieces_bitboard(color, PieceType.PAWN)
        if pawns & 0xFF000000000000FF:
            raise MalformedPositionError(f"FEN has a pawn on a back rank: {fen!r}")

    waiting = position.side_to_move.opposite
    if MoveGenerator(position).is_in_check(waiting):
        raise MalformedPositionError(
            f"Side not to move ({waiting}) is in check: {fen!r}"
        )


def position_to_fen(pos: Position) -> str:
    """Serialise a :class:`Position` to FEN (all six fields)."""
    rows: list[str] = []
    for rank in range(7, -1, -1):
        empty = 0
        row = ""
        for file in range(8):
            piece = pos.board[make_square(file, rank)]
            if piece is None:
                empty += 1
            else:
                if empty:
                    row += str(empty)
                    empty = 0
                row += str(piece)
        if empty:
            row += str(empty)
        rows.append(row)
    board_str = "/".join(rows)

    side_str = "w" if pos.side_to_move == Color.WHITE else "b"

    castling_str = "".join(ch for ch, right in _CASTLING_CHARS if pos.castling & right)
    if not castling_str:
        castling_str = "-"

    ep_str = square_name(pos.en_passant) if pos.en_passant is not None else "-"

    return (
        f"{board_str} {side_str} {castling_str} {ep_str} "
        f"{pos.halfmove_clock} {pos.fullmove_number}"
    )
